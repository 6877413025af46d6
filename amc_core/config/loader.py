"""
YAML configuration loading utilities.

Provides functions to load and validate configuration from YAML files,
returning properly typed Pydantic model instances.
"""

from pathlib import Path
from typing import Any

import yaml

from amc_core.config.models import (
    AmcConfig,
    CrossAssetModelConfig,
    ExposureConfig,
    FXModelConfig,
    LgmModelConfig,
)


def _load_yaml(path: Path) -> dict[str, Any]:
    """
    Load a YAML file and return its contents as a dictionary.

    Raises
    ------
    FileNotFoundError
        If the file does not exist
    yaml.YAMLError
        If the file contains invalid YAML
    """
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_model_config(path: Path | str) -> CrossAssetModelConfig:
    """
    Load the risk-factor model configuration from a YAML file.

    Parameters
    ----------
    path : Path | str
        Path to the model configuration YAML file

    Returns
    -------
    CrossAssetModelConfig
        Validated model configuration

    Example
    -------
    >>> config = load_model_config("data/model.yaml")
    >>> print(config.base_currency)
    EUR
    """
    data = _load_yaml(Path(path))

    # Handle nested 'model' key if present
    if "model" in data:
        data = data["model"]

    return CrossAssetModelConfig(**data)


def load_amc_config(path: Path | str) -> AmcConfig:
    """
    Load engine parameters from a YAML file.

    Parameters
    ----------
    path : Path | str
        Path to the YAML file

    Returns
    -------
    AmcConfig
        Validated engine configuration
    """
    data = _load_yaml(Path(path))

    if "amc" in data:
        data = data["amc"]

    return AmcConfig(**data)


def load_config(path: Path | str) -> dict[str, Any]:
    """
    Load a combined configuration file.

    The file may contain the sections ``model``, ``amc`` and ``exposure``;
    missing ``amc`` / ``exposure`` sections fall back to defaults.

    Parameters
    ----------
    path : Path | str
        Path to the YAML file

    Returns
    -------
    dict[str, Any]
        Dictionary containing:
        - 'model': CrossAssetModelConfig (if present)
        - 'amc': AmcConfig
        - 'exposure': ExposureConfig

    Example
    -------
    >>> config = load_config("data/bermudan.yaml")
    >>> print(config['amc'].calibration_samples)
    """
    data = _load_yaml(Path(path))
    result: dict[str, Any] = {}

    if "model" in data:
        result["model"] = CrossAssetModelConfig(**data["model"])
    result["amc"] = AmcConfig(**data.get("amc", {}))
    result["exposure"] = ExposureConfig(**data.get("exposure", {}))

    return result


def create_default_model_config(with_fx: bool = False) -> CrossAssetModelConfig:
    """
    Create a default model configuration with typical values.

    Parameters
    ----------
    with_fx : bool
        If True, add a USD currency with its FX rate against EUR

    Returns
    -------
    CrossAssetModelConfig
        Default model configuration suitable for testing
    """
    ir_models = [
        LgmModelConfig(currency="EUR", rate=0.02, mean_reversion=0.03, volatility=0.01)
    ]
    fx_models: list[FXModelConfig] = []
    correlation = None

    if with_fx:
        ir_models.append(
            LgmModelConfig(currency="USD", rate=0.03, mean_reversion=0.02, volatility=0.012)
        )
        fx_models.append(FXModelConfig(currency="USD", initial_spot=0.90, volatility=0.10))
        correlation = [
            [1.0, 0.6, -0.2],
            [0.6, 1.0, 0.3],
            [-0.2, 0.3, 1.0],
        ]

    return CrossAssetModelConfig(
        ir_models=ir_models, fx_models=fx_models, correlation=correlation
    )
