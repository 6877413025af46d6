"""
Configuration module for the American Monte Carlo engine.

Provides Pydantic-validated configuration models and YAML loading utilities
for the risk-factor model, engine parameters, and exposure grids.
"""

from amc_core.config.loader import (
    create_default_model_config,
    load_amc_config,
    load_config,
    load_model_config,
)
from amc_core.config.models import (
    AmcConfig,
    CrossAssetModelConfig,
    ExposureConfig,
    FXModelConfig,
    LgmModelConfig,
)

__all__ = [
    # Models
    "LgmModelConfig",
    "FXModelConfig",
    "CrossAssetModelConfig",
    "AmcConfig",
    "ExposureConfig",
    # Loaders
    "load_config",
    "load_model_config",
    "load_amc_config",
    "create_default_model_config",
]
