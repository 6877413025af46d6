"""
Lognormal FX component of the cross-asset model.

The FX rate x_i (base currency units per unit of foreign currency i)
follows, under the base currency LGM measure,

    d ln x_i = (r_0 - r_i - ½σ_i² + ρ^{zx}_{0i} H_0 α_0 σ_i) dt + σ_i dW^x_i

The model state carries ln x_i.
"""

from dataclasses import dataclass

import numpy as np


@dataclass
class FxBsModel:
    """
    Black-Scholes FX parametrization for one foreign currency.

    Attributes
    ----------
    currency : str
        Foreign currency code
    initial_spot : float
        FX spot at the reference date (base per foreign)
    sigma : float
        FX volatility

    Example
    -------
    >>> fx = FxBsModel(currency="USD", initial_spot=0.90, sigma=0.10)
    >>> fx.log_spot
    -0.10536051565782628
    """

    currency: str
    initial_spot: float = 1.0
    sigma: float = 0.10

    def __post_init__(self) -> None:
        """Validate model parameters."""
        if self.initial_spot <= 0:
            raise ValueError(f"Initial spot must be positive, got {self.initial_spot}")
        if self.sigma < 0:
            raise ValueError(f"Volatility must be non-negative, got {self.sigma}")

    @property
    def log_spot(self) -> float:
        """Initial state ln x(0)."""
        return float(np.log(self.initial_spot))

    @classmethod
    def from_config(cls, config: "FXModelConfig") -> "FxBsModel":  # type: ignore[name-defined]  # noqa: F821
        """
        Create model from configuration object.

        Parameters
        ----------
        config : FXModelConfig
            Configuration with model parameters

        Returns
        -------
        FxBsModel
            Initialized model
        """
        return cls(
            currency=config.currency,
            initial_spot=config.initial_spot,
            sigma=config.volatility,
        )
