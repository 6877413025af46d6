"""
Pydantic configuration models for the American Monte Carlo engine.

These models provide validation and type-safe configuration for:
- The cross-currency LGM / lognormal FX risk-factor model
- Calibration and pricing Monte Carlo settings
- Exposure simulation grids
"""

from typing import Literal

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

PolynomialType = Literal[
    "monomial", "laguerre", "hermite", "hermite_e", "legendre", "chebyshev"
]


class LgmModelConfig(BaseModel):
    """
    One-factor LGM parameters for a single currency.

    The state follows dz = alpha * dW with H(t) = (1 - exp(-kappa * t)) / kappa.

    Attributes
    ----------
    currency : str
        ISO currency code (e.g., "EUR")
    rate : float
        Flat continuously compounded rate of the currency's discount curve
    mean_reversion : float
        LGM mean reversion kappa (0 allowed, then H(t) = t)
    volatility : float
        LGM volatility alpha

    Example
    -------
    >>> config = LgmModelConfig(currency="EUR", rate=0.02, mean_reversion=0.03, volatility=0.01)
    """

    currency: str = Field(min_length=3, max_length=3)
    rate: float = Field(ge=-0.05, le=0.30, default=0.02)
    mean_reversion: float = Field(ge=0, le=2.0, default=0.03)
    volatility: float = Field(ge=0, le=0.10, default=0.01)

    @field_validator("mean_reversion")
    @classmethod
    def mean_reversion_realistic(cls, v: float) -> float:
        """Warn on aggressive mean reversion."""
        if v > 1.0:
            import warnings

            warnings.warn(
                f"Mean reversion {v} > 1.0 is aggressive; typical values are 0.0-0.1",
                UserWarning,
                stacklevel=2,
            )
        return v


class FXModelConfig(BaseModel):
    """
    Lognormal FX parameters for a foreign currency against the base currency.

    Attributes
    ----------
    currency : str
        Foreign currency code; the rate is quoted as base units per foreign unit
    initial_spot : float
        FX spot at the reference date
    volatility : float
        FX volatility
    """

    currency: str = Field(min_length=3, max_length=3)
    initial_spot: float = Field(gt=0, description="Initial FX spot rate")
    volatility: float = Field(ge=0, le=1.0, description="FX volatility")


class CrossAssetModelConfig(BaseModel):
    """
    Complete risk-factor model configuration.

    The first IR model defines the base currency. FX models must cover all
    other IR currencies, in the same order.

    Attributes
    ----------
    ir_models : list[LgmModelConfig]
        One LGM model per currency, base currency first
    fx_models : list[FXModelConfig]
        One FX model per non-base currency
    correlation : list[list[float]] | None
        Correlation matrix over [IR states..., FX states...]; identity if None
    """

    ir_models: list[LgmModelConfig] = Field(min_length=1)
    fx_models: list[FXModelConfig] = Field(default_factory=list)
    correlation: list[list[float]] | None = None

    @property
    def base_currency(self) -> str:
        """Base (domestic) currency code."""
        return self.ir_models[0].currency

    @property
    def dimension(self) -> int:
        """Number of model state variables."""
        return len(self.ir_models) + len(self.fx_models)

    @model_validator(mode="after")
    def validate_currencies(self) -> "CrossAssetModelConfig":
        """FX currencies must match the non-base IR currencies."""
        ir_ccys = [m.currency for m in self.ir_models]
        if len(set(ir_ccys)) != len(ir_ccys):
            raise ValueError(f"Duplicate IR currencies: {ir_ccys}")
        fx_ccys = [m.currency for m in self.fx_models]
        if fx_ccys != ir_ccys[1:]:
            raise ValueError(
                f"FX currencies {fx_ccys} must match non-base IR currencies {ir_ccys[1:]}"
            )
        return self

    @model_validator(mode="after")
    def validate_correlation(self) -> "CrossAssetModelConfig":
        """Ensure the correlation matrix is square, symmetric and PSD."""
        if self.correlation is None:
            return self
        corr_matrix = np.array(self.correlation, dtype=float)
        n = self.dimension
        if corr_matrix.shape != (n, n):
            raise ValueError(
                f"Correlation matrix must be {n}x{n}, got {corr_matrix.shape}"
            )
        if not np.allclose(corr_matrix, corr_matrix.T):
            raise ValueError("Correlation matrix must be symmetric")
        if not np.allclose(np.diag(corr_matrix), 1.0):
            raise ValueError("Correlation matrix must have unit diagonal")
        eigenvalues = np.linalg.eigvalsh(corr_matrix)
        if np.any(eigenvalues < -1e-10):
            raise ValueError(
                f"Correlation matrix is not positive semi-definite. "
                f"Eigenvalues: {eigenvalues}"
            )
        return self


class AmcConfig(BaseModel):
    """
    American Monte Carlo engine parameters.

    Attributes
    ----------
    calibration_samples : int
        Number of paths used for the regression calibration
    pricing_samples : int
        Number of paths used for exposure simulation
    calibration_seed : int
        Seed of the calibration path generator
    pricing_seed : int
        Seed of the pricing (exposure) path generator
    polynomial_order : int
        Total order of the regression basis
    polynomial_type : str
        Polynomial family of the regression basis
    exercise_into_tolerance : float
        Time added to a coupon's accrual start to get its exercise-into cutoff
    antithetic : bool
        Use antithetic variates for path generation
    """

    calibration_samples: int = Field(ge=10, le=1_000_000, default=10000)
    pricing_samples: int = Field(ge=10, le=1_000_000, default=2000)
    calibration_seed: int = Field(ge=0, default=42)
    pricing_seed: int = Field(ge=0, default=17)
    polynomial_order: int = Field(ge=0, le=8, default=4)
    polynomial_type: PolynomialType = "monomial"
    exercise_into_tolerance: float = Field(ge=0, le=1e-3, default=1e-10)
    antithetic: bool = False

    @model_validator(mode="after")
    def antithetic_needs_even_samples(self) -> "AmcConfig":
        """Antithetic pairs require an even number of samples."""
        if self.antithetic and (
            self.calibration_samples % 2 != 0 or self.pricing_samples % 2 != 0
        ):
            raise ValueError("Sample counts must be even for antithetic variates")
        return self


class ExposureConfig(BaseModel):
    """
    Exposure simulation grid.

    Attributes
    ----------
    valuation_times : list[float]
        Strictly increasing positive valuation (xVA) times in years
    close_out_lag : float | None
        Margin period of risk in years for the sticky close-out rerun
    pfe_quantile : float
        Quantile used for potential future exposure
    """

    valuation_times: list[float] = Field(default_factory=list)
    close_out_lag: float | None = Field(default=None, gt=0, le=1.0)
    pfe_quantile: float = Field(gt=0, lt=1, default=0.95)

    @field_validator("valuation_times")
    @classmethod
    def strictly_increasing(cls, v: list[float]) -> list[float]:
        """Valuation times must be positive and strictly increasing."""
        if any(t <= 0 for t in v):
            raise ValueError("Valuation times must be positive")
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError("Valuation times must be strictly increasing")
        return v

    @classmethod
    def regular(cls, horizon: float, step: float, **kwargs: object) -> "ExposureConfig":
        """Build a regular grid step, 2*step, ..., horizon."""
        n = int(round(horizon / step))
        times = [round(step * (i + 1), 10) for i in range(n)]
        return cls(valuation_times=times, **kwargs)  # type: ignore[arg-type]
