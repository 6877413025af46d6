"""
Risk-factor model for the American Monte Carlo engine.

This module provides:
- Discount curve construction (flat and piecewise)
- One-factor LGM interest rate components with batched fixing evaluators
- Lognormal FX components
- The cross-currency model and its state processes
- Correlation matrix handling with Cholesky decomposition
"""

from amc_core.market.curve import DiscountCurve
from amc_core.market.correlation import CholeskyCorrelation
from amc_core.market.fx_model import FxBsModel
from amc_core.market.lgm import LgmModel, LgmVectorised, cap_floor_rate
from amc_core.market.cross_asset import AssetType, CrossAssetModel
from amc_core.market.process import CrossAssetStateProcess, IrLgm1fStateProcess

__all__ = [
    "DiscountCurve",
    "CholeskyCorrelation",
    "FxBsModel",
    "LgmModel",
    "LgmVectorised",
    "cap_floor_rate",
    "AssetType",
    "CrossAssetModel",
    "CrossAssetStateProcess",
    "IrLgm1fStateProcess",
]
