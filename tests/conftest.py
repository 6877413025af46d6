"""
Pytest fixtures for American Monte Carlo testing.

Provides reusable test fixtures for curves, models, indexes, instruments and
engine settings.
"""

import numpy as np
import pytest

from amc_core.config import AmcConfig, create_default_model_config
from amc_core.instruments import (
    FxIndex,
    IborIndex,
    MultiLegInstrument,
    OvernightIndex,
    make_bermudan_swaption,
    make_swap,
)
from amc_core.market import CrossAssetModel, DiscountCurve, LgmModel


@pytest.fixture
def flat_discount_curve() -> DiscountCurve:
    """Flat 2% discount curve."""
    return DiscountCurve(rate=0.02)


@pytest.fixture
def lgm_model(flat_discount_curve: DiscountCurve) -> LgmModel:
    """EUR LGM component with 3% mean reversion and 1% volatility."""
    return LgmModel("EUR", flat_discount_curve, mean_reversion=0.03, volatility=0.01)


@pytest.fixture
def single_ccy_model(lgm_model: LgmModel) -> CrossAssetModel:
    """Single-currency EUR model."""
    return CrossAssetModel([lgm_model])


@pytest.fixture
def two_ccy_model() -> CrossAssetModel:
    """EUR/USD model with correlated rates and FX."""
    return CrossAssetModel.from_config(create_default_model_config(with_fx=True))


@pytest.fixture
def euribor6m() -> IborIndex:
    """EURIBOR 6M index."""
    return IborIndex("EURIBOR6M", "EUR", tenor=0.5)


@pytest.fixture
def usd_libor3m() -> IborIndex:
    """USD LIBOR 3M index."""
    return IborIndex("USDLIBOR3M", "USD", tenor=0.25)


@pytest.fixture
def estr() -> OvernightIndex:
    """EUR overnight index."""
    return OvernightIndex("ESTR", "EUR")


@pytest.fixture
def usdeur() -> FxIndex:
    """FX index converting USD amounts into EUR."""
    return FxIndex("USD", "EUR")


@pytest.fixture
def small_amc_config() -> AmcConfig:
    """Engine settings small enough for fast tests."""
    return AmcConfig(
        calibration_samples=4000,
        pricing_samples=1000,
        calibration_seed=42,
        pricing_seed=17,
        polynomial_order=2,
    )


@pytest.fixture
def valuation_times() -> np.ndarray:
    """Semi-annual valuation grid over 4 years."""
    return np.array([0.5, 1.0, 1.5, 2.0, 2.5, 3.0, 3.5, 4.0])


@pytest.fixture
def bermudan_swaption(euribor6m: IborIndex) -> MultiLegInstrument:
    """1x4 payer Bermudan swaption, annually exercisable."""
    return make_bermudan_swaption(
        nominal=1_000_000,
        fixed_rate=0.02,
        index=euribor6m,
        start=1.0,
        end=4.0,
    )


@pytest.fixture
def payer_swap(euribor6m: IborIndex) -> MultiLegInstrument:
    """4Y payer swap starting in 6 months."""
    return make_swap(
        nominal=1_000_000,
        fixed_rate=0.02,
        index=euribor6m,
        start=0.5,
        end=4.5,
    )
