"""
Instrument definitions for the multi-leg engine.

This module provides:
- Rate and FX indexes
- The closed catalogue of supported cash flow and coupon types
- MultiLegInstrument with exercise schedule and settlement type
- Leg builders (fixed, ibor, overnight) and a Bermudan swaption helper
"""

from amc_core.instruments.indexes import BMAIndex, FxIndex, IborIndex, OvernightIndex, SwapIndex
from amc_core.instruments.cashflows import (
    COUPON_TYPES,
    AverageBMACoupon,
    AverageONIndexedCoupon,
    CappedFlooredAverageBMACoupon,
    CappedFlooredAverageONIndexedCoupon,
    CappedFlooredCoupon,
    CappedFlooredOvernightIndexedCoupon,
    CashFlow,
    CmsCoupon,
    Coupon,
    FixedRateCoupon,
    FloatingRateCoupon,
    FloatingRateFXLinkedNotionalCoupon,
    FXLinkedCashFlow,
    IborCoupon,
    OvernightIndexedCoupon,
    SimpleCashFlow,
    StrippedCappedFlooredCoupon,
    SubPeriodsCoupon,
    WrappedCoupon,
)
from amc_core.instruments.multileg import (
    ExerciseSchedule,
    MultiLegInstrument,
    Settlement,
    make_bermudan_swaption,
    make_fixed_leg,
    make_ibor_leg,
    make_overnight_leg,
    make_swap,
)

__all__ = [
    "BMAIndex",
    "FxIndex",
    "IborIndex",
    "OvernightIndex",
    "SwapIndex",
    "COUPON_TYPES",
    "AverageBMACoupon",
    "AverageONIndexedCoupon",
    "CappedFlooredAverageBMACoupon",
    "CappedFlooredAverageONIndexedCoupon",
    "CappedFlooredCoupon",
    "CappedFlooredOvernightIndexedCoupon",
    "CashFlow",
    "CmsCoupon",
    "Coupon",
    "FixedRateCoupon",
    "FloatingRateCoupon",
    "FloatingRateFXLinkedNotionalCoupon",
    "FXLinkedCashFlow",
    "IborCoupon",
    "OvernightIndexedCoupon",
    "SimpleCashFlow",
    "StrippedCappedFlooredCoupon",
    "SubPeriodsCoupon",
    "WrappedCoupon",
    "ExerciseSchedule",
    "MultiLegInstrument",
    "Settlement",
    "make_bermudan_swaption",
    "make_fixed_leg",
    "make_ibor_leg",
    "make_overnight_leg",
    "make_swap",
]
