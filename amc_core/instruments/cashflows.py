"""
Cash flow and coupon types understood by the multi-leg engine.

The catalogue is closed: every supported shape is one frozen dataclass
below, and the cash-flow classifier dispatches on these types. Wrapper
coupons (FX-linked notional, stripped option, cap/floor) hold an
``underlying`` and forward the schedule fields to it.

All dates are year fractions from the reference date. Known fixings of
periods that already started are passed as ``fixing`` / ``fx_fixing``.
"""

from dataclasses import dataclass

import numpy as np

from amc_core.instruments.indexes import BMAIndex, FxIndex, IborIndex, OvernightIndex, SwapIndex


def _check_increasing(name: str, times: tuple[float, ...], min_len: int) -> None:
    if len(times) < min_len:
        raise ValueError(f"{name} needs at least {min_len} entries, got {len(times)}")
    if np.any(np.diff(times) <= 0):
        raise ValueError(f"{name} must be strictly increasing, got {times}")


@dataclass(frozen=True, kw_only=True)
class CashFlow:
    """Base class: an amount paid at ``pay_time``."""

    pay_time: float


@dataclass(frozen=True, kw_only=True)
class SimpleCashFlow(CashFlow):
    """Fixed amount, e.g. a notional exchange or fee."""

    amount: float


@dataclass(frozen=True, kw_only=True)
class FXLinkedCashFlow(CashFlow):
    """
    Fixed foreign amount converted at an FX fixing.

    Attributes
    ----------
    foreign_amount : float
        Amount in the index source currency
    fx_index : FxIndex
        Conversion index (target per source)
    fx_fixing_time : float
        Time of the FX fixing
    fx_fixing : float | None
        Known FX fixing, if already published
    """

    foreign_amount: float
    fx_index: FxIndex
    fx_fixing_time: float
    fx_fixing: float | None = None

    @property
    def amount(self) -> float:
        """Converted amount; requires a known FX fixing."""
        if self.fx_fixing is None:
            raise ValueError("FXLinkedCashFlow amount requires a known fx_fixing")
        return self.foreign_amount * self.fx_fixing


@dataclass(frozen=True, kw_only=True)
class Coupon(CashFlow):
    """
    Accruing coupon.

    Attributes
    ----------
    nominal : float
        Coupon nominal
    accrual_start : float
        Start of the accrual period
    accrual_end : float
        End of the accrual period
    day_count_fraction : float | None
        Accrual fraction; defaults to ``accrual_end - accrual_start``
    """

    nominal: float
    accrual_start: float
    accrual_end: float
    day_count_fraction: float | None = None

    def __post_init__(self) -> None:
        if self.accrual_end <= self.accrual_start:
            raise ValueError(
                f"accrual_end ({self.accrual_end}) must be after accrual_start ({self.accrual_start})"
            )

    @property
    def accrual_period(self) -> float:
        """Year fraction the coupon rate accrues over."""
        if self.day_count_fraction is not None:
            return self.day_count_fraction
        return self.accrual_end - self.accrual_start


@dataclass(frozen=True, kw_only=True)
class FixedRateCoupon(Coupon):
    """Coupon paying a fixed rate."""

    rate: float

    @property
    def amount(self) -> float:
        return self.nominal * self.rate * self.accrual_period


@dataclass(frozen=True, kw_only=True)
class FloatingRateCoupon(Coupon):
    """
    Coupon paying ``gearing * fixing + spread``.

    Attributes
    ----------
    fixing_time : float
        Time the index fixes
    gearing : float
        Multiplier on the fixing
    spread : float
        Additive spread
    fixing : float | None
        Known index fixing, used when ``fixing_time`` is not in the future
    """

    fixing_time: float
    gearing: float = 1.0
    spread: float = 0.0
    fixing: float | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if self.gearing == 0:
            raise ValueError("gearing must be non-zero")

    @property
    def rate(self) -> float:
        """Coupon rate; requires a known fixing."""
        if self.fixing is None:
            raise ValueError(f"{type(self).__name__} rate requires a known fixing")
        return self.gearing * self.fixing + self.spread


@dataclass(frozen=True, kw_only=True)
class IborCoupon(FloatingRateCoupon):
    """Term rate coupon."""

    index: IborIndex


@dataclass(frozen=True, kw_only=True)
class CmsCoupon(FloatingRateCoupon):
    """Constant maturity swap rate coupon."""

    index: SwapIndex


@dataclass(frozen=True, kw_only=True)
class OvernightIndexedCoupon(Coupon):
    """
    Daily compounded overnight coupon.

    Attributes
    ----------
    index : OvernightIndex
        Overnight index
    value_times : tuple[float, ...]
        Boundaries of the compounding periods
    include_spread : bool
        Compound the spread together with the fixings
    """

    index: OvernightIndex
    value_times: tuple[float, ...]
    gearing: float = 1.0
    spread: float = 0.0
    include_spread: bool = False

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_increasing("value_times", self.value_times, 2)


@dataclass(frozen=True, kw_only=True)
class AverageONIndexedCoupon(Coupon):
    """Arithmetically averaged overnight coupon."""

    index: OvernightIndex
    value_times: tuple[float, ...]
    gearing: float = 1.0
    spread: float = 0.0

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_increasing("value_times", self.value_times, 2)


@dataclass(frozen=True, kw_only=True)
class AverageBMACoupon(Coupon):
    """Coupon on the accrual-weighted average of weekly BMA fixings."""

    index: BMAIndex
    fixing_times: tuple[float, ...]
    gearing: float = 1.0
    spread: float = 0.0

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_increasing("fixing_times", self.fixing_times, 1)


@dataclass(frozen=True, kw_only=True)
class SubPeriodsCoupon(Coupon):
    """
    Ibor fixings compounded or averaged over sub-periods.

    ``fixing_times[k]`` fixes the rate for [value_times[k], value_times[k+1]].
    """

    index: IborIndex
    fixing_times: tuple[float, ...]
    value_times: tuple[float, ...]
    gearing: float = 1.0
    spread: float = 0.0
    averaging: bool = False

    def __post_init__(self) -> None:
        super().__post_init__()
        _check_increasing("value_times", self.value_times, 2)
        if len(self.fixing_times) != len(self.value_times) - 1:
            raise ValueError(
                f"SubPeriodsCoupon needs one fixing per sub-period: "
                f"{len(self.fixing_times)} fixings for {len(self.value_times) - 1} periods"
            )


class WrappedCoupon:
    """Mixin forwarding the schedule fields of a wrapper to its underlying."""

    underlying: object

    @property
    def pay_time(self) -> float:
        return self.underlying.pay_time  # type: ignore[attr-defined]

    @property
    def nominal(self) -> float:
        return self.underlying.nominal  # type: ignore[attr-defined]

    @property
    def accrual_start(self) -> float:
        return self.underlying.accrual_start  # type: ignore[attr-defined]

    @property
    def accrual_end(self) -> float:
        return self.underlying.accrual_end  # type: ignore[attr-defined]

    @property
    def accrual_period(self) -> float:
        return self.underlying.accrual_period  # type: ignore[attr-defined]


@dataclass(frozen=True, kw_only=True)
class CappedFlooredCoupon(WrappedCoupon):
    """
    Cap and/or floor on the rate of an ibor or CMS coupon.

    ``cap`` and ``floor`` bound the coupon rate; the engine works with the
    equivalent bounds on the index fixing, ``effective_cap`` and
    ``effective_floor``.
    """

    underlying: IborCoupon | CmsCoupon
    cap: float | None = None
    floor: float | None = None

    def __post_init__(self) -> None:
        if self.cap is None and self.floor is None:
            raise ValueError("CappedFlooredCoupon needs a cap or a floor")

    @property
    def effective_cap(self) -> float | None:
        """Cap on the index fixing, (cap - spread) / gearing."""
        if self.cap is None:
            return None
        return (self.cap - self.underlying.spread) / self.underlying.gearing

    @property
    def effective_floor(self) -> float | None:
        """Floor on the index fixing, (floor - spread) / gearing."""
        if self.floor is None:
            return None
        return (self.floor - self.underlying.spread) / self.underlying.gearing


@dataclass(frozen=True, kw_only=True)
class StrippedCappedFlooredCoupon(WrappedCoupon):
    """The embedded option of a capped/floored coupon without the swaplet."""

    underlying: CappedFlooredCoupon


@dataclass(frozen=True, kw_only=True)
class CappedFlooredOvernightIndexedCoupon(WrappedCoupon):
    """
    Cap and/or floor on a compounded overnight coupon.

    With ``local_cap_floor`` each daily rate is bounded, otherwise the
    compounded rate is.
    """

    underlying: OvernightIndexedCoupon
    cap: float | None = None
    floor: float | None = None
    local_cap_floor: bool = False
    naked_option: bool = False


@dataclass(frozen=True, kw_only=True)
class CappedFlooredAverageONIndexedCoupon(WrappedCoupon):
    """Cap and/or floor on an averaged overnight coupon."""

    underlying: AverageONIndexedCoupon
    cap: float | None = None
    floor: float | None = None
    local_cap_floor: bool = False
    naked_option: bool = False


@dataclass(frozen=True, kw_only=True)
class CappedFlooredAverageBMACoupon(WrappedCoupon):
    """Cap and/or floor on an averaged BMA coupon."""

    underlying: AverageBMACoupon
    cap: float | None = None
    floor: float | None = None
    naked_option: bool = False


@dataclass(frozen=True, kw_only=True)
class FloatingRateFXLinkedNotionalCoupon(WrappedCoupon):
    """
    Floating coupon whose nominal is a foreign amount converted at an FX fixing.

    Attributes
    ----------
    underlying : object
        Floating coupon (possibly capped/floored) providing the rate
    foreign_amount : float
        Nominal in the FX index source currency
    fx_index : FxIndex
        Conversion index (target per source)
    fx_fixing_time : float
        Time of the FX fixing
    fx_fixing : float | None
        Known FX fixing, if already published
    """

    underlying: object
    foreign_amount: float
    fx_index: FxIndex
    fx_fixing_time: float
    fx_fixing: float | None = None


COUPON_TYPES = (Coupon, WrappedCoupon)
"""Types carrying an accrual period (used for the exercise-into cutoff)."""
