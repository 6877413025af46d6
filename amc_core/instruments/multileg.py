"""
Multi-leg instrument with an optional Bermudan exercise right.

Also provides leg builders for the common vanilla legs and a Bermudan
swaption helper. Schedules are regular in year fractions; day counts and
calendars are left to the caller.
"""

from dataclasses import dataclass
from enum import Enum

import numpy as np

from amc_core.instruments.cashflows import (
    AverageONIndexedCoupon,
    CappedFlooredCoupon,
    FixedRateCoupon,
    IborCoupon,
    OvernightIndexedCoupon,
)
from amc_core.instruments.indexes import IborIndex, OvernightIndex


class Settlement(Enum):
    """Settlement of the exercise."""

    PHYSICAL = "physical"
    CASH = "cash"


@dataclass(frozen=True)
class ExerciseSchedule:
    """
    Bermudan exercise times.

    Exercising at a time enters all coupons accruing from that time on
    (cash flows whose exercise-into cutoff lies after the exercise time).
    """

    times: tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "times", tuple(float(t) for t in self.times))
        if not self.times:
            raise ValueError("Exercise schedule must contain at least one time")
        if np.any(np.diff(self.times) <= 0):
            raise ValueError(f"Exercise times must be strictly increasing, got {self.times}")


@dataclass
class MultiLegInstrument:
    """
    Instrument made of several legs, each paid in its own currency.

    Attributes
    ----------
    legs : list[list]
        Cash flows per leg
    currencies : list[str]
        Pay currency per leg
    payer : list[bool]
        True where the leg is paid (negative sign)
    exercise : ExerciseSchedule | None
        Exercise right into the legs, if any
    settlement : Settlement
        Physical or cash settlement of the exercise

    Example
    -------
    >>> swaption = make_bermudan_swaption(
    ...     nominal=1_000_000, fixed_rate=0.02, index=euribor6m, start=1.0, end=6.0
    ... )
    >>> swaption.has_exercise
    True
    """

    legs: list[list]
    currencies: list[str]
    payer: list[bool]
    exercise: ExerciseSchedule | None = None
    settlement: Settlement = Settlement.PHYSICAL

    @property
    def n_legs(self) -> int:
        return len(self.legs)

    @property
    def has_exercise(self) -> bool:
        return self.exercise is not None

    @property
    def maturity(self) -> float:
        """Latest pay time over all legs."""
        return max((cf.pay_time for leg in self.legs for cf in leg), default=0.0)


def _schedule(start: float, end: float, period: float) -> np.ndarray:
    """Regular period boundaries from start to end (last period absorbs rounding)."""
    if end <= start:
        raise ValueError(f"Leg end ({end}) must be after start ({start})")
    if period <= 0:
        raise ValueError(f"Period must be positive, got {period}")
    n_periods = max(int(round((end - start) / period)), 1)
    return np.linspace(start, end, n_periods + 1)


def make_fixed_leg(
    nominal: float,
    rate: float,
    start: float,
    end: float,
    period: float = 1.0,
) -> list[FixedRateCoupon]:
    """
    Build a fixed rate leg paying at the end of each period.

    Parameters
    ----------
    nominal : float
        Leg nominal
    rate : float
        Fixed coupon rate
    start : float
        Start of the first accrual period
    end : float
        End of the last accrual period
    period : float
        Accrual period length in years
    """
    bounds = _schedule(start, end, period)
    return [
        FixedRateCoupon(
            pay_time=float(t1), nominal=nominal, accrual_start=float(t0), accrual_end=float(t1), rate=rate
        )
        for t0, t1 in zip(bounds[:-1], bounds[1:])
    ]


def make_ibor_leg(
    nominal: float,
    index: IborIndex,
    start: float,
    end: float,
    period: float | None = None,
    gearing: float = 1.0,
    spread: float = 0.0,
    cap: float | None = None,
    floor: float | None = None,
    fixing_lag: float = 0.0,
) -> list[IborCoupon | CappedFlooredCoupon]:
    """
    Build an ibor leg fixing in advance and paying in arrears.

    Parameters
    ----------
    nominal : float
        Leg nominal
    index : IborIndex
        Index the coupons fix on
    start, end : float
        Leg start and end
    period : float | None
        Accrual period (defaults to the index tenor)
    gearing, spread : float
        Coupon rate is gearing * fixing + spread
    cap, floor : float | None
        Optional bounds on the coupon rate
    fixing_lag : float
        Fixing time offset before the accrual start
    """
    bounds = _schedule(start, end, index.tenor if period is None else period)
    leg: list[IborCoupon | CappedFlooredCoupon] = []
    for t0, t1 in zip(bounds[:-1], bounds[1:]):
        cpn = IborCoupon(
            pay_time=float(t1),
            nominal=nominal,
            accrual_start=float(t0),
            accrual_end=float(t1),
            fixing_time=float(t0) - fixing_lag,
            gearing=gearing,
            spread=spread,
            index=index,
        )
        if cap is not None or floor is not None:
            leg.append(CappedFlooredCoupon(underlying=cpn, cap=cap, floor=floor))
        else:
            leg.append(cpn)
    return leg


def make_overnight_leg(
    nominal: float,
    index: OvernightIndex,
    start: float,
    end: float,
    period: float = 1.0,
    spread: float = 0.0,
    gearing: float = 1.0,
    averaging: bool = False,
    value_step: float = 1.0 / 12.0,
) -> list[OvernightIndexedCoupon | AverageONIndexedCoupon]:
    """
    Build an overnight leg, compounded (default) or averaged.

    ``value_step`` sets the granularity of the compounding periods inside
    each coupon.
    """
    bounds = _schedule(start, end, period)
    leg: list[OvernightIndexedCoupon | AverageONIndexedCoupon] = []
    for t0, t1 in zip(bounds[:-1], bounds[1:]):
        value_times = tuple(float(v) for v in _schedule(float(t0), float(t1), value_step))
        common = dict(
            pay_time=float(t1),
            nominal=nominal,
            accrual_start=float(t0),
            accrual_end=float(t1),
            index=index,
            value_times=value_times,
            gearing=gearing,
            spread=spread,
        )
        leg.append(AverageONIndexedCoupon(**common) if averaging else OvernightIndexedCoupon(**common))
    return leg


def make_bermudan_swaption(
    nominal: float,
    fixed_rate: float,
    index: IborIndex,
    start: float,
    end: float,
    exercise_times: list[float] | None = None,
    fixed_period: float = 1.0,
    float_period: float | None = None,
    pay_fixed: bool = True,
    settlement: Settlement = Settlement.PHYSICAL,
) -> MultiLegInstrument:
    """
    Bermudan option to enter a fixed-for-ibor swap.

    Parameters
    ----------
    nominal : float
        Swap nominal
    fixed_rate : float
        Strike of the swaption
    index : IborIndex
        Floating leg index (its currency is the swap currency)
    start, end : float
        Underlying swap start and end
    exercise_times : list[float] | None
        Exercise times (default: fixed leg accrual starts)
    fixed_period, float_period : float
        Leg frequencies (float leg defaults to the index tenor)
    pay_fixed : bool
        True for a payer swaption
    settlement : Settlement
        Exercise settlement

    Returns
    -------
    MultiLegInstrument
        Two-leg instrument with exercise schedule
    """
    fixed_leg = make_fixed_leg(nominal, fixed_rate, start, end, fixed_period)
    float_leg = make_ibor_leg(nominal, index, start, end, float_period)
    if exercise_times is None:
        exercise_times = [cpn.accrual_start for cpn in fixed_leg]
    return MultiLegInstrument(
        legs=[fixed_leg, float_leg],
        currencies=[index.currency, index.currency],
        payer=[pay_fixed, not pay_fixed],
        exercise=ExerciseSchedule(tuple(exercise_times)),
        settlement=settlement,
    )


def make_swap(
    nominal: float,
    fixed_rate: float,
    index: IborIndex,
    start: float,
    end: float,
    fixed_period: float = 1.0,
    float_period: float | None = None,
    pay_fixed: bool = True,
) -> MultiLegInstrument:
    """Fixed-for-ibor swap without exercise right."""
    return MultiLegInstrument(
        legs=[
            make_fixed_leg(nominal, fixed_rate, start, end, fixed_period),
            make_ibor_leg(nominal, index, start, end, float_period),
        ],
        currencies=[index.currency, index.currency],
        payer=[pay_fixed, not pay_fixed],
        exercise=None,
        settlement=Settlement.PHYSICAL,
    )
