"""
Linear Gauss Markov (LGM) one-factor interest rate model.

The LGM model is the Hull-White model written in terms of a driftless
(under its own numeraire) Gaussian state:

    dz(t) = α(t) dW(t),   z(0) = 0

with bond reconstruction

    P(t, T) = P(0, T) / P(0, t) * exp(-(H(T) - H(t)) z - ½ (H(T)² - H(t)²) ζ(t))

where ζ(t) = ∫₀ᵗ α² ds and H(t) = (1 - exp(-κt)) / κ. The numeraire is

    N(t, z) = exp(H(t) z + ½ H(t)² ζ(t)) / P(0, t).

``LgmVectorised`` evaluates index fixings and averaged / compounded rates
for a whole batch of simulated states at once.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from amc_core._types import FloatArray, SampleVector
from amc_core.instruments.indexes import BMAIndex, IborIndex, OvernightIndex, SwapIndex
from amc_core.market.curve import DiscountCurve


@dataclass
class LgmModel:
    """
    One-factor LGM component for a single currency.

    Attributes
    ----------
    currency : str
        Currency of the component
    curve : DiscountCurve
        Initial discount term structure P(0, t)
    mean_reversion : float
        Constant mean reversion κ (0 allowed)
    volatility : float
        Constant LGM volatility α

    Example
    -------
    >>> model = LgmModel("EUR", DiscountCurve(rate=0.02), mean_reversion=0.03, volatility=0.01)
    >>> x = np.zeros(1000)
    >>> bonds = model.discount_bond(1.0, 5.0, x)
    """

    currency: str
    curve: DiscountCurve = field(default_factory=DiscountCurve)
    mean_reversion: float = 0.03
    volatility: float = 0.01

    def __post_init__(self) -> None:
        """Validate model parameters."""
        if self.mean_reversion < 0:
            raise ValueError(f"mean_reversion must be non-negative, got {self.mean_reversion}")
        if self.volatility < 0:
            raise ValueError(f"volatility must be non-negative, got {self.volatility}")

    def H(self, t: float | FloatArray) -> float | FloatArray:
        """H(t) = (1 - exp(-κt)) / κ, or t for κ = 0."""
        t = np.asarray(t, dtype=float)
        if self.mean_reversion < 1e-12:
            return t
        return (1.0 - np.exp(-self.mean_reversion * t)) / self.mean_reversion

    def H_prime(self, t: float | FloatArray) -> float | FloatArray:
        """H'(t) = exp(-κt)."""
        return np.exp(-self.mean_reversion * np.asarray(t, dtype=float))

    def zeta(self, t: float | FloatArray) -> float | FloatArray:
        """ζ(t) = α² t, the variance of z(t)."""
        return self.volatility**2 * np.maximum(np.asarray(t, dtype=float), 0.0)

    def discount_bond(
        self,
        t: float,
        T: float | FloatArray,
        x: SampleVector,
        curve: DiscountCurve | None = None,
    ) -> FloatArray:
        """
        Zero bond P(t, T) conditional on the state x at time t.

        Parameters
        ----------
        t : float
            Observation time
        T : float | FloatArray
            Bond maturity or maturities
        x : SampleVector
            LGM state at time t, shape (n_samples,)
        curve : DiscountCurve | None
            Initial curve to reconstruct from (default: the model curve)

        Returns
        -------
        FloatArray
            Shape (n_samples,) for scalar T, else (len(T), n_samples)
        """
        curve = self.curve if curve is None else curve
        T_arr = np.asarray(T, dtype=float)
        H_t = float(self.H(t))
        zeta_t = float(self.zeta(t))
        H_T = np.asarray(self.H(T_arr))
        ratio = np.asarray(curve.discount_factor(T_arr)) / curve.discount_factor(t)
        if T_arr.ndim == 0:
            return ratio * np.exp(-(H_T - H_t) * x - 0.5 * (H_T**2 - H_t**2) * zeta_t)
        dH = (H_T - H_t)[:, None]
        dH2 = (H_T**2 - H_t**2)[:, None]
        return ratio[:, None] * np.exp(-dH * x[None, :] - 0.5 * dH2 * zeta_t)

    def numeraire(
        self,
        t: float,
        x: SampleVector | float,
        discount_curve: DiscountCurve | None = None,
    ) -> SampleVector | float:
        """
        LGM numeraire N(t, x) = exp(H(t) x + ½ H(t)² ζ(t)) / P(0, t).

        Parameters
        ----------
        t : float
            Time in years
        x : SampleVector | float
            LGM state at time t
        discount_curve : DiscountCurve | None
            Optional curve overriding the model curve for P(0, t)
        """
        curve = self.curve if discount_curve is None else discount_curve
        H_t = float(self.H(t))
        return np.exp(H_t * x + 0.5 * H_t**2 * float(self.zeta(t))) / curve.discount_factor(t)

    def short_rate(self, t: float, x: SampleVector) -> SampleVector:
        """r(t) = f(0, t) + H'(t) x + H'(t) H(t) ζ(t)."""
        H_p = float(self.H_prime(t))
        return (
            self.curve.instantaneous_forward(t)
            + H_p * x
            + H_p * float(self.H(t)) * float(self.zeta(t))
        )

    @classmethod
    def from_config(cls, config: "LgmModelConfig") -> "LgmModel":  # type: ignore[name-defined]  # noqa: F821
        """
        Create model from configuration object.

        Parameters
        ----------
        config : LgmModelConfig
            Configuration with model parameters

        Returns
        -------
        LgmModel
            Initialized model
        """
        return cls(
            currency=config.currency,
            curve=DiscountCurve(rate=config.rate),
            mean_reversion=config.mean_reversion,
            volatility=config.volatility,
        )


def cap_floor_rate(
    rate: SampleVector,
    cap: float | None,
    floor: float | None,
    naked_option: bool,
) -> SampleVector:
    """
    Apply a cap and/or floor to an effective coupon rate.

    The floorlet adds and the caplet subtracts. A naked option drops the
    underlying rate; a naked cap without a floor is held long, so the
    caplet enters with inverted sign.
    """
    if cap is None and floor is None:
        return rate
    swaplet = np.zeros_like(rate) if naked_option else rate
    floorlet = np.maximum(floor - rate, 0.0) if floor is not None else 0.0
    caplet = np.maximum(rate - cap, 0.0) if cap is not None else 0.0
    sign = -1.0 if naked_option and floor is None else 1.0
    return swaplet + floorlet - sign * caplet


class LgmVectorised:
    """
    Batched fixing and rate evaluator for one LGM component.

    All methods take the simulation time ``t`` the state refers to and the
    batched state ``x`` and return one rate per sample.
    """

    def __init__(self, model: LgmModel) -> None:
        self.model = model

    def _curve(self, index: IborIndex | SwapIndex | OvernightIndex | BMAIndex) -> DiscountCurve:
        return self.model.curve if index.curve is None else index.curve

    def _simple_forwards(
        self,
        curve: DiscountCurve,
        starts: FloatArray,
        ends: FloatArray,
        t: float,
        x: SampleVector,
    ) -> FloatArray:
        """Simple forward rates over [starts_k, ends_k], shape (k, n_samples)."""
        p_start = self.model.discount_bond(t, starts, x, curve)
        p_end = self.model.discount_bond(t, ends, x, curve)
        tau = (ends - starts)[:, None]
        return (p_start / p_end - 1.0) / tau

    def fixing(
        self,
        index: IborIndex | SwapIndex,
        fixing_time: float,
        t: float,
        x: SampleVector,
    ) -> SampleVector:
        """
        Index fixing at ``fixing_time`` projected from the state at ``t``.

        Ibor indexes give the simple forward over [fixing, fixing + tenor];
        swap indexes give the par rate of a swap starting at the fixing time.
        """
        curve = self._curve(index)
        if isinstance(index, IborIndex):
            start = np.array([fixing_time])
            return self._simple_forwards(curve, start, start + index.tenor, t, x)[0]
        if isinstance(index, SwapIndex):
            n_periods = max(int(round(index.tenor / index.fixed_leg_period)), 1)
            pay_times = fixing_time + index.fixed_leg_period * np.arange(1, n_periods + 1)
            p_start = self.model.discount_bond(t, fixing_time, x, curve)
            p_pay = self.model.discount_bond(t, pay_times, x, curve)
            annuity = index.fixed_leg_period * p_pay.sum(axis=0)
            return (p_start - p_pay[-1]) / annuity
        raise TypeError(f"fixing() does not support index type {type(index).__name__}")

    def compounded_on_rate(
        self,
        index: OvernightIndex,
        value_times: Sequence[float],
        gearing: float,
        spread: float,
        include_spread: bool,
        cap: float | None,
        floor: float | None,
        local_cap_floor: bool,
        naked_option: bool,
        t: float,
        x: SampleVector,
    ) -> SampleVector:
        """Daily compounded overnight rate over the value periods."""
        v = np.asarray(value_times, dtype=float)
        dt = np.diff(v)[:, None]
        tau = float(v[-1] - v[0])
        fwd = self._simple_forwards(self._curve(index), v[:-1], v[1:], t, x)

        def compound(period_rates: FloatArray) -> SampleVector:
            return (np.prod(1.0 + period_rates * dt, axis=0) - 1.0) / tau

        if include_spread:
            period_rates = gearing * (fwd + spread)
            rate = compound(period_rates)
        else:
            period_rates = gearing * fwd
            rate = compound(period_rates) + spread

        if local_cap_floor and (cap is not None or floor is not None):
            lo = -np.inf if floor is None else floor
            hi = np.inf if cap is None else cap
            if include_spread:
                capped = compound(np.clip(period_rates, lo, hi))
            else:
                capped = compound(np.clip(period_rates + spread, lo, hi))
            return _local_option_rate(rate, capped, cap, floor, naked_option)

        return cap_floor_rate(rate, cap, floor, naked_option)

    def averaged_on_rate(
        self,
        index: OvernightIndex,
        value_times: Sequence[float],
        gearing: float,
        spread: float,
        cap: float | None,
        floor: float | None,
        local_cap_floor: bool,
        naked_option: bool,
        t: float,
        x: SampleVector,
    ) -> SampleVector:
        """Arithmetic average of overnight forwards over the value periods."""
        v = np.asarray(value_times, dtype=float)
        dt = np.diff(v)[:, None]
        tau = float(v[-1] - v[0])
        fwd = self._simple_forwards(self._curve(index), v[:-1], v[1:], t, x)
        period_rates = gearing * fwd + spread
        rate = (period_rates * dt).sum(axis=0) / tau

        if local_cap_floor and (cap is not None or floor is not None):
            lo = -np.inf if floor is None else floor
            hi = np.inf if cap is None else cap
            capped = (np.clip(period_rates, lo, hi) * dt).sum(axis=0) / tau
            return _local_option_rate(rate, capped, cap, floor, naked_option)

        return cap_floor_rate(rate, cap, floor, naked_option)

    def averaged_bma_rate(
        self,
        index: BMAIndex,
        fixing_times: Sequence[float],
        accrual_start: float,
        accrual_end: float,
        gearing: float,
        spread: float,
        cap: float | None,
        floor: float | None,
        naked_option: bool,
        t: float,
        x: SampleVector,
    ) -> SampleVector:
        """
        Average of weekly BMA fixings, each weighted by the part of the
        accrual period it applies to.
        """
        f = np.asarray(fixing_times, dtype=float)
        cutoffs = np.append(f[1:], accrual_end)
        weights = np.minimum(cutoffs, accrual_end) - np.maximum(f, accrual_start)
        weights = np.maximum(weights, 0.0)
        fwd = self._simple_forwards(self._curve(index), f, f + index.fixing_period, t, x)
        total = weights.sum()
        avg = (fwd * weights[:, None]).sum(axis=0) / total if total > 0 else fwd.mean(axis=0)
        return cap_floor_rate(gearing * avg + spread, cap, floor, naked_option)

    def sub_periods_rate(
        self,
        index: IborIndex,
        fixing_times: Sequence[float],
        value_times: Sequence[float],
        gearing: float,
        spread: float,
        averaging: bool,
        t: float,
        x: SampleVector,
    ) -> SampleVector:
        """Ibor fixings compounded (or averaged) over sub-periods."""
        v = np.asarray(value_times, dtype=float)
        dt = np.diff(v)[:, None]
        tau = float(v[-1] - v[0])
        fixings = np.vstack([self.fixing(index, f, t, x) for f in fixing_times])
        if averaging:
            rate = (fixings * dt).sum(axis=0) / tau
        else:
            rate = (np.prod(1.0 + fixings * dt, axis=0) - 1.0) / tau
        return gearing * rate + spread

    def numeraire(
        self, t: float, x: SampleVector, discount_curve: DiscountCurve | None = None
    ) -> SampleVector:
        """Numeraire of the component, see ``LgmModel.numeraire``."""
        return self.model.numeraire(t, x, discount_curve)  # type: ignore[return-value]


def _local_option_rate(
    rate: SampleVector,
    capped: SampleVector,
    cap: float | None,
    floor: float | None,
    naked_option: bool,
) -> SampleVector:
    """Rate of a coupon whose period rates were capped/floored one by one."""
    if not naked_option:
        return capped
    option = capped - rate
    return -option if floor is None and cap is not None else option
