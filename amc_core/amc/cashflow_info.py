"""
Cash-flow descriptors and the classifier that builds them.

Every cash flow of a multi-leg instrument is turned into a ``CashflowInfo``:
its pay time, currency and sign, the exercise-into cutoff time, the
simulation times and state indices its amount depends on, and an
``AmountSpec`` describing how to compute the amount from sampled states.

Amounts are evaluated by ``evaluate_amount``, a pure function of the amount
description and the supplied states. ``cashflow_path_value`` turns an amount into a
numeraire-deflated, base-currency, signed path value.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from amc_core._types import PathValues, SampleVector
from amc_core.amc.time_grid import TimeSet
from amc_core.exceptions import StructuralConsistencyError, UnrecognizedCouponError
from amc_core.instruments.cashflows import (
    COUPON_TYPES,
    AverageBMACoupon,
    AverageONIndexedCoupon,
    CappedFlooredAverageBMACoupon,
    CappedFlooredAverageONIndexedCoupon,
    CappedFlooredCoupon,
    CappedFlooredOvernightIndexedCoupon,
    CmsCoupon,
    FixedRateCoupon,
    FloatingRateFXLinkedNotionalCoupon,
    FXLinkedCashFlow,
    IborCoupon,
    OvernightIndexedCoupon,
    SimpleCashFlow,
    StrippedCappedFlooredCoupon,
    SubPeriodsCoupon,
)
from amc_core.instruments.indexes import FxIndex
from amc_core.market.cross_asset import AssetType, CrossAssetModel
from amc_core.market.curve import DiscountCurve

logger = logging.getLogger(__name__)

States = list[list[SampleVector]]
"""Per declared simulation time, the sampled states of the declared model indices."""


class AmountKind(Enum):
    """How the amount of a cash flow is computed."""

    FIXED = "fixed"
    FX_LINKED_FIXED = "fx_linked_fixed"
    IBOR = "ibor"
    CMS = "cms"
    OVERNIGHT_COMPOUNDED = "overnight_compounded"
    OVERNIGHT_AVERAGED = "overnight_averaged"
    BMA_AVERAGED = "bma_averaged"
    SUB_PERIODS = "sub_periods"


@dataclass(frozen=True)
class CapFloorTerms:
    """
    Cap/floor applied to a coupon rate.

    For ibor and CMS coupons ``cap`` / ``floor`` are the effective bounds on
    the index fixing; for overnight and BMA coupons they bound the coupon
    rate itself.
    """

    cap: float | None = None
    floor: float | None = None
    naked_option: bool = False
    local_cap_floor: bool = False


@dataclass(frozen=True)
class FxLinkage:
    """
    FX conversion of a foreign amount or nominal.

    Attributes
    ----------
    foreign_amount : float
        Amount (or nominal) in the source currency
    source_ccy_index : int
        Model currency index of the source currency
    target_ccy_index : int
        Model currency index of the target currency
    fixed_rate : float | None
        Known FX rate; None when the fixing is simulated
    """

    foreign_amount: float
    source_ccy_index: int
    target_ccy_index: int
    fixed_rate: float | None = None


@dataclass(frozen=True)
class AmountSpec:
    """
    Inputs of the amount computation of one cash flow.

    Attributes
    ----------
    kind : AmountKind
        Variant tag selecting the amount formula
    flow : object
        Terminal cash flow or coupon (after unwrapping)
    constant : float | None
        Amount of fixed flows
    index_ccy_index : int | None
        Model currency index of the rate index
    fixing_sim_time : float | None
        Simulation time whose state projects the rate
    known_fixing : float | None
        Index fixing already known at the reference date
    fixing_slot : int | None
        Position of the rate state in the declared simulation times
    fx_slot : int | None
        Position of the FX states in the declared simulation times
    cap_floor : CapFloorTerms | None
        Cap/floor terms, if any
    fx_linkage : FxLinkage | None
        FX conversion, if any
    """

    kind: AmountKind
    flow: object = None
    constant: float | None = None
    index_ccy_index: int | None = None
    fixing_sim_time: float | None = None
    known_fixing: float | None = None
    fixing_slot: int | None = None
    fx_slot: int | None = None
    cap_floor: CapFloorTerms | None = None
    fx_linkage: FxLinkage | None = None


@dataclass(frozen=True)
class CashflowInfo:
    """
    Canonical description of one cash flow for the engine.

    Attributes
    ----------
    leg_no, cf_no : int
        Leg and cash-flow position in the instrument
    pay_time : float
        Payment time
    pay_ccy_index : int
        Model currency index of the pay currency
    payer : float
        -1.0 for paid flows, +1.0 for received flows
    ex_into_criterion_time : float
        The flow belongs to the exercise-into underlying of any exercise
        time strictly before this time
    simulation_times : tuple[float, ...]
        Times whose states the amount needs
    model_indices : tuple[tuple[int, ...], ...]
        State indices needed at each simulation time
    spec : AmountSpec
        Amount computation inputs
    """

    leg_no: int
    cf_no: int
    pay_time: float
    pay_ccy_index: int
    payer: float
    ex_into_criterion_time: float
    simulation_times: tuple[float, ...] = ()
    model_indices: tuple[tuple[int, ...], ...] = ()
    spec: AmountSpec = field(default_factory=lambda: AmountSpec(AmountKind.FIXED, constant=0.0))

    def __post_init__(self) -> None:
        if self.ex_into_criterion_time > self.pay_time:
            raise StructuralConsistencyError(
                f"leg {self.leg_no} cashflow {self.cf_no}: exercise-into criterion time "
                f"({self.ex_into_criterion_time}) after pay time ({self.pay_time})"
            )
        if len(self.simulation_times) != len(self.model_indices):
            raise StructuralConsistencyError(
                f"leg {self.leg_no} cashflow {self.cf_no}: {len(self.simulation_times)} "
                f"simulation times but {len(self.model_indices)} model index sets"
            )

    def amount(self, n: int, states: States, model: CrossAssetModel) -> SampleVector:
        """Undiscounted amount in the pay currency, one value per sample."""
        return evaluate_amount(self.spec, n, states, model)


def _fx_factor(linkage: FxLinkage, n: int, states: States, slot: int | None) -> SampleVector:
    """FX rate converting the foreign amount into the pay currency."""
    if linkage.fixed_rate is not None:
        return np.full(n, linkage.fixed_rate)
    fx_states = states[slot]  # type: ignore[index]
    source = np.ones(n)
    target = np.ones(n)
    k = 0
    if linkage.source_ccy_index > 0:
        source = np.exp(fx_states[k])
        k += 1
    if linkage.target_ccy_index > 0:
        target = np.exp(fx_states[k])
    return source / target


def _capped_floored_fixing_rate(
    fixing: SampleVector, gearing: float, spread: float, terms: CapFloorTerms | None
) -> SampleVector:
    """Coupon rate from an index fixing, with caps/floors on the fixing."""
    if terms is None:
        return gearing * fixing + spread
    swaplet = np.zeros_like(fixing) if terms.naked_option else gearing * fixing + spread
    floorlet = 0.0
    caplet = 0.0
    if terms.floor is not None:
        floorlet = gearing * np.maximum(terms.floor - fixing, 0.0)
    if terms.cap is not None:
        sign = -1.0 if terms.naked_option and terms.floor is None else 1.0
        caplet = gearing * np.maximum(fixing - terms.cap, 0.0) * sign
    return swaplet + floorlet - caplet


def evaluate_amount(spec: AmountSpec, n: int, states: States, model: CrossAssetModel) -> SampleVector:
    """
    Amount of a cash flow given the states at its declared simulation times.

    Parameters
    ----------
    spec : AmountSpec
        Amount computation inputs
    n : int
        Number of samples
    states : States
        ``states[k][j]`` is the sample vector of the j-th declared model
        index at the k-th declared simulation time
    model : CrossAssetModel
        Model providing the fixing evaluators

    Returns
    -------
    SampleVector
        Amount per sample in the pay currency
    """
    if spec.kind is AmountKind.FIXED:
        return np.full(n, spec.constant)

    linkage = spec.fx_linkage
    if spec.kind is AmountKind.FX_LINKED_FIXED:
        return linkage.foreign_amount * _fx_factor(linkage, n, states, spec.fx_slot)  # type: ignore[union-attr]

    flow = spec.flow
    lgm = model.lgm_vectorised(spec.index_ccy_index)  # type: ignore[arg-type]
    t = spec.fixing_sim_time
    x = states[spec.fixing_slot][0] if spec.fixing_slot is not None else None
    terms = spec.cap_floor
    cap = terms.cap if terms is not None else None
    floor = terms.floor if terms is not None else None
    naked = terms.naked_option if terms is not None else False
    local = terms.local_cap_floor if terms is not None else False

    if spec.kind in (AmountKind.IBOR, AmountKind.CMS):
        if spec.known_fixing is not None:
            fixing = np.full(n, spec.known_fixing)
        else:
            fixing = lgm.fixing(flow.index, flow.fixing_time, t, x)
        rate = _capped_floored_fixing_rate(fixing, flow.gearing, flow.spread, terms)
    elif spec.kind is AmountKind.OVERNIGHT_COMPOUNDED:
        rate = lgm.compounded_on_rate(
            flow.index, flow.value_times, flow.gearing, flow.spread, flow.include_spread,
            cap, floor, local, naked, t, x,
        )
    elif spec.kind is AmountKind.OVERNIGHT_AVERAGED:
        rate = lgm.averaged_on_rate(
            flow.index, flow.value_times, flow.gearing, flow.spread, cap, floor, local, naked, t, x
        )
    elif spec.kind is AmountKind.BMA_AVERAGED:
        rate = lgm.averaged_bma_rate(
            flow.index, flow.fixing_times, flow.accrual_start, flow.accrual_end,
            flow.gearing, flow.spread, cap, floor, naked, t, x,
        )
    elif spec.kind is AmountKind.SUB_PERIODS:
        rate = lgm.sub_periods_rate(
            flow.index, flow.fixing_times, flow.value_times, flow.gearing, flow.spread,
            flow.averaging, t, x,
        )
    else:
        raise StructuralConsistencyError(f"no amount formula for {spec.kind}")

    rate = np.broadcast_to(rate, (n,))
    nominal = linkage.foreign_amount if linkage is not None else flow.nominal
    amount = nominal * flow.accrual_period * rate
    if linkage is not None:
        amount = amount * _fx_factor(linkage, n, states, spec.fx_slot)
    return amount


class CashflowClassifier:
    """
    Builds cash-flow descriptors for the multi-leg engine.

    Wrappers are unwrapped one layer at a time (FX-linked notional,
    stripped option, cap/floor) before the terminal coupon is matched.
    Flows matching no supported shape raise ``UnrecognizedCouponError``.

    Parameters
    ----------
    model : CrossAssetModel
        Model providing currency and state index lookups
    today : float
        Reference time; fixings at or before it are known
    ex_into_tolerance : float
        Offset added to a coupon's accrual start to get its exercise-into
        cutoff
    """

    def __init__(
        self, model: CrossAssetModel, today: float = 0.0, ex_into_tolerance: float = 1e-10
    ) -> None:
        self.model = model
        self.today = today
        self.ex_into_tolerance = ex_into_tolerance

    def _fx_indices(self, source: int, target: int) -> tuple[int, ...]:
        """FX state indices of source and target currency (base has none)."""
        return tuple(
            self.model.p_idx(AssetType.FX, c - 1) for c in (source, target) if c > 0
        )

    def _initial_fx_rate(self, source: int, target: int) -> float:
        """FX rate (target per source) implied by the initial state."""
        x0 = self.model.initial_values
        log_src = x0[self.model.p_idx(AssetType.FX, source - 1)] if source > 0 else 0.0
        log_tgt = x0[self.model.p_idx(AssetType.FX, target - 1)] if target > 0 else 0.0
        return float(np.exp(log_src - log_tgt))

    def _fx_linkage(
        self,
        fx_index: FxIndex,
        fixing_time: float,
        foreign_amount: float,
        known: float | None,
    ) -> tuple[FxLinkage, float | None, tuple[int, ...]]:
        """FX linkage plus the simulation time and state indices it needs, if any."""
        source = self.model.ccy_index(fx_index.source_currency)
        target = self.model.ccy_index(fx_index.target_currency)
        if fixing_time > self.today:
            linkage = FxLinkage(foreign_amount, source, target)
            return linkage, fixing_time, self._fx_indices(source, target)
        rate = known if known is not None else self._initial_fx_rate(source, target)
        return FxLinkage(foreign_amount, source, target, fixed_rate=rate), None, ()

    def create(
        self,
        flow: object,
        pay_currency: str,
        payer: float,
        leg_no: int,
        cf_no: int,
    ) -> CashflowInfo:
        """
        Build the descriptor of one cash flow.

        Parameters
        ----------
        flow : object
            Cash flow from the instrument's leg
        pay_currency : str
            Pay currency of the leg
        payer : float
            -1.0 if the leg is paid, +1.0 if received
        leg_no, cf_no : int
            Position of the flow, used in error messages

        Returns
        -------
        CashflowInfo
            Immutable descriptor

        Raises
        ------
        UnrecognizedCouponError
            If the flow is not part of the supported catalogue
        StructuralConsistencyError
            If the pay currency is unknown to the model or a coupon accrues
            from or after its pay time
        """
        pay_time = flow.pay_time  # type: ignore[attr-defined]
        common = dict(
            leg_no=leg_no,
            cf_no=cf_no,
            pay_time=pay_time,
            pay_ccy_index=self.model.ccy_index(pay_currency),
            payer=payer,
        )

        if isinstance(flow, COUPON_TYPES):
            if flow.accrual_start >= pay_time:
                raise StructuralConsistencyError(
                    f"coupon leg {leg_no} cashflow {cf_no} has accrual start ({flow.accrual_start}) "
                    f">= pay time ({pay_time})"
                )
            common["ex_into_criterion_time"] = flow.accrual_start + self.ex_into_tolerance
        else:
            common["ex_into_criterion_time"] = pay_time

        # fixed amounts

        if isinstance(flow, (FixedRateCoupon, SimpleCashFlow)):
            return CashflowInfo(**common, spec=AmountSpec(AmountKind.FIXED, flow, constant=flow.amount))

        if isinstance(flow, FXLinkedCashFlow):
            linkage, fx_time, fx_indices = self._fx_linkage(
                flow.fx_index, flow.fx_fixing_time, flow.foreign_amount, flow.fx_fixing
            )
            if fx_time is None:
                return CashflowInfo(
                    **common,
                    spec=AmountSpec(
                        AmountKind.FIXED, flow, constant=flow.foreign_amount * linkage.fixed_rate
                    ),
                )
            return CashflowInfo(
                **common,
                simulation_times=(fx_time,),
                model_indices=(fx_indices,),
                spec=AmountSpec(AmountKind.FX_LINKED_FIXED, flow, fx_slot=0, fx_linkage=linkage),
            )

        # wrappers

        linkage = None
        fx_time = None
        fx_indices: tuple[int, ...] = ()
        if isinstance(flow, FloatingRateFXLinkedNotionalCoupon):
            linkage, fx_time, fx_indices = self._fx_linkage(
                flow.fx_index, flow.fx_fixing_time, flow.foreign_amount, flow.fx_fixing
            )
            flow = flow.underlying

        naked_option = False
        if isinstance(flow, StrippedCappedFlooredCoupon):
            if not isinstance(flow.underlying, CappedFlooredCoupon):
                raise UnrecognizedCouponError(
                    leg_no, cf_no, f"StrippedCappedFlooredCoupon[{type(flow.underlying).__name__}]"
                )
            naked_option = True
            flow = flow.underlying

        terms = None
        if isinstance(flow, CappedFlooredCoupon):
            # overnight and BMA coupons carry their own rate-capped wrappers
            if not isinstance(flow.underlying, (IborCoupon, CmsCoupon)):
                raise UnrecognizedCouponError(
                    leg_no, cf_no, f"CappedFlooredCoupon[{type(flow.underlying).__name__}]"
                )
            terms = CapFloorTerms(flow.effective_cap, flow.effective_floor, naked_option)
            flow = flow.underlying

        # terminal coupons

        sim_times: list[float] = []
        indices: list[tuple[int, ...]] = []
        known_fixing = None

        if isinstance(flow, (IborCoupon, CmsCoupon)):
            kind = AmountKind.IBOR if isinstance(flow, IborCoupon) else AmountKind.CMS
            index_ccy = self.model.ccy_index(flow.index.currency)
            fixing_time = flow.fixing_time
            if fixing_time > self.today:
                sim_times.append(fixing_time)
                indices.append((self.model.p_idx(AssetType.IR, index_ccy),))
            else:
                known_fixing = self._known_fixing(flow, index_ccy)
        elif isinstance(flow, (CappedFlooredOvernightIndexedCoupon, OvernightIndexedCoupon)):
            kind = AmountKind.OVERNIGHT_COMPOUNDED
            flow, terms = self._unwrap_rate_capped(flow, OvernightIndexedCoupon)
            index_ccy, fixing_time = self._declare_rate_state(flow, flow.value_times[0], sim_times, indices)
        elif isinstance(flow, (CappedFlooredAverageONIndexedCoupon, AverageONIndexedCoupon)):
            kind = AmountKind.OVERNIGHT_AVERAGED
            flow, terms = self._unwrap_rate_capped(flow, AverageONIndexedCoupon)
            index_ccy, fixing_time = self._declare_rate_state(flow, flow.value_times[0], sim_times, indices)
        elif isinstance(flow, (CappedFlooredAverageBMACoupon, AverageBMACoupon)):
            kind = AmountKind.BMA_AVERAGED
            flow, terms = self._unwrap_rate_capped(flow, AverageBMACoupon)
            index_ccy, fixing_time = self._declare_rate_state(flow, flow.fixing_times[0], sim_times, indices)
        elif isinstance(flow, SubPeriodsCoupon):
            kind = AmountKind.SUB_PERIODS
            index_ccy, fixing_time = self._declare_rate_state(flow, flow.fixing_times[0], sim_times, indices)
        else:
            raise UnrecognizedCouponError(leg_no, cf_no, type(flow).__name__)

        fixing_slot = 0 if sim_times else None
        fx_slot = None
        if fx_time is not None:
            fx_slot = len(sim_times)
            sim_times.append(fx_time)
            indices.append(fx_indices)

        spec = AmountSpec(
            kind,
            flow,
            index_ccy_index=index_ccy,
            fixing_sim_time=fixing_time,
            known_fixing=known_fixing,
            fixing_slot=fixing_slot,
            fx_slot=fx_slot,
            cap_floor=terms,
            fx_linkage=linkage,
        )
        info = CashflowInfo(
            **common, simulation_times=tuple(sim_times), model_indices=tuple(indices), spec=spec
        )
        logger.debug(
            "leg %d cashflow %d: %s paying at %.4f, %d simulation time(s)",
            leg_no, cf_no, kind.value, pay_time, len(sim_times),
        )
        return info

    def _known_fixing(self, flow: IborCoupon | CmsCoupon, index_ccy: int) -> float:
        """Index fixing of a coupon whose fixing time is not in the future."""
        if flow.fixing is not None:
            return flow.fixing
        lgm = self.model.lgm_vectorised(index_ccy)
        return float(lgm.fixing(flow.index, flow.fixing_time, 0.0, np.zeros(1))[0])

    @staticmethod
    def _unwrap_rate_capped(flow: object, plain_type: type) -> tuple[object, CapFloorTerms | None]:
        """Split a rate-capped overnight/BMA coupon into underlying and terms."""
        if isinstance(flow, plain_type):
            return flow, None
        return flow.underlying, CapFloorTerms(  # type: ignore[attr-defined]
            cap=flow.cap,  # type: ignore[attr-defined]
            floor=flow.floor,  # type: ignore[attr-defined]
            naked_option=flow.naked_option,  # type: ignore[attr-defined]
            local_cap_floor=getattr(flow, "local_cap_floor", False),
        )

    def _declare_rate_state(
        self,
        flow: object,
        first_time: float,
        sim_times: list[float],
        indices: list[tuple[int, ...]],
    ) -> tuple[int, float]:
        """Declare the rate state at max(0, first value/fixing time)."""
        index_ccy = self.model.ccy_index(flow.index.currency)  # type: ignore[attr-defined]
        sim_time = max(0.0, float(first_time))
        sim_times.append(sim_time)
        indices.append((self.model.p_idx(AssetType.IR, index_ccy),))
        return index_ccy, sim_time


def cashflow_path_value(
    info: CashflowInfo,
    path_values: PathValues,
    simulation_times: TimeSet,
    model: CrossAssetModel,
    discount_curve: DiscountCurve | None = None,
) -> SampleVector:
    """
    Deflated base-currency value of a cash flow along each path.

    Amount / N(pay_time), converted to base currency with the simulated FX
    rate at the pay time, times the payer sign.

    Parameters
    ----------
    info : CashflowInfo
        Cash-flow descriptor
    path_values : PathValues
        Simulated states, shape (n_times, state_size, n_samples)
    simulation_times : TimeSet
        Positive simulation times matching axis 0 of ``path_values``
    model : CrossAssetModel
        Model providing the numeraire and initial state
    discount_curve : DiscountCurve | None
        Optional curve overriding the base model curve in the numeraire
    """
    n = path_values.shape[2]
    pay_idx = simulation_times.index(info.pay_time)
    initial = model.initial_values

    states: States = []
    for t, idx in zip(info.simulation_times, info.model_indices):
        if t == 0.0:
            states.append([np.full(n, initial[j]) for j in idx])
        else:
            k = simulation_times.index(t)
            states.append([path_values[k, j] for j in idx])

    pay_state = path_values[pay_idx]
    amount = info.amount(n, states, model) / model.numeraire(
        info.pay_time, pay_state[model.p_idx(AssetType.IR, 0)], discount_curve
    )
    if info.pay_ccy_index > 0:
        amount = amount * np.exp(pay_state[model.p_idx(AssetType.FX, info.pay_ccy_index - 1)])
    return amount * info.payer
