"""
Backward-induction calibration of a multi-leg American Monte Carlo engine.

The engine classifies the instrument's cash flows, simulates calibration
paths on the merged grid of cash-flow, exercise and valuation times, and
walks the exercise/valuation grid backwards. Along the way it accumulates
three deflated path values:

- dirty value: all cash flows paid after the current time
- exercise-into value: cash flows entered by exercising at the current time
- option value: the option given optimal exercise at later times

and regresses them on the model state at each time. The coefficients are
handed to a ``MultiLegAmcCalculator`` for replay on exposure paths.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from amc_core._types import SampleVector
from amc_core.amc.calculator import MultiLegAmcCalculator, RegressionCoefficients
from amc_core.amc.cashflow_info import CashflowClassifier, CashflowInfo, cashflow_path_value
from amc_core.amc.regression import BasisSystem, conditional_expectation, regression_coefficients
from amc_core.amc.simulator import simulate_paths
from amc_core.amc.time_grid import TimeSet
from amc_core.config.models import AmcConfig, CrossAssetModelConfig
from amc_core.exceptions import StructuralConsistencyError
from amc_core.instruments.multileg import MultiLegInstrument
from amc_core.market.cross_asset import CrossAssetModel
from amc_core.market.curve import DiscountCurve
from amc_core.stats import EngineStats, log_timing

logger = logging.getLogger(__name__)


class _CfStatus(Enum):
    OPEN = 0
    CACHED = 1
    DONE = 2


@dataclass
class AmcResult:
    """
    Result of an engine calculation.

    Attributes
    ----------
    underlying_npv : float
        Reference date value of all remaining cash flows
    value : float
        Reference date value of the instrument (option value if the
        instrument is callable, else the underlying value)
    calculator : MultiLegAmcCalculator
        Replay calculator holding the calibrated regressions
    stats : EngineStats
        Stage timings
    n_cashflows : int
        Number of cash flows alive at the reference date
    """

    underlying_npv: float
    value: float
    calculator: MultiLegAmcCalculator
    stats: EngineStats = field(default_factory=EngineStats)
    n_cashflows: int = 0


class McMultiLegEngine:
    """
    American Monte Carlo engine for multi-leg, multi-currency instruments.

    Parameters
    ----------
    model : CrossAssetModel
        Risk-factor model
    config : AmcConfig
        Sample counts, seeds and regression settings
    simulation_times : Sequence[float]
        Valuation (xva) times the calculator will be replayed on
    discount_curve : DiscountCurve | None
        Curve overriding the base model curve in the numeraire
    external_model_indices : Sequence[int] | None
        Positions of the model states in the external path state vector
        (default: identity)

    Example
    -------
    >>> engine = McMultiLegEngine(model, AmcConfig(), simulation_times=[0.5, 1.0, 1.5])
    >>> result = engine.calculate(make_bermudan_swaption(1e6, 0.02, euribor6m, 1.0, 6.0))
    >>> result.value > 0
    True
    """

    def __init__(
        self,
        model: CrossAssetModel,
        config: AmcConfig | None = None,
        simulation_times: Sequence[float] = (),
        discount_curve: DiscountCurve | None = None,
        external_model_indices: Sequence[int] | None = None,
    ) -> None:
        self.model = model
        self.config = config if config is not None else AmcConfig()
        self.xva_times = TimeSet.from_unsorted(simulation_times)
        if not self.xva_times.empty and self.xva_times.first <= 0.0:
            raise StructuralConsistencyError(
                f"valuation times must be after the reference date, got {self.xva_times.first}"
            )
        self.discount_curve = discount_curve
        self.external_model_indices = (
            list(range(model.state_size)) if external_model_indices is None else list(external_model_indices)
        )
        if len(self.external_model_indices) != model.state_size:
            raise StructuralConsistencyError(
                f"{len(self.external_model_indices)} external model indices given, "
                f"model state size is {model.state_size}"
            )
        self.today = 0.0

    @classmethod
    def from_config(
        cls,
        model_config: CrossAssetModelConfig,
        amc_config: AmcConfig,
        simulation_times: Sequence[float] = (),
    ) -> "McMultiLegEngine":
        """Create engine and model from configuration objects."""
        return cls(CrossAssetModel.from_config(model_config), amc_config, simulation_times)

    def _build_cashflow_infos(self, instrument: MultiLegInstrument) -> list[CashflowInfo]:
        """Descriptors of all cash flows paid after the reference date."""
        if len(instrument.currencies) != instrument.n_legs:
            raise StructuralConsistencyError(
                f"number of legs ({instrument.n_legs}) does not match currencies "
                f"({len(instrument.currencies)})"
            )
        if len(instrument.payer) != instrument.n_legs:
            raise StructuralConsistencyError(
                f"number of legs ({instrument.n_legs}) does not match payer flags "
                f"({len(instrument.payer)})"
            )

        classifier = CashflowClassifier(self.model, self.today, self.config.exercise_into_tolerance)
        infos = []
        for leg_no, (leg, currency, payer) in enumerate(
            zip(instrument.legs, instrument.currencies, instrument.payer)
        ):
            sign = -1.0 if payer else 1.0
            # cf_no counts the flows still alive
            cf_no = 0
            for flow in leg:
                if flow.pay_time <= self.today:
                    continue
                infos.append(classifier.create(flow, currency, sign, leg_no, cf_no))
                cf_no += 1
        return infos

    def calculate(self, instrument: MultiLegInstrument, stats: EngineStats | None = None) -> AmcResult:
        """
        Calibrate the regressions and value the instrument.

        Parameters
        ----------
        instrument : MultiLegInstrument
            Instrument to value
        stats : EngineStats | None
            Timers to record into (a new instance is created if omitted)

        Returns
        -------
        AmcResult
            Reference date values and the replay calculator

        Raises
        ------
        UnrecognizedCouponError
            If a cash flow is not supported
        StructuralConsistencyError
            On inconsistent instrument data or an empty simulation grid
        """
        stats = EngineStats() if stats is None else stats
        model = self.model
        config = self.config

        # cash flows and time grids

        stats.other_timer.resume()
        infos = self._build_cashflow_infos(instrument)

        has_exercise = instrument.exercise is not None
        exercise_times = (
            TimeSet.from_unsorted(t for t in instrument.exercise.times if t > self.today)
            if has_exercise
            else TimeSet()
        )
        xva_times = self.xva_times
        cashflow_gen_times = TimeSet.from_unsorted(
            [t for info in infos for t in info.simulation_times] + [info.pay_time for info in infos]
        ).without(0.0)
        exercise_xva_times = exercise_times.union(xva_times)
        simulation_times = cashflow_gen_times.union(exercise_times, xva_times)
        stats.other_timer.stop()

        logger.debug(
            "%d cashflows, %d exercise times, %d xva times, %d simulation times",
            len(infos), len(exercise_times), len(xva_times), len(simulation_times),
        )

        # calibration paths

        stats.path_timer.resume()
        with log_timing(logger, "calibration path simulation"):
            path_values = simulate_paths(
                model,
                simulation_times.times,
                config.calibration_samples,
                seed=config.calibration_seed,
                antithetic=config.antithetic,
            )
        stats.path_timer.stop()

        # backward induction

        stats.calc_timer.resume()
        n = config.calibration_samples
        basis = BasisSystem(model.state_size, config.polynomial_order, config.polynomial_type)
        coefficients = RegressionCoefficients(exercise_xva_times)

        def path_value(info: CashflowInfo) -> SampleVector:
            return cashflow_path_value(info, path_values, simulation_times, model, self.discount_curve)

        status = [_CfStatus.OPEN] * len(infos)
        amount_cache: dict[int, SampleVector] = {}
        und_dirty = np.zeros(n)
        und_ex_into = np.zeros(n)
        option = np.zeros(n)

        with log_timing(logger, "backward induction"):
            for counter in reversed(range(len(exercise_xva_times))):
                t = exercise_xva_times[counter]

                # ex_into_criterion_time > t implies pay_time > t for every descriptor
                for i, info in enumerate(infos):
                    if status[i] is _CfStatus.OPEN:
                        if info.ex_into_criterion_time > t:
                            value = path_value(info)
                            und_dirty += value
                            und_ex_into += value
                            status[i] = _CfStatus.DONE
                        elif info.pay_time > t:
                            value = path_value(info)
                            und_dirty += value
                            amount_cache[i] = value
                            status[i] = _CfStatus.CACHED
                    elif status[i] is _CfStatus.CACHED and info.ex_into_criterion_time > t:
                        und_ex_into += amount_cache.pop(i)
                        status[i] = _CfStatus.DONE

                regressors = path_values[simulation_times.index(t)]

                if has_exercise:
                    coefficients.und_ex_into[counter] = regression_coefficients(und_ex_into, regressors, basis)

                if t in exercise_times:
                    exercise_value = conditional_expectation(
                        regressors, basis, coefficients.und_ex_into[counter]
                    )
                    in_the_money = exercise_value > 0.0
                    if not np.any(in_the_money):
                        logger.warning(
                            "no path with positive exercise value at exercise time %.4f", t
                        )
                    coefficients.continuation[counter] = regression_coefficients(
                        option, regressors, basis, in_the_money
                    )
                    continuation_value = conditional_expectation(
                        regressors, basis, coefficients.continuation[counter]
                    )
                    option = np.where(
                        (exercise_value > continuation_value) & in_the_money, und_ex_into, option
                    )

                if t in xva_times:
                    coefficients.und_dirty[counter] = regression_coefficients(und_dirty, regressors, basis)

                if has_exercise:
                    coefficients.option[counter] = regression_coefficients(option, regressors, basis)
                else:
                    coefficients.option[counter] = coefficients.und_dirty[counter]

        # flows paid before the first grid time
        for i, info in enumerate(infos):
            if status[i] is _CfStatus.OPEN:
                und_dirty += path_value(info)

        n0 = float(model.numeraire(0.0, 0.0, self.discount_curve))
        underlying_npv = float(np.mean(und_dirty)) * n0
        value = float(np.mean(option)) * n0 if has_exercise else underlying_npv
        stats.calc_timer.stop()

        logger.info(
            "multi-leg engine: underlying npv %.6f, value %.6f (%d cashflows, %d calibration paths)",
            underlying_npv, value, len(infos), n,
        )

        calculator = MultiLegAmcCalculator(
            external_model_indices=self.external_model_indices,
            settlement=instrument.settlement,
            exercise_times=exercise_times,
            xva_times=xva_times,
            coefficients=coefficients,
            basis=basis,
            result_value=value,
            initial_state=model.initial_values,
            base_currency=model.base_currency,
        )
        return AmcResult(underlying_npv, value, calculator, stats, len(infos))
