"""
Tests for the backward-induction engine.
"""

import logging

import numpy as np
import pytest

from amc_core.amc import McMultiLegEngine
from amc_core.config import AmcConfig, create_default_model_config
from amc_core.exceptions import StructuralConsistencyError, UnrecognizedCouponError
from amc_core.instruments import (
    Coupon,
    ExerciseSchedule,
    IborIndex,
    MultiLegInstrument,
    SimpleCashFlow,
    make_bermudan_swaption,
    make_fixed_leg,
)
from amc_core.market import CrossAssetModel
from amc_core.stats import EngineStats


def _swap_npv(nominal: float, fixed_rate: float, rate: float) -> float:
    """Payer swap 0.5 -> 4.5 on a flat single curve, annual fixed leg."""
    float_leg = np.exp(-rate * 0.5) - np.exp(-rate * 4.5)
    fixed_leg = fixed_rate * sum(np.exp(-rate * (0.5 + i)) for i in range(1, 5))
    return nominal * (float_leg - fixed_leg)


class TestUnderlying:
    """Tests for instruments without exercise right."""

    def test_value_equals_underlying(
        self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig, payer_swap: MultiLegInstrument
    ) -> None:
        """Without exercise the value is the underlying value."""
        result = McMultiLegEngine(single_ccy_model, small_amc_config).calculate(payer_swap)
        assert result.value == result.underlying_npv
        assert result.n_cashflows == 4 + 8

    def test_swap_matches_discounted_cashflows(
        self, single_ccy_model: CrossAssetModel, payer_swap: MultiLegInstrument
    ) -> None:
        """Swap value agrees with the curve value of its cash flows."""
        config = AmcConfig(calibration_samples=4000, antithetic=True, polynomial_order=2)
        result = McMultiLegEngine(single_ccy_model, config).calculate(payer_swap)
        assert result.underlying_npv == pytest.approx(_swap_npv(1_000_000, 0.02, 0.02), abs=2000)

    def test_foreign_cashflow_converted(self, two_ccy_model: CrossAssetModel, small_amc_config: AmcConfig) -> None:
        """Foreign flows are valued in base currency."""
        instrument = MultiLegInstrument(
            legs=[[SimpleCashFlow(pay_time=2.0, amount=1_000_000)]], currencies=["USD"], payer=[False]
        )
        result = McMultiLegEngine(two_ccy_model, small_amc_config).calculate(instrument)
        assert result.underlying_npv == pytest.approx(1_000_000 * 0.90 * np.exp(-0.03 * 2.0), rel=0.02)

    def test_past_flows_skipped(self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig) -> None:
        """Flows paid on or before the reference date are not valued."""
        instrument = MultiLegInstrument(
            legs=[[SimpleCashFlow(pay_time=0.0, amount=5.0), SimpleCashFlow(pay_time=1.0, amount=100.0)]],
            currencies=["EUR"],
            payer=[False],
        )
        result = McMultiLegEngine(single_ccy_model, small_amc_config).calculate(instrument)
        assert result.n_cashflows == 1
        assert result.underlying_npv == pytest.approx(100.0 * np.exp(-0.02), rel=1e-2)

    def test_no_value_after_maturity(
        self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig, payer_swap: MultiLegInstrument
    ) -> None:
        """Valuation times after the last payment regress a zero value."""
        engine = McMultiLegEngine(single_ccy_model, small_amc_config, simulation_times=[1.0, 5.0, 6.0])
        coefficients = engine.calculate(payer_swap).calculator.coefficients
        assert np.all(coefficients.at("und_dirty", 5.0) == 0.0)
        assert np.all(coefficients.at("und_dirty", 6.0) == 0.0)
        assert np.any(coefficients.at("und_dirty", 1.0) != 0.0)


class TestBermudan:
    """Tests for callable instruments."""

    def test_option_value_positive(
        self,
        single_ccy_model: CrossAssetModel,
        small_amc_config: AmcConfig,
        bermudan_swaption: MultiLegInstrument,
    ) -> None:
        """The right to enter beats entering at the first exercise date."""
        result = McMultiLegEngine(single_ccy_model, small_amc_config).calculate(bermudan_swaption)
        assert result.value > 0
        assert result.value > result.underlying_npv

    def test_deep_in_the_money_exercises_immediately(
        self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig, euribor6m: IborIndex
    ) -> None:
        """A deep in-the-money option is worth its underlying."""
        swaption = make_bermudan_swaption(1_000_000, -0.05, euribor6m, 1.0, 4.0)
        result = McMultiLegEngine(single_ccy_model, small_amc_config).calculate(swaption)
        assert result.value == pytest.approx(result.underlying_npv, rel=1e-6)

    def test_value_decreases_with_strike(
        self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig, euribor6m: IborIndex
    ) -> None:
        """Payer swaptions lose value as the strike rises."""
        engine = McMultiLegEngine(single_ccy_model, small_amc_config)
        values = [
            engine.calculate(make_bermudan_swaption(1_000_000, k, euribor6m, 1.0, 4.0)).value
            for k in (0.01, 0.03, 0.06)
        ]
        assert values[0] > values[1] > values[2]

    def test_out_of_the_money_warns(
        self,
        single_ccy_model: CrossAssetModel,
        small_amc_config: AmcConfig,
        euribor6m: IborIndex,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """Exercise dates without any in-the-money path are reported."""
        swaption = make_bermudan_swaption(1_000_000, 0.5, euribor6m, 1.0, 4.0)
        with caplog.at_level(logging.WARNING, logger="amc_core.amc.engine"):
            result = McMultiLegEngine(single_ccy_model, small_amc_config).calculate(swaption)
        assert "no path with positive exercise value" in caplog.text
        assert result.value == 0.0

    def test_coefficient_layout(
        self,
        single_ccy_model: CrossAssetModel,
        small_amc_config: AmcConfig,
        bermudan_swaption: MultiLegInstrument,
    ) -> None:
        """Continuation regressions exist at exercise times only."""
        engine = McMultiLegEngine(single_ccy_model, small_amc_config, simulation_times=[0.5, 1.5])
        calculator = engine.calculate(bermudan_swaption).calculator
        coefficients = calculator.coefficients
        assert list(coefficients.times) == [0.5, 1.0, 1.5, 2.0, 3.0]
        for t in (1.0, 2.0, 3.0):
            assert coefficients.at("continuation", t).size == calculator.basis.size
            with pytest.raises(StructuralConsistencyError):
                coefficients.at("und_dirty", t)
        for t in (0.5, 1.5):
            coefficients.at("und_dirty", t)
            with pytest.raises(StructuralConsistencyError):
                coefficients.at("continuation", t)
        for t in coefficients.times:
            coefficients.at("option", t)
            coefficients.at("und_ex_into", t)

    def test_expired_exercise_dates(self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig) -> None:
        """An option whose exercise dates all passed is worth nothing."""
        instrument = MultiLegInstrument(
            legs=[make_fixed_leg(1_000_000, 0.02, 0.5, 2.5)],
            currencies=["EUR"],
            payer=[False],
            exercise=ExerciseSchedule((-1.0,)),
        )
        result = McMultiLegEngine(single_ccy_model, small_amc_config).calculate(instrument)
        assert result.value == 0.0
        assert result.underlying_npv > 0


class TestEngineSetup:
    """Tests for engine construction, stats and input checks."""

    def test_stats_filled(
        self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig, payer_swap: MultiLegInstrument
    ) -> None:
        """Passed-in timers are filled and returned."""
        stats = EngineStats()
        result = McMultiLegEngine(single_ccy_model, small_amc_config).calculate(payer_swap, stats)
        assert result.stats is stats
        assert stats.path_timer.elapsed > 0
        assert stats.calc_timer.elapsed > 0
        assert stats.total == pytest.approx(sum(stats.to_dict()[k] for k in ("other", "path", "calc")))

    def test_currency_count_mismatch(self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig) -> None:
        """Each leg needs a currency."""
        instrument = MultiLegInstrument(
            legs=[make_fixed_leg(1.0, 0.01, 1.0, 2.0)], currencies=["EUR", "EUR"], payer=[True]
        )
        with pytest.raises(StructuralConsistencyError, match="currencies"):
            McMultiLegEngine(single_ccy_model, small_amc_config).calculate(instrument)

    def test_payer_count_mismatch(self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig) -> None:
        """Each leg needs a payer flag."""
        instrument = MultiLegInstrument(
            legs=[make_fixed_leg(1.0, 0.01, 1.0, 2.0)], currencies=["EUR"], payer=[True, False]
        )
        with pytest.raises(StructuralConsistencyError, match="payer"):
            McMultiLegEngine(single_ccy_model, small_amc_config).calculate(instrument)

    def test_unrecognized_coupon_before_simulation(
        self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig
    ) -> None:
        """Unsupported flows fail before any path is simulated."""
        leg = make_fixed_leg(1.0, 0.01, 1.0, 2.0) + [
            Coupon(pay_time=3.0, nominal=1.0, accrual_start=2.0, accrual_end=3.0)
        ]
        instrument = MultiLegInstrument(legs=[leg], currencies=["EUR"], payer=[False])
        stats = EngineStats()
        with pytest.raises(UnrecognizedCouponError):
            McMultiLegEngine(single_ccy_model, small_amc_config).calculate(instrument, stats)
        assert stats.path_timer.elapsed == 0.0

    def test_cashflow_numbers_count_alive_flows(
        self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig
    ) -> None:
        """Flows already paid do not take a cash-flow number."""
        leg = [
            SimpleCashFlow(pay_time=-0.5, amount=1.0),
            SimpleCashFlow(pay_time=0.0, amount=1.0),
            SimpleCashFlow(pay_time=1.0, amount=1.0),
            Coupon(pay_time=3.0, nominal=1.0, accrual_start=2.0, accrual_end=3.0),
        ]
        instrument = MultiLegInstrument(
            legs=[[SimpleCashFlow(pay_time=2.0, amount=1.0)], leg], currencies=["EUR", "EUR"], payer=[False, True]
        )
        with pytest.raises(UnrecognizedCouponError, match="leg 1 cashflow 1") as excinfo:
            McMultiLegEngine(single_ccy_model, small_amc_config).calculate(instrument)
        assert (excinfo.value.leg_no, excinfo.value.cf_no) == (1, 1)

    def test_empty_grid(self, single_ccy_model: CrossAssetModel, small_amc_config: AmcConfig) -> None:
        """Nothing left to simulate is a structural error."""
        instrument = MultiLegInstrument(
            legs=[[SimpleCashFlow(pay_time=-0.5, amount=1.0)]], currencies=["EUR"], payer=[False]
        )
        with pytest.raises(StructuralConsistencyError):
            McMultiLegEngine(single_ccy_model, small_amc_config).calculate(instrument)

    def test_valuation_time_at_reference_date(self, single_ccy_model: CrossAssetModel) -> None:
        """Valuation times must lie after the reference date."""
        with pytest.raises(StructuralConsistencyError):
            McMultiLegEngine(single_ccy_model, simulation_times=[0.0, 1.0])

    def test_external_index_count(self, two_ccy_model: CrossAssetModel) -> None:
        """External indices must cover the model state."""
        with pytest.raises(StructuralConsistencyError):
            McMultiLegEngine(two_ccy_model, external_model_indices=[0, 1])

    def test_from_config(self, small_amc_config: AmcConfig) -> None:
        """Engine and model are built from configuration."""
        engine = McMultiLegEngine.from_config(create_default_model_config(with_fx=True), small_amc_config, [1.0])
        assert engine.model.state_size == 3
        assert engine.external_model_indices == [0, 1, 2]
        assert list(engine.xva_times) == [1.0]
