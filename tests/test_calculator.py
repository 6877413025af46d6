"""
Tests for the forward replay calculator.

The calculators below are built from hand-written linear regressions
(value = c0 + c1 * state) on a one-dimensional state, so the expected
values can be written down exactly.
"""

import numpy as np
import pytest

from amc_core.amc import BasisSystem, MultiLegAmcCalculator, RegressionCoefficients, TimeSet
from amc_core.exceptions import StructuralConsistencyError
from amc_core.instruments import Settlement

Table = dict[float, tuple[float, float]]


def _constant(times: list[float], c0: float, c1: float = 0.0) -> Table:
    return {t: (c0, c1) for t in times}


def _calculator(
    exercise_times: list[float],
    xva_times: list[float],
    und_dirty: Table | None = None,
    und_ex_into: Table | None = None,
    continuation: Table | None = None,
    option: Table | None = None,
    settlement: Settlement = Settlement.PHYSICAL,
    external_model_indices: list[int] | None = None,
) -> MultiLegAmcCalculator:
    exercise = TimeSet(exercise_times)
    xva = TimeSet(xva_times)
    times = exercise.union(xva)
    tables = {
        "und_dirty": und_dirty,
        "und_ex_into": und_ex_into,
        "continuation": continuation,
        "option": option,
    }
    kwargs = {
        kind: [np.array(table[t]) if t in table else None for t in times]
        for kind, table in tables.items()
        if table is not None
    }
    return MultiLegAmcCalculator(
        external_model_indices=[0] if external_model_indices is None else external_model_indices,
        settlement=settlement,
        exercise_times=exercise,
        xva_times=xva,
        coefficients=RegressionCoefficients(times, **kwargs),
        basis=BasisSystem(1, 1),
        result_value=0.5,
        initial_state=np.zeros(1),
        base_currency="EUR",
    )


def _paths(states: list[list[float]]) -> np.ndarray:
    """Paths of shape (n_times, 1, n_samples) from per-time state lists."""
    return np.array(states, dtype=float)[:, None, :]


class TestRegressionCoefficients:
    """Tests for the coefficient table."""

    def test_missing_entry_raises(self) -> None:
        """Reading an unset regression is a structural error."""
        table = RegressionCoefficients(TimeSet([1.0]))
        with pytest.raises(StructuralConsistencyError):
            table.at("option", 1.0)

    def test_unknown_time_raises(self) -> None:
        """Times outside the table are rejected."""
        table = RegressionCoefficients(TimeSet([1.0]), option=[np.zeros(2)])
        with pytest.raises(StructuralConsistencyError):
            table.at("option", 2.0)

    def test_length_mismatch_raises(self) -> None:
        """Each kind needs one entry per time."""
        with pytest.raises(StructuralConsistencyError):
            RegressionCoefficients(TimeSet([1.0, 2.0]), option=[np.zeros(2)])


class TestWithoutExercise:
    """Tests for instruments without exercise right."""

    def test_dirty_value_regression(self) -> None:
        """Each valuation time gets the dirty value regression."""
        calc = _calculator([], [1.0, 2.0], und_dirty={1.0: (1.0, 2.0), 2.0: (0.0, -1.0)})
        result = calc.simulate_path([1.0, 2.0], _paths([[0.0, 1.0], [2.0, 3.0]]), [True, True])
        assert len(result) == 3
        assert np.allclose(result[0], 0.5)
        assert np.allclose(result[1], [1.0, 3.0])
        assert np.allclose(result[2], [-2.0, -3.0])
        assert calc.exercise_indicators is None

    def test_irrelevant_times_are_skipped(self) -> None:
        """Only flagged grid points are valued."""
        calc = _calculator([], [2.0], und_dirty={2.0: (0.0, 1.0)})
        result = calc.simulate_path([1.0, 2.0], _paths([[9.0, 9.0], [2.0, 3.0]]), [False, True])
        assert np.allclose(result[1], [2.0, 3.0])

    def test_external_model_indices(self) -> None:
        """The model state is read from its position in the external state."""
        calc = _calculator([], [1.0], und_dirty={1.0: (0.0, 1.0)}, external_model_indices=[2])
        paths = np.zeros((1, 3, 2))
        paths[0, 0] = 99.0
        paths[0, 2] = [1.0, 2.0]
        result = calc.simulate_path([1.0], paths, [True])
        assert np.allclose(result[1], [1.0, 2.0])


class TestExerciseDecisions:
    """Tests for exercise decisions along replay paths."""

    xva = [0.5, 1.0, 1.5, 2.0, 2.5]

    def test_exercise_at_second_date(self) -> None:
        """Paths switch to the exercise-into value from the exercise date on."""
        calc = _calculator(
            [1.0, 2.0],
            self.xva,
            und_dirty=_constant(self.xva, 5.0),
            und_ex_into={0.5: (9.0, 0.0), 1.0: (-1.0, 0.0), 1.5: (9.0, 0.0), 2.0: (1.0, 0.0), 2.5: (0.7, 0.0)},
            continuation=_constant([1.0, 2.0], 0.0),
            option=_constant(self.xva, 0.3),
        )
        paths = _paths([[0.1, -0.1]] * 5)
        result = calc.simulate_path(self.xva, paths, [True] * 5)

        indicators = calc.exercise_indicators
        assert not indicators[1].any()
        assert indicators[2].all()
        expected = [0.5, 0.3, 0.3, 0.3, 1.0, 0.7]
        for values, value in zip(result, expected):
            assert np.allclose(values, value)

    def test_path_dependent_exercise(self) -> None:
        """Exercised paths keep their exercise-into value until the next exercise date."""
        calc = _calculator(
            [1.0, 2.0],
            self.xva,
            und_dirty=_constant(self.xva, 5.0),
            und_ex_into={0.5: (9.0, 0.0), 1.0: (0.0, 1.0), 1.5: (0.4, 0.0), 2.0: (1.0, 0.0), 2.5: (0.7, 0.0)},
            continuation=_constant([1.0, 2.0], 0.0),
            option=_constant(self.xva, 0.3),
        )
        paths = _paths([[-1.0, 1.0]] * 5)
        result = calc.simulate_path(self.xva, paths, [True] * 5)

        assert np.allclose(result[1], [0.3, 0.3])
        assert np.allclose(result[2], [0.3, 1.0])
        assert np.allclose(result[3], [0.3, 0.4])
        # exercised at 1.0 means the underlying is held at 2.0
        assert np.allclose(result[4], [1.0, 5.0])
        assert np.allclose(result[5], [0.7, 5.0])

    def test_indicators_are_monotone(self) -> None:
        """Once exercised, a path stays exercised."""
        calc = _calculator(
            [1.0, 2.0],
            self.xva,
            und_dirty=_constant(self.xva, 0.0),
            und_ex_into={1.0: (0.0, 1.0), 2.0: (0.0, -1.0)} | _constant([0.5, 1.5, 2.5], 0.0),
            continuation=_constant([1.0, 2.0], 0.0),
            option=_constant(self.xva, 0.0),
        )
        paths = _paths([[-1.0, 1.0]] * 5)
        calc.simulate_path(self.xva, paths, [True] * 5)

        first, second = calc.exercise_indicators[1], calc.exercise_indicators[2]
        assert np.array_equal(first, [False, True])
        # path 0 exercises at 2.0, path 1 stays exercised although its value turned negative
        assert np.array_equal(second, [True, True])
        assert np.all(second >= first)

    def test_exercise_needs_positive_value(self) -> None:
        """Exercise requires a positive exercise value even above continuation."""
        calc = _calculator(
            [1.0],
            [1.0],
            und_dirty=_constant([1.0], 0.0),
            und_ex_into=_constant([1.0], -0.5),
            continuation=_constant([1.0], -1.0),
            option=_constant([1.0], 0.0),
        )
        calc.simulate_path([1.0], _paths([[0.0, 1.0]]), [True])
        assert not calc.exercise_indicators[1].any()

    def test_state_interpolated_between_valuation_times(self) -> None:
        """Exercise states are interpolated between the bracketing valuation states."""
        calc = _calculator(
            [1.0],
            [0.5, 1.5],
            und_dirty=_constant([0.5, 1.5], 0.0),
            und_ex_into=_constant([0.5, 1.0, 1.5], 0.0, 1.0),
            continuation=_constant([1.0], 0.0),
            option=_constant([0.5, 1.5], 0.2),
        )
        paths = _paths([[1.0, 3.0], [-3.0, -1.0]])
        calc.simulate_path([0.5, 1.5], paths, [True, True])
        assert np.array_equal(calc.exercise_indicators[1], [False, True])

    def test_exercise_before_first_valuation_time(self) -> None:
        """Before the first valuation time the initial state is the left bracket."""
        calc = _calculator(
            [0.25],
            [0.5, 1.0],
            und_dirty=_constant([0.5, 1.0], 0.0),
            und_ex_into={0.25: (-0.5, 1.0)} | _constant([0.5, 1.0], 0.0),
            continuation=_constant([0.25], 0.0),
            option=_constant([0.5, 1.0], 0.0),
        )
        paths = _paths([[1.5, 0.5], [0.0, 0.0]])
        calc.simulate_path([0.5, 1.0], paths, [True, True])
        assert np.array_equal(calc.exercise_indicators[1], [True, False])

    def test_exercise_after_last_valuation_time(self) -> None:
        """Exercise dates after the last valuation time never trigger."""
        calc = _calculator(
            [3.0],
            [1.0, 2.0],
            und_dirty=_constant([1.0, 2.0], 0.0),
            und_ex_into=_constant([1.0, 2.0, 3.0], 10.0),
            continuation=_constant([3.0], 0.0),
            option=_constant([1.0, 2.0], 0.4),
        )
        result = calc.simulate_path([1.0, 2.0], _paths([[0.0, 1.0], [0.0, 1.0]]), [True, True])
        assert not calc.exercise_indicators[1].any()
        assert np.allclose(result[1], 0.4)
        assert np.allclose(result[2], 0.4)

    def test_results_floored_at_zero(self) -> None:
        """Callable values are never negative."""
        calc = _calculator(
            [1.0],
            [0.5, 1.0],
            und_dirty=_constant([0.5, 1.0], -3.0),
            und_ex_into=_constant([0.5, 1.0], -1.0, 1.0),
            continuation=_constant([1.0], 0.0),
            option=_constant([0.5, 1.0], -1.0),
        )
        result = calc.simulate_path([0.5, 1.0], _paths([[0.0, 5.0], [0.0, 5.0]]), [True, True])
        for values in result[1:]:
            assert np.all(values >= 0.0)

    def test_replay_is_deterministic(self) -> None:
        """Replaying the same paths twice gives identical values."""
        calc = _calculator(
            [1.0, 2.0],
            self.xva,
            und_dirty=_constant(self.xva, 1.0, 0.5),
            und_ex_into=_constant(self.xva, 0.2, 1.0),
            continuation=_constant([1.0, 2.0], 0.1, 0.3),
            option=_constant(self.xva, 0.5, 0.2),
        )
        paths = _paths(np.random.default_rng(4).standard_normal((5, 20)).tolist())
        first = calc.simulate_path(self.xva, paths, [True] * 5)
        second = calc.simulate_path(self.xva, paths, [True] * 5)
        for a, b in zip(first, second):
            assert np.array_equal(a, b)


class TestSettlement:
    """Tests for physical and cash settlement."""

    xva = [1.0, 1.5, 2.0]

    def _settled(self, settlement: Settlement) -> list[np.ndarray]:
        calc = _calculator(
            [1.0],
            self.xva,
            und_dirty=_constant(self.xva, 2.0),
            und_ex_into=_constant(self.xva, 1.0),
            continuation=_constant([1.0], 0.0),
            option=_constant(self.xva, 0.1),
            settlement=settlement,
        )
        return calc.simulate_path(self.xva, _paths([[0.0, 0.0]] * 3), [True] * 3)

    def test_cash_settlement_counted_once(self) -> None:
        """Cash settled exercise values appear at one valuation time only."""
        result = self._settled(Settlement.CASH)
        assert np.allclose(result[1], 1.0)
        assert np.allclose(result[2], 0.0)
        assert np.allclose(result[3], 0.0)

    def test_physical_settlement_holds_underlying(self) -> None:
        """Physically settled exercise keeps the exercised underlying."""
        result = self._settled(Settlement.PHYSICAL)
        for values in result[1:]:
            assert np.allclose(values, 1.0)


class TestStickyCloseOut:
    """Tests for the sticky close-out rerun."""

    path_times = [0.5, 0.52, 1.5, 1.52]
    primary = [True, False, True, False]
    close_out = [False, True, False, True]

    @pytest.fixture
    def calc(self) -> MultiLegAmcCalculator:
        xva = [0.5, 1.5]
        return _calculator(
            [1.0],
            xva,
            und_dirty=_constant(xva, 0.0),
            und_ex_into=_constant([0.5, 1.0, 1.5], 5.0, 1.0),
            continuation=_constant([1.0], 5.5),
            option=_constant(xva, 1.0, 2.0),
        )

    @pytest.fixture
    def paths(self) -> np.ndarray:
        # primary states favour exercise on path 0, close-out states on path 1
        return _paths([[1.0, -1.0], [-2.0, 2.0], [1.0, -1.0], [-2.0, 2.0]])

    def test_sticky_run_reuses_decisions(self, calc: MultiLegAmcCalculator, paths: np.ndarray) -> None:
        """Close-out values use the primary run's exercise decisions."""
        calc.simulate_path(self.path_times, paths, self.primary)
        decided = calc.exercise_indicators[1].copy()
        assert np.array_equal(decided, [True, False])

        result = calc.simulate_path(self.path_times, paths, self.close_out, sticky_close_out_run=True)
        assert np.array_equal(calc.exercise_indicators[1], decided)
        assert np.allclose(result[1], [0.0, 5.0])
        assert np.allclose(result[2], [3.0, 5.0])

    def test_sticky_run_on_same_states_matches_primary(self, calc: MultiLegAmcCalculator) -> None:
        """Close-out points carrying the primary states reproduce the primary values."""
        paths = _paths([[1.0, -1.0], [1.0, -1.0], [0.5, -0.5], [0.5, -0.5]])
        primary = calc.simulate_path(self.path_times, paths, self.primary)
        indicators = [ind.copy() for ind in calc.exercise_indicators]
        sticky = calc.simulate_path(self.path_times, paths, self.close_out, sticky_close_out_run=True)
        for a, b in zip(primary, sticky):
            assert np.array_equal(a, b)
        for a, b in zip(indicators, calc.exercise_indicators):
            assert np.array_equal(a, b)

    def test_sticky_run_before_primary_raises(self, calc: MultiLegAmcCalculator, paths: np.ndarray) -> None:
        """A sticky run needs stored decisions."""
        with pytest.raises(StructuralConsistencyError):
            calc.simulate_path(self.path_times, paths, self.close_out, sticky_close_out_run=True)

    def test_negative_sticky_index_raises(self, calc: MultiLegAmcCalculator, paths: np.ndarray) -> None:
        """The first grid point has no preceding primary point."""
        calc.simulate_path(self.path_times, paths, self.primary)
        with pytest.raises(StructuralConsistencyError, match="negative"):
            calc.simulate_path(self.path_times, paths, self.primary, sticky_close_out_run=True)

    def test_sticky_sample_count_mismatch_raises(self, calc: MultiLegAmcCalculator, paths: np.ndarray) -> None:
        """Sticky reruns must use as many samples as the primary run."""
        calc.simulate_path(self.path_times, paths, self.primary)
        wider = np.concatenate([paths, paths[:, :, :1]], axis=2)
        with pytest.raises(StructuralConsistencyError):
            calc.simulate_path(self.path_times, wider, self.close_out, sticky_close_out_run=True)


class TestInputValidation:
    """Tests for structural checks of replay inputs."""

    @pytest.fixture
    def calc(self) -> MultiLegAmcCalculator:
        return _calculator([], [1.0, 2.0], und_dirty=_constant([1.0, 2.0], 0.0))

    def test_empty_paths(self, calc: MultiLegAmcCalculator) -> None:
        """Replays need at least one path time."""
        with pytest.raises(StructuralConsistencyError):
            calc.simulate_path([], [], [])

    def test_path_times_mismatch(self, calc: MultiLegAmcCalculator) -> None:
        """path_times and paths must have the same length."""
        with pytest.raises(StructuralConsistencyError):
            calc.simulate_path([1.0], _paths([[0.0], [0.0]]), [True, True])

    def test_relevant_flags_mismatch(self, calc: MultiLegAmcCalculator) -> None:
        """is_relevant_time and paths must have the same length."""
        with pytest.raises(StructuralConsistencyError):
            calc.simulate_path([1.0, 2.0], _paths([[0.0], [0.0]]), [True])

    def test_relevant_count_mismatch(self, calc: MultiLegAmcCalculator) -> None:
        """One relevant grid point per valuation time is required."""
        with pytest.raises(StructuralConsistencyError):
            calc.simulate_path([1.0, 2.0], _paths([[0.0], [0.0]]), [True, False])

    def test_coefficient_grid_mismatch(self) -> None:
        """Coefficient times must be the exercise and valuation times."""
        with pytest.raises(StructuralConsistencyError):
            MultiLegAmcCalculator(
                external_model_indices=[0],
                settlement=Settlement.PHYSICAL,
                exercise_times=TimeSet([1.0]),
                xva_times=TimeSet([2.0]),
                coefficients=RegressionCoefficients(TimeSet([2.0])),
                basis=BasisSystem(1, 1),
                result_value=0.0,
                initial_state=np.zeros(1),
                base_currency="EUR",
            )

    def test_external_index_size_mismatch(self) -> None:
        """External indices must cover the model state."""
        with pytest.raises(StructuralConsistencyError):
            _calculator([], [1.0], und_dirty=_constant([1.0], 0.0), external_model_indices=[0, 1])
