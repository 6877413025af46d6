"""
Forward replay of a calibrated multi-leg engine along external paths.

The calculator holds the regression coefficients produced by the
backward induction and evaluates them on states supplied by an exposure
simulation. For callable instruments it first decides, per path, whether
and when the option was exercised, then picks the matching regression at
each valuation time.

Values are numeraire-deflated, in base currency, like the calibration
targets they were regressed on.
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np

from amc_core._types import BoolArray, FloatArray, SampleVector
from amc_core.amc.regression import BasisSystem, conditional_expectation
from amc_core.amc.time_grid import TimeSet
from amc_core.exceptions import StructuralConsistencyError
from amc_core.instruments.multileg import Settlement

logger = logging.getLogger(__name__)


@dataclass
class RegressionCoefficients:
    """
    Regression coefficients per time of the exercise and valuation grid.

    Attributes
    ----------
    times : TimeSet
        Union of exercise and valuation times
    und_dirty : list[FloatArray | None]
        Dirty underlying value, at valuation times
    und_ex_into : list[FloatArray | None]
        Exercise-into underlying value, at all times if exercise exists
    continuation : list[FloatArray | None]
        Continuation value, at exercise times
    option : list[FloatArray | None]
        Option value, at all times
    """

    times: TimeSet
    und_dirty: list[FloatArray | None] = field(default_factory=list)
    und_ex_into: list[FloatArray | None] = field(default_factory=list)
    continuation: list[FloatArray | None] = field(default_factory=list)
    option: list[FloatArray | None] = field(default_factory=list)

    def __post_init__(self) -> None:
        n = len(self.times)
        for name in ("und_dirty", "und_ex_into", "continuation", "option"):
            values = getattr(self, name)
            if not values:
                setattr(self, name, [None] * n)
            elif len(values) != n:
                raise StructuralConsistencyError(
                    f"{name} has {len(values)} entries for {n} regression times"
                )

    def at(self, kind: str, t: float) -> FloatArray:
        """Coefficients of the given kind at time t."""
        coefficients = getattr(self, kind)[self.times.index(t)]
        if coefficients is None:
            raise StructuralConsistencyError(f"no {kind} regression coefficients at time {t}")
        return coefficients


class MultiLegAmcCalculator:
    """
    Replays calibrated regressions along externally simulated paths.

    Parameters
    ----------
    external_model_indices : list[int]
        Positions of the engine's model states within the external state
        vector
    settlement : Settlement
        Exercise settlement; cash settlement counts the exercised value at
        one valuation time only
    exercise_times : TimeSet
        Exercise times after the reference date
    xva_times : TimeSet
        Valuation times
    coefficients : RegressionCoefficients
        Calibrated regressions on exercise_times ∪ xva_times
    basis : BasisSystem
        Basis the coefficients refer to
    result_value : float
        Reference date value
    initial_state : FloatArray
        Model state at time 0, used to interpolate exercise states before
        the first valuation time
    base_currency : str
        Currency the values are expressed in

    Notes
    -----
    The calculator keeps the exercise indicators of its last primary run
    for a following sticky close-out run. Reruns on one instance must not
    overlap.
    """

    def __init__(
        self,
        external_model_indices: Sequence[int],
        settlement: Settlement,
        exercise_times: TimeSet,
        xva_times: TimeSet,
        coefficients: RegressionCoefficients,
        basis: BasisSystem,
        result_value: float,
        initial_state: FloatArray,
        base_currency: str,
    ) -> None:
        self.external_model_indices = list(external_model_indices)
        self.settlement = settlement
        self.exercise_times = exercise_times
        self.xva_times = xva_times
        self.exercise_xva_times = exercise_times.union(xva_times)
        self.coefficients = coefficients
        self.basis = basis
        self.result_value = result_value
        self.initial_state = np.asarray(initial_state, dtype=float)
        self.base_currency = base_currency
        self._exercised: list[BoolArray] | None = None

        if coefficients.times != self.exercise_xva_times:
            raise StructuralConsistencyError(
                "regression coefficient times do not match exercise and valuation times"
            )
        if len(self.external_model_indices) != self.initial_state.size:
            raise StructuralConsistencyError(
                f"{len(self.external_model_indices)} external model indices for a state "
                f"of size {self.initial_state.size}"
            )

    @property
    def exercise_indicators(self) -> list[BoolArray] | None:
        """
        Cumulative exercise indicators of the last primary run.

        Entry k (k >= 1) flags paths exercised at or before the k-th exercise
        time; entry 0 is all False.
        """
        return self._exercised

    def _effective_paths(
        self,
        path_times: Sequence[float],
        paths: Sequence,
        is_relevant_time: Sequence[bool],
        sticky_close_out_run: bool,
    ) -> list[FloatArray]:
        """States at the relevant times, restricted to the model indices."""
        if len(paths) == 0:
            raise StructuralConsistencyError("no future path times, cannot simulate path")
        if len(path_times) != len(paths):
            raise StructuralConsistencyError(
                f"inconsistent path_times size ({len(path_times)}) and paths size ({len(paths)})"
            )
        if len(is_relevant_time) != len(paths):
            raise StructuralConsistencyError(
                f"inconsistent is_relevant_time size ({len(is_relevant_time)}) "
                f"and paths size ({len(paths)})"
            )

        eff_paths = []
        sim_times = []
        for i, relevant in enumerate(is_relevant_time):
            if not relevant:
                continue
            ind = i - 1 if sticky_close_out_run else i
            if ind < 0:
                raise StructuralConsistencyError("sticky close out run time index is negative")
            sim_times.append(path_times[ind])
            eff_paths.append(
                np.vstack([np.asarray(paths[i][j], dtype=float) for j in self.external_model_indices])
            )

        if len(sim_times) != len(self.xva_times):
            raise StructuralConsistencyError(
                f"expected {len(self.xva_times)} relevant path times, got {len(sim_times)}"
            )
        return eff_paths

    def _exercise_decisions(self, eff_paths: list[FloatArray], n: int) -> list[BoolArray]:
        """Cumulative exercise indicators, one per exercise time plus a leading all-False."""
        exercised = [np.zeros(n, dtype=bool)]
        initial = np.repeat(self.initial_state[:, None], n, axis=1)
        for t in self.exercise_times:
            previous = exercised[-1]
            k2 = self.xva_times.lower_bound(t)
            if k2 == len(self.xva_times):
                # exercise after the last valuation time never triggers
                exercised.append(previous.copy())
                continue
            time2, s2 = self.xva_times[k2], eff_paths[k2]
            if k2 == 0:
                time1, s1 = 0.0, initial
            else:
                time1, s1 = self.xva_times[k2 - 1], eff_paths[k2 - 1]
            w = (t - time1) / (time2 - time1)
            state = (1.0 - w) * s1 + w * s2

            exercise_value = conditional_expectation(state, self.basis, self.coefficients.at("und_ex_into", t))
            continuation_value = conditional_expectation(
                state, self.basis, self.coefficients.at("continuation", t)
            )
            new = ~previous & (exercise_value > continuation_value) & (exercise_value > 0.0)
            exercised.append(previous | new)
            logger.debug("exercise time %.4f: %d paths exercise", t, int(new.sum()))
        return exercised

    def simulate_path(
        self,
        path_times: Sequence[float],
        paths: Sequence,
        is_relevant_time: Sequence[bool],
        sticky_close_out_run: bool = False,
    ) -> list[SampleVector]:
        """
        Values along external paths.

        Parameters
        ----------
        path_times : Sequence[float]
            Times of the external path grid
        paths : Sequence
            ``paths[i][j]`` is the sample vector of external state j at
            ``path_times[i]``
        is_relevant_time : Sequence[bool]
            Flags the grid points holding the valuation times (for a sticky
            close-out run, the close-out points one position later)
        sticky_close_out_run : bool
            Reuse the exercise decisions of the previous primary run

        Returns
        -------
        list[SampleVector]
            Reference date value followed by one value per valuation time

        Raises
        ------
        StructuralConsistencyError
            On inconsistent inputs or a sticky run without a primary run
        """
        eff_paths = self._effective_paths(path_times, paths, is_relevant_time, sticky_close_out_run)
        n = np.asarray(paths[0][self.external_model_indices[0]]).size
        result = [np.full(n, self.result_value)]

        if self.exercise_times.empty:
            for k, t in enumerate(self.xva_times):
                result.append(
                    conditional_expectation(eff_paths[k], self.basis, self.coefficients.at("und_dirty", t))
                )
            return result

        if not sticky_close_out_run:
            self._exercised = self._exercise_decisions(eff_paths, n)
        elif self._exercised is None:
            raise StructuralConsistencyError("sticky close out run requires a preceding primary run")
        elif self._exercised[0].size != n:
            raise StructuralConsistencyError(
                f"sticky close out run has {n} samples, primary run had {self._exercised[0].size}"
            )
        exercised = self._exercised

        accounted = np.zeros(n, dtype=bool)
        exercise_counter = 0
        xva_counter = 0
        for t in self.exercise_xva_times:
            if t in self.exercise_times:
                exercise_counter += 1
            if t not in self.xva_times:
                continue

            state = eff_paths[xva_counter]
            was_exercised = exercised[exercise_counter]
            exercised_at_latest = was_exercised & ~exercised[max(exercise_counter - 1, 0)]

            option_value = conditional_expectation(state, self.basis, self.coefficients.at("option", t))
            exercised_value = np.where(
                exercised_at_latest,
                conditional_expectation(state, self.basis, self.coefficients.at("und_ex_into", t)),
                conditional_expectation(state, self.basis, self.coefficients.at("und_dirty", t)),
            )
            if self.settlement is Settlement.CASH:
                exercised_value = np.where(accounted, 0.0, exercised_value)
                accounted = accounted | was_exercised

            result.append(np.maximum(np.where(was_exercised, exercised_value, option_value), 0.0))
            xva_counter += 1

        return result
