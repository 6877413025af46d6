"""
Exposure simulation with a calibrated multi-leg calculator.

Generates pricing paths independent from the calibration paths, replays
the calculator on them and converts the deflated replay values back to
undiscounted base currency values. With a close-out lag each valuation
time t gets a companion point t + lag; a sticky rerun then values the
instrument on the close-out states reusing the exercise decisions of the
primary run.
"""

import logging
from collections.abc import Sequence

import numpy as np

from amc_core._types import FloatArray, PathValues
from amc_core.amc.calculator import MultiLegAmcCalculator
from amc_core.amc.simulator import simulate_paths
from amc_core.amc.time_grid import TimeSet
from amc_core.config.models import AmcConfig, ExposureConfig
from amc_core.exposure.metrics import ExposureProfile
from amc_core.market.cross_asset import AssetType, CrossAssetModel
from amc_core.market.curve import DiscountCurve

logger = logging.getLogger(__name__)


class ExposureSimulator:
    """
    Drives a ``MultiLegAmcCalculator`` over simulated pricing paths.

    Parameters
    ----------
    model : CrossAssetModel
        Risk-factor model (the calculator's external model indices refer
        to its state vector)
    valuation_times : Sequence[float]
        Valuation times, must equal the engine's simulation times
    n_paths : int
        Number of pricing paths
    seed : int | None
        Pricing path seed
    close_out_lag : float | None
        Margin period of risk; enables the sticky close-out rerun
    antithetic : bool
        Use antithetic pricing paths
    discount_curve : DiscountCurve | None
        Curve overriding the base model curve in the numeraire
    pfe_quantile : float
        Quantile reported by the profile
    """

    def __init__(
        self,
        model: CrossAssetModel,
        valuation_times: Sequence[float],
        n_paths: int = 2000,
        seed: int | None = None,
        close_out_lag: float | None = None,
        antithetic: bool = False,
        discount_curve: DiscountCurve | None = None,
        pfe_quantile: float = 0.95,
    ) -> None:
        self.model = model
        self.valuation_times = TimeSet(valuation_times)
        if self.valuation_times.empty:
            raise ValueError("At least one valuation time is required")
        if self.valuation_times.first <= 0:
            raise ValueError("Valuation times must be positive")
        if close_out_lag is not None:
            if close_out_lag <= 0:
                raise ValueError(f"close_out_lag must be positive, got {close_out_lag}")
            spacing = np.diff(self.valuation_times.times)
            if spacing.size and close_out_lag >= spacing.min():
                raise ValueError(
                    f"close_out_lag ({close_out_lag}) must be shorter than the valuation "
                    f"time spacing ({spacing.min()})"
                )
        self.n_paths = n_paths
        self.seed = seed
        self.close_out_lag = close_out_lag
        self.antithetic = antithetic
        self.discount_curve = discount_curve
        self.pfe_quantile = pfe_quantile

    @classmethod
    def from_config(
        cls, model: CrossAssetModel, exposure: ExposureConfig, amc: AmcConfig
    ) -> "ExposureSimulator":
        """Create simulator from exposure and engine configuration."""
        return cls(
            model,
            exposure.valuation_times,
            n_paths=amc.pricing_samples,
            seed=amc.pricing_seed,
            close_out_lag=exposure.close_out_lag,
            antithetic=amc.antithetic,
            pfe_quantile=exposure.pfe_quantile,
        )

    @property
    def close_out_times(self) -> TimeSet | None:
        if self.close_out_lag is None:
            return None
        return TimeSet(self.valuation_times.times + self.close_out_lag)

    @property
    def path_times(self) -> TimeSet:
        """Grid the pricing paths are simulated on."""
        close_out = self.close_out_times
        return self.valuation_times if close_out is None else self.valuation_times.union(close_out)

    def simulate(self) -> PathValues:
        """Pricing path states, shape (n_path_times, state_size, n_paths)."""
        return simulate_paths(
            self.model, self.path_times.times, self.n_paths, seed=self.seed, antithetic=self.antithetic
        )

    def _inflate(self, deflated: list[FloatArray], times: TimeSet, path_values: PathValues) -> FloatArray:
        """Undiscounted values, shape (n_paths, n_times), from deflated replay output."""
        grid = self.path_times
        ir0 = self.model.p_idx(AssetType.IR, 0)
        columns = []
        for k, t in enumerate(times):
            z = path_values[grid.index(t), ir0]
            columns.append(deflated[k + 1] * self.model.numeraire(t, z, self.discount_curve))
        return np.column_stack(columns)

    def run(self, calculator: MultiLegAmcCalculator, path_values: PathValues | None = None) -> ExposureProfile:
        """
        Replay the calculator on pricing paths.

        Parameters
        ----------
        calculator : MultiLegAmcCalculator
            Calibrated calculator (its valuation times must equal ours)
        path_values : PathValues | None
            Pre-simulated states on ``path_times``; simulated if omitted

        Returns
        -------
        ExposureProfile
            Values per path and valuation time
        """
        if path_values is None:
            path_values = self.simulate()
        grid = self.path_times
        times = list(grid)
        paths = [path_values[i] for i in range(len(grid))]

        relevant = [t in self.valuation_times for t in times]
        deflated = calculator.simulate_path(times, paths, relevant)
        values = self._inflate(deflated, self.valuation_times, path_values)

        close_out_values = None
        close_out = self.close_out_times
        if close_out is not None:
            relevant_co = [t in close_out for t in times]
            deflated_co = calculator.simulate_path(times, paths, relevant_co, sticky_close_out_run=True)
            close_out_values = self._inflate(deflated_co, close_out, path_values)

        logger.debug(
            "exposure run: %d paths, %d valuation times, close-out %s",
            self.n_paths, len(self.valuation_times), "on" if close_out is not None else "off",
        )
        return ExposureProfile(
            time_grid=self.valuation_times.times,
            values=values,
            npv=float(deflated[0][0]),
            close_out_values=close_out_values,
            pfe_quantile=self.pfe_quantile,
        )
