"""
Path simulation over the engine's simulation time grid.

Draws for all steps are generated upfront from a seeded generator, so
sample i always corresponds to the same path regardless of how the
propagation is organised. Single-currency models are propagated with the
exact one-factor LGM process, everything else with the general
cross-asset process.
"""

import logging

import numpy as np

from amc_core._types import PathValues, TimeGrid
from amc_core.exceptions import StructuralConsistencyError
from amc_core.market.cross_asset import CrossAssetModel
from amc_core.market.process import CrossAssetStateProcess, IrLgm1fStateProcess

logger = logging.getLogger(__name__)


def state_process(model: CrossAssetModel) -> IrLgm1fStateProcess | CrossAssetStateProcess:
    """Lowest dimensional process able to propagate the model's state."""
    if model.dimension == 1:
        return IrLgm1fStateProcess(model.irlgm1f(0))
    return model.state_process()


def simulate_paths(
    model: CrossAssetModel,
    simulation_times: TimeGrid,
    n_samples: int,
    seed: int | None = None,
    antithetic: bool = False,
) -> PathValues:
    """
    Simulate model states at every positive grid time.

    Parameters
    ----------
    model : CrossAssetModel
        Risk-factor model
    simulation_times : TimeGrid
        Strictly increasing positive times (time 0 excluded)
    n_samples : int
        Number of paths
    seed : int | None
        Random seed
    antithetic : bool
        Pair sample i with sample i + n_samples / 2 (mirrored draws)

    Returns
    -------
    PathValues
        Shape (n_times, state_size, n_samples)

    Raises
    ------
    StructuralConsistencyError
        If the grid is empty or not strictly increasing from a positive time

    Example
    -------
    >>> paths = simulate_paths(model, np.array([0.5, 1.0, 2.0]), n_samples=1000, seed=42)
    >>> paths.shape
    (3, 1, 1000)
    """
    times = np.asarray(simulation_times, dtype=float)
    if times.size == 0:
        raise StructuralConsistencyError("simulation time grid is empty, cannot simulate paths")
    if times[0] <= 0 or np.any(np.diff(times) <= 0):
        raise StructuralConsistencyError(
            "simulation times must be positive and strictly increasing"
        )
    if n_samples <= 0:
        raise ValueError(f"n_samples must be positive, got {n_samples}")

    process = state_process(model)
    size = process.size
    logger.debug(
        "simulating %d paths over %d times with %s (state size %d)",
        n_samples, times.size, type(process).__name__, size,
    )

    # (n_samples, n_times, size) -> (n_times, size, n_samples)
    dw = process.correlation.generate_correlated_samples(
        n_samples, times.size, seed=seed, antithetic=antithetic
    ).transpose(1, 2, 0)

    paths = np.empty((times.size, size, n_samples))
    x = np.repeat(np.asarray(process.initial_values, dtype=float)[:, None], n_samples, axis=1)
    t_prev = 0.0
    for i, t in enumerate(times):
        x = process.evolve(t_prev, x, float(t) - t_prev, dw[i])
        paths[i] = x
        t_prev = float(t)
    return paths
