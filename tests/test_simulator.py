"""
Tests for calibration path simulation.
"""

import numpy as np
import pytest

from amc_core.amc import simulate_paths, state_process
from amc_core.exceptions import StructuralConsistencyError
from amc_core.market import AssetType, CrossAssetModel, CrossAssetStateProcess, IrLgm1fStateProcess


class TestSimulatePaths:
    """Tests for path generation."""

    def test_shape(self, two_ccy_model: CrossAssetModel) -> None:
        """Paths have shape (n_times, state_size, n_samples)."""
        paths = simulate_paths(two_ccy_model, [0.5, 1.0, 2.0], 100, seed=1)
        assert paths.shape == (3, 3, 100)

    def test_deterministic_for_seed(self, single_ccy_model: CrossAssetModel) -> None:
        """Equal seeds give equal paths."""
        a = simulate_paths(single_ccy_model, [1.0, 2.0], 50, seed=5)
        b = simulate_paths(single_ccy_model, [1.0, 2.0], 50, seed=5)
        c = simulate_paths(single_ccy_model, [1.0, 2.0], 50, seed=6)
        assert np.array_equal(a, b)
        assert not np.array_equal(a, c)

    def test_antithetic_pairs(self, single_ccy_model: CrossAssetModel) -> None:
        """Antithetic one-factor paths mirror around zero."""
        paths = simulate_paths(single_ccy_model, [1.0, 2.0], 20, seed=5, antithetic=True)
        assert np.allclose(paths[:, :, :10], -paths[:, :, 10:])

    def test_empty_grid_raises(self, single_ccy_model: CrossAssetModel) -> None:
        """An empty simulation grid cannot be simulated."""
        with pytest.raises(StructuralConsistencyError):
            simulate_paths(single_ccy_model, [], 10, seed=1)

    def test_grid_must_start_after_zero(self, single_ccy_model: CrossAssetModel) -> None:
        """Time 0 is not part of the simulated grid."""
        with pytest.raises(StructuralConsistencyError):
            simulate_paths(single_ccy_model, [0.0, 1.0], 10, seed=1)

    def test_non_positive_samples_raise(self, single_ccy_model: CrossAssetModel) -> None:
        """At least one sample is required."""
        with pytest.raises(ValueError):
            simulate_paths(single_ccy_model, [1.0], 0, seed=1)

    def test_process_selection(self, single_ccy_model: CrossAssetModel, two_ccy_model: CrossAssetModel) -> None:
        """One-factor models use the exact LGM process."""
        assert isinstance(state_process(single_ccy_model), IrLgm1fStateProcess)
        assert isinstance(state_process(two_ccy_model), CrossAssetStateProcess)


class TestMartingales:
    """Deflated prices of traded assets are martingales under the LGM measure."""

    def test_deflated_bond(self, single_ccy_model: CrossAssetModel) -> None:
        """E[P(t, T) / N(t)] = P(0, T)."""
        times = [1.0, 3.0]
        paths = simulate_paths(single_ccy_model, times, 20000, seed=11, antithetic=True)
        lgm = single_ccy_model.irlgm1f(0)
        z = paths[1, 0]
        deflated = lgm.discount_bond(3.0, 5.0, z) / single_ccy_model.numeraire(3.0, z)
        assert np.isclose(deflated.mean(), np.exp(-0.02 * 5.0), rtol=2e-3)

    def test_deflated_foreign_bond(self, two_ccy_model: CrossAssetModel) -> None:
        """E[x(T) / N(T)] = x(0) P_foreign(0, T)."""
        times = [0.5, 1.0, 1.5, 2.0, 2.5, 3.0]
        paths = simulate_paths(two_ccy_model, times, 20000, seed=13, antithetic=True)
        z0 = paths[-1, two_ccy_model.p_idx(AssetType.IR, 0)]
        log_fx = paths[-1, two_ccy_model.p_idx(AssetType.FX, 0)]
        deflated = np.exp(log_fx) / two_ccy_model.numeraire(3.0, z0)
        assert np.isclose(deflated.mean(), 0.90 * np.exp(-0.03 * 3.0), rtol=1e-2)
