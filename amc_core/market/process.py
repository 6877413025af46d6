"""
State processes used to propagate model states over a time grid.

``CrossAssetStateProcess`` is the general multi-factor process (Euler
steps with the analytic drifts of the cross-currency LGM model).
``IrLgm1fStateProcess`` is the single-currency specialisation with exact
Gaussian increments; with constant volatility both produce identical
states from identical draws.
"""

import numpy as np

from amc_core._types import FloatArray
from amc_core.market.correlation import CholeskyCorrelation
from amc_core.market.cross_asset import AssetType, CrossAssetModel
from amc_core.market.lgm import LgmModel


class IrLgm1fStateProcess:
    """
    Exact propagation of a single LGM state.

    z(t + dt) = z(t) + sqrt(ζ(t + dt) - ζ(t)) * Z
    """

    def __init__(self, model: LgmModel) -> None:
        self.model = model
        self.correlation = CholeskyCorrelation.identity(1)

    @property
    def size(self) -> int:
        """State size."""
        return 1

    @property
    def initial_values(self) -> FloatArray:
        """Initial state."""
        return np.zeros(1)

    def evolve(self, t0: float, x0: FloatArray, dt: float, dw: FloatArray) -> FloatArray:
        """
        Propagate states from t0 to t0 + dt.

        Parameters
        ----------
        t0 : float
            Start time
        x0 : FloatArray
            States at t0, shape (1, n_samples)
        dt : float
            Step length
        dw : FloatArray
            Standard normal draws, shape (1, n_samples)

        Returns
        -------
        FloatArray
            States at t0 + dt, shape (1, n_samples)
        """
        std = np.sqrt(max(float(self.model.zeta(t0 + dt)) - float(self.model.zeta(t0)), 0.0))
        return x0 + std * dw


class CrossAssetStateProcess:
    """
    Euler propagation of the full cross-currency state.

    IR states (base currency LGM measure):
        dz_i = γ_i dt + α_i dW^z_i
        γ_i = -H_i α_i² + ρ^{zz}_{0i} H_0 α_0 α_i - ε_i ρ^{zx}_{ii} σ_i α_i

    FX log-spots:
        d ln x_i = (r_0 - r_i - ½σ_i² + ρ^{zx}_{0i} H_0 α_0 σ_i) dt + σ_i dW^x_i
    """

    def __init__(self, model: CrossAssetModel) -> None:
        self.model = model
        self.correlation = model.correlation

    @property
    def size(self) -> int:
        """State size."""
        return self.model.state_size

    @property
    def initial_values(self) -> FloatArray:
        """Initial state."""
        return self.model.initial_values

    def evolve(self, t0: float, x0: FloatArray, dt: float, dw: FloatArray) -> FloatArray:
        """
        Propagate states from t0 to t0 + dt.

        Parameters
        ----------
        t0 : float
            Start time
        x0 : FloatArray
            States at t0, shape (state_size, n_samples)
        dt : float
            Step length
        dw : FloatArray
            Correlated standard normal draws, shape (state_size, n_samples)

        Returns
        -------
        FloatArray
            States at t0 + dt
        """
        model = self.model
        sqrt_dt = np.sqrt(dt)
        x1 = np.empty_like(x0)

        lgm0 = model.irlgm1f(0)
        H0 = float(lgm0.H(t0))
        a0 = lgm0.volatility
        n_ir = model.components(AssetType.IR)

        for i in range(n_ir):
            lgm = model.irlgm1f(i)
            ai = lgm.volatility
            drift = 0.0
            if i > 0:
                fx_i = model.p_idx(AssetType.FX, i - 1)
                drift = (
                    -float(lgm.H(t0)) * ai**2
                    + model.corr(0, i) * H0 * a0 * ai
                    - model.corr(i, fx_i) * model.fxbs(i - 1).sigma * ai
                )
            x1[i] = x0[i] + drift * dt + ai * sqrt_dt * dw[i]

        if model.components(AssetType.FX) > 0:
            r0 = lgm0.short_rate(t0, x0[0])
            for k in range(model.components(AssetType.FX)):
                p = model.p_idx(AssetType.FX, k)
                sigma = model.fxbs(k).sigma
                ri = model.irlgm1f(k + 1).short_rate(t0, x0[k + 1])
                drift = r0 - ri - 0.5 * sigma**2 + model.corr(0, p) * H0 * a0 * sigma
                x1[p] = x0[p] + drift * dt + sigma * sqrt_dt * dw[p]

        return x1
