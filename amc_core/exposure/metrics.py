"""
Exposure metrics over replayed instrument values.

Provides functions to compute:
- EPE (Expected Positive Exposure)
- ENE (Expected Negative Exposure)
- PFE (Potential Future Exposure)

and the ``ExposureProfile`` container returned by the exposure simulator.
"""

from dataclasses import dataclass

import numpy as np
import pandas as pd

from amc_core._types import FloatArray


def calculate_epe(values: FloatArray) -> FloatArray:
    """
    Expected Positive Exposure at each valuation time.

    EPE(t) = E[max(V(t), 0)]

    Parameters
    ----------
    values : FloatArray
        Instrument values, shape (n_paths, n_times)

    Returns
    -------
    FloatArray
        EPE per time, shape (n_times,)
    """
    return np.maximum(values, 0.0).mean(axis=0)


def calculate_ene(values: FloatArray) -> FloatArray:
    """
    Expected Negative Exposure at each valuation time.

    ENE(t) = E[max(-V(t), 0)]
    """
    return np.maximum(-values, 0.0).mean(axis=0)


def calculate_pfe(values: FloatArray, quantile: float = 0.95) -> FloatArray:
    """
    Potential Future Exposure at each valuation time.

    PFE(t, α) = Quantile_α(max(V(t), 0))

    Parameters
    ----------
    values : FloatArray
        Instrument values, shape (n_paths, n_times)
    quantile : float
        Quantile level

    Returns
    -------
    FloatArray
        PFE per time, shape (n_times,)
    """
    if not 0 < quantile < 1:
        raise ValueError(f"Quantile must be in (0, 1), got {quantile}")
    return np.quantile(np.maximum(values, 0.0), quantile, axis=0)


@dataclass
class ExposureProfile:
    """
    Replayed values of one instrument on an exposure grid.

    Attributes
    ----------
    time_grid : FloatArray
        Valuation times, shape (n_times,)
    values : FloatArray
        Undiscounted base currency values, shape (n_paths, n_times)
    npv : float
        Reference date value
    close_out_values : FloatArray | None
        Values on the close-out grid (sticky rerun), same shape as values
    pfe_quantile : float
        Quantile used by ``pfe`` and ``to_dataframe``

    Example
    -------
    >>> profile = ExposureSimulator(model, [0.5, 1.0], n_paths=1000).run(result.calculator)
    >>> profile.peak_epe >= 0
    True
    """

    time_grid: FloatArray
    values: FloatArray
    npv: float
    close_out_values: FloatArray | None = None
    pfe_quantile: float = 0.95

    def __post_init__(self) -> None:
        if self.values.ndim != 2 or self.values.shape[1] != self.time_grid.size:
            raise ValueError(
                f"values must have shape (n_paths, {self.time_grid.size}), got {self.values.shape}"
            )
        if self.close_out_values is not None and self.close_out_values.shape != self.values.shape:
            raise ValueError("close_out_values must have the same shape as values")

    @property
    def n_paths(self) -> int:
        return self.values.shape[0]

    @property
    def epe(self) -> FloatArray:
        return calculate_epe(self.values)

    @property
    def ene(self) -> FloatArray:
        return calculate_ene(self.values)

    def pfe(self, quantile: float | None = None) -> FloatArray:
        """PFE profile at the given (or configured) quantile."""
        return calculate_pfe(self.values, self.pfe_quantile if quantile is None else quantile)

    @property
    def peak_epe(self) -> float:
        return float(np.max(self.epe)) if self.time_grid.size else 0.0

    @property
    def expected_value(self) -> FloatArray:
        """Mean value per time."""
        return self.values.mean(axis=0)

    def to_dataframe(self) -> pd.DataFrame:
        """
        Exposure profile as a table indexed by time.

        Returns
        -------
        pd.DataFrame
            Columns: expected_value, epe, ene, pfe (and close_out_epe when
            close-out values are present)
        """
        df = pd.DataFrame(
            {
                "time": self.time_grid,
                "expected_value": self.expected_value,
                "epe": self.epe,
                "ene": self.ene,
                "pfe": self.pfe(),
            }
        )
        if self.close_out_values is not None:
            df["close_out_epe"] = calculate_epe(self.close_out_values)
        return df.set_index("time")
