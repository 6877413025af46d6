"""
Discount curve implementation for discounting and index projection.

Provides flat and piecewise linear zero-rate curves with vectorized
discount factor calculation.
"""

from dataclasses import dataclass, field

import numpy as np

from amc_core._types import FloatArray, Year


@dataclass
class DiscountCurve:
    """
    Zero-rate curve used as initial term structure of an LGM component
    and as projection curve of rate indexes.

    Supports flat curves (single rate) and piecewise curves with linear
    interpolation of continuously compounded zero rates.

    Attributes
    ----------
    rate : float
        Flat rate for simple curves (continuously compounded)
    tenors : FloatArray | None
        Tenor points for piecewise curves (in years)
    rates : FloatArray | None
        Zero rates corresponding to each tenor

    Example
    -------
    >>> curve = DiscountCurve(rate=0.02)
    >>> df = curve.discount_factor(1.0)
    >>> print(f"1Y DF: {df:.4f}")
    1Y DF: 0.9802
    """

    rate: float = 0.02
    tenors: FloatArray | None = field(default=None)
    rates: FloatArray | None = field(default=None)

    def __post_init__(self) -> None:
        """Validate curve inputs."""
        if (self.tenors is None) != (self.rates is None):
            raise ValueError("Tenors and rates must be given together")
        if self.tenors is not None and self.rates is not None:
            self.tenors = np.asarray(self.tenors, dtype=float)
            self.rates = np.asarray(self.rates, dtype=float)
            if len(self.tenors) != len(self.rates):
                raise ValueError(
                    f"Tenors and rates must have same length, "
                    f"got {len(self.tenors)} and {len(self.rates)}"
                )
            if len(self.tenors) == 0:
                raise ValueError("Piecewise curve needs at least one tenor")
            if not np.all(np.diff(self.tenors) > 0):
                raise ValueError("Tenors must be strictly increasing")

    def zero_rate(self, t: Year | FloatArray) -> float | FloatArray:
        """
        Continuously compounded zero rate to time t.

        Flat extrapolation outside the tenor range, including negative times.
        """
        if self.tenors is None or self.rates is None:
            if np.ndim(t) == 0:
                return self.rate
            return np.full(np.shape(t), self.rate)
        return np.interp(t, self.tenors, self.rates)  # type: ignore[return-value]

    def discount_factor(
        self, t: Year | FloatArray, t_start: Year = 0.0
    ) -> float | FloatArray:
        """
        Calculate discount factor from t_start to t.

        Parameters
        ----------
        t : float | FloatArray
            End time(s) in years; times before t_start give factors above 1
        t_start : float
            Start time in years (default 0)

        Returns
        -------
        float | FloatArray
            Discount factor(s) P(0, t) / P(0, t_start)

        Notes
        -----
        P(0, t) = exp(-z(t) * t)
        """
        t = np.asarray(t, dtype=float)
        log_df = -np.asarray(self.zero_rate(t)) * t
        if t_start != 0.0:
            log_df = log_df + float(self.zero_rate(t_start)) * t_start
        result = np.exp(log_df)
        if result.ndim == 0:
            return float(result)
        return result

    def forward_rate(self, t1: Year, t2: Year) -> float:
        """
        Calculate continuously compounded forward rate.

        Notes
        -----
        f(t1, t2) = -[ln(P(0,t2)) - ln(P(0,t1))] / (t2 - t1)
        """
        if t2 <= t1:
            raise ValueError(f"t2 ({t2}) must be greater than t1 ({t1})")

        df1 = self.discount_factor(t1)
        df2 = self.discount_factor(t2)

        return float(-np.log(df2 / df1) / (t2 - t1))

    def instantaneous_forward(self, t: Year, h: float = 1e-4) -> float:
        """Instantaneous forward rate f(0, t) by central difference."""
        if self.tenors is None:
            return self.rate
        t1 = t - h if t >= h else 0.0
        return self.forward_rate(t1, t + h)
