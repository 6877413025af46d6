"""
Common type aliases used throughout the American Monte Carlo engine.

This module defines type aliases for numpy arrays and other common types
to improve code readability and enable better static type checking.
"""

from typing import TypeAlias

import numpy as np
import numpy.typing as npt

# Array type aliases
FloatArray: TypeAlias = npt.NDArray[np.float64]
"""1D or 2D array of 64-bit floats."""

BoolArray: TypeAlias = npt.NDArray[np.bool_]
"""1D array of per-path flags (exercise indicators, regression filters)."""

SampleVector: TypeAlias = npt.NDArray[np.float64]
"""
1D array of shape (n_samples,) holding one value per Monte Carlo path.

All arithmetic on sample vectors is elementwise across paths.
"""

PathValues: TypeAlias = npt.NDArray[np.float64]
"""
3D array of shape (n_times, state_size, n_samples) with simulated model states.

Time 0 is not stored; index i refers to the i-th positive simulation time.
"""

TimeGrid: TypeAlias = npt.NDArray[np.float64]
"""1D array of time points in years."""

# Scalar type aliases
Rate: TypeAlias = float
"""Interest rate or spread as a decimal (e.g., 0.02 for 2%)."""

Notional: TypeAlias = float
"""Notional amount in currency units."""

Year: TypeAlias = float
"""Time measured in years from the reference date (e.g., 0.25 for 3M)."""
