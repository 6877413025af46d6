"""
Sorted unique time sets with binary-search index lookup.

Exercise, valuation and cash-flow generation times are kept as
``TimeSet`` instances; the engine merges them with ``union`` and maps
times back to array positions with ``index``.
"""

from collections.abc import Iterable, Iterator

import numpy as np

from amc_core._types import TimeGrid
from amc_core.exceptions import StructuralConsistencyError


class TimeSet:
    """
    Strictly increasing sequence of unique times.

    Lookups are exact: a time is found only if it is bit-for-bit equal to
    a stored time, which is what the engine needs when it maps cash-flow
    pay and fixing times onto the simulation grid.

    Example
    -------
    >>> grid = TimeSet([0.5, 1.0, 2.0])
    >>> grid.index(1.0)
    1
    >>> grid.lower_bound(1.5)
    2
    """

    def __init__(self, times: Iterable[float] = ()) -> None:
        arr = np.asarray(list(times), dtype=float)
        if arr.ndim != 1:
            raise ValueError(f"TimeSet needs a 1D sequence, got shape {arr.shape}")
        if arr.size > 1 and np.any(np.diff(arr) <= 0):
            raise ValueError("TimeSet times must be strictly increasing")
        self._times = arr

    @classmethod
    def from_unsorted(cls, times: Iterable[float]) -> "TimeSet":
        """Build from any collection of times, sorting and removing duplicates."""
        return cls(np.unique(np.asarray(list(times), dtype=float)))

    @property
    def times(self) -> TimeGrid:
        """Copy of the stored times."""
        return self._times.copy()

    def __len__(self) -> int:
        return self._times.size

    def __iter__(self) -> Iterator[float]:
        return (float(t) for t in self._times)

    def __getitem__(self, i: int) -> float:
        return float(self._times[i])

    def __contains__(self, t: float) -> bool:
        i = int(np.searchsorted(self._times, t))
        return i < self._times.size and self._times[i] == t

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TimeSet):
            return NotImplemented
        return np.array_equal(self._times, other._times)

    def __repr__(self) -> str:
        return f"TimeSet({self._times.tolist()})"

    @property
    def empty(self) -> bool:
        return self._times.size == 0

    @property
    def first(self) -> float:
        return float(self._times[0])

    @property
    def last(self) -> float:
        return float(self._times[-1])

    def index(self, t: float) -> int:
        """
        Position of t.

        Raises
        ------
        StructuralConsistencyError
            If t is not in the set
        """
        i = int(np.searchsorted(self._times, t))
        if i >= self._times.size or self._times[i] != t:
            raise StructuralConsistencyError(f"time ({t}) not found in time grid")
        return i

    def lower_bound(self, t: float) -> int:
        """Position of the first time >= t (len(self) if there is none)."""
        return int(np.searchsorted(self._times, t, side="left"))

    def union(self, *others: "TimeSet") -> "TimeSet":
        """Merged set of this and the other time sets."""
        return TimeSet(np.unique(np.concatenate([self._times, *(o._times for o in others)])))

    def without(self, t: float) -> "TimeSet":
        """Copy with t removed (if present)."""
        return TimeSet(self._times[self._times != t])

    def after(self, t: float) -> "TimeSet":
        """Times strictly greater than t."""
        return TimeSet(self._times[self._times > t])
