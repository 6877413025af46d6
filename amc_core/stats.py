"""
Timing statistics for engine runs.

The caller owns an ``EngineStats`` instance and passes it into the
calibration; the engine only resumes and stops its timers.
"""

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field


@dataclass
class Timer:
    """
    Accumulating wall-clock timer.

    ``resume`` and ``stop`` may be called repeatedly; ``elapsed`` is the
    sum of all completed intervals in seconds.
    """

    elapsed: float = 0.0
    _started: float | None = field(default=None, repr=False)

    def resume(self) -> None:
        """Start a new timing interval (no-op if already running)."""
        if self._started is None:
            self._started = time.perf_counter()

    def stop(self) -> None:
        """Close the running interval and add it to ``elapsed``."""
        if self._started is not None:
            self.elapsed += time.perf_counter() - self._started
            self._started = None

    def reset(self) -> None:
        """Discard all accumulated time."""
        self.elapsed = 0.0
        self._started = None


@dataclass
class EngineStats:
    """
    Timers for the stages of a multi-leg engine calculation.

    Attributes
    ----------
    other_timer : Timer
        Descriptor construction and time grid set-up
    path_timer : Timer
        Calibration path generation
    calc_timer : Timer
        Backward induction and regressions
    """

    other_timer: Timer = field(default_factory=Timer)
    path_timer: Timer = field(default_factory=Timer)
    calc_timer: Timer = field(default_factory=Timer)

    @property
    def total(self) -> float:
        """Total elapsed seconds over all stages."""
        return self.other_timer.elapsed + self.path_timer.elapsed + self.calc_timer.elapsed

    def reset(self) -> None:
        """Reset all timers."""
        self.other_timer.reset()
        self.path_timer.reset()
        self.calc_timer.reset()

    def to_dict(self) -> dict[str, float]:
        """Elapsed seconds per stage."""
        return {
            "other": self.other_timer.elapsed,
            "path": self.path_timer.elapsed,
            "calc": self.calc_timer.elapsed,
            "total": self.total,
        }


@contextmanager
def log_timing(logger: logging.Logger, label: str, enabled: bool = True) -> Iterator[None]:
    """Log the wall-clock duration of the enclosed block at debug level."""
    if not enabled:
        yield
        return
    start = time.perf_counter()
    try:
        yield
    finally:
        logger.debug("%s took %.3fs", label, time.perf_counter() - start)
