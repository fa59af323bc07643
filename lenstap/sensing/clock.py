"""
Millisecond clock sources.

Every threshold and cooldown in the trigger engine is a difference between
two readings of the same clock, so only monotonicity matters, not the epoch.

Provides:
    - MonotonicClock: wall-independent time from ``time.monotonic_ns``
    - ReplayClock: externally driven time for recordings and tests
"""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable


@runtime_checkable
class Clock(Protocol):
    """Protocol for a monotonic millisecond time source."""

    def uptime_millis(self) -> int:
        """Return the current time in whole milliseconds."""
        ...


class MonotonicClock:
    """Clock backed by the interpreter's monotonic timer."""

    def uptime_millis(self) -> int:
        return time.monotonic_ns() // 1_000_000

    def __repr__(self) -> str:
        return "MonotonicClock()"


class ReplayClock:
    """
    Manually driven clock.

    Used when replaying a recording (the clock is set to each event's
    timestamp before dispatch) and in tests.

    Parameters
    ----------
    start_ms : int
        Initial reading (default 0).
    """

    def __init__(self, start_ms: int = 0) -> None:
        self._now = int(start_ms)

    def uptime_millis(self) -> int:
        return self._now

    def set_time(self, millis: int) -> None:
        """Jump to an absolute reading. Time may not run backwards."""
        millis = int(millis)
        if millis < self._now:
            raise ValueError(
                f"ReplayClock cannot move backwards ({millis} < {self._now})"
            )
        self._now = millis

    def advance(self, millis: int) -> int:
        """Move forward by *millis* and return the new reading."""
        if millis < 0:
            raise ValueError("advance() requires a non-negative interval")
        self._now += int(millis)
        return self._now

    def __repr__(self) -> str:
        return f"ReplayClock(now={self._now})"
