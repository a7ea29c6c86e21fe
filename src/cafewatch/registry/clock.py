"""Time source for the registry.

The registry never reads the system time directly; it asks a Clock. The
server uses SystemClock, tests substitute a clock they can advance.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from cafewatch.utils.timefmt import now_ms


class Clock(ABC):
    """Abstract wall-clock time source in epoch milliseconds."""

    @abstractmethod
    def now_ms(self) -> int:
        """Return the current time in milliseconds since the Unix epoch."""
        ...


class SystemClock(Clock):
    """Clock backed by the host's wall clock."""

    def now_ms(self) -> int:
        return now_ms()
