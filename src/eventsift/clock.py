"""
Clocks for time-dependent sifters.

Sifters that look at the current time (timestamp ranges, rate limiters)
take a Clock in their constructor instead of reading a module-level
global, so tests can drive time explicitly and run in parallel.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as a timezone-aware UTC datetime."""
        ...

    def timestamp(self) -> float:
        """Return the current time as Unix seconds."""
        return self.now().timestamp()


class SystemClock(Clock):
    """Clock backed by the system wall clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class FakeClock(Clock):
    """
    Manually driven clock for tests.

    Usage:
        clock = FakeClock()
        limiter = by_user(quota_per_sec(1), UserKey.PUBKEY, clock=clock)
        clock.advance(1)
    """

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2024, 1, 1, tzinfo=UTC)

    def now(self) -> datetime:
        return self._now

    def set(self, when: datetime) -> None:
        """Jump to the given time."""
        self._now = when

    def advance(self, delta: float | timedelta) -> None:
        """Move the clock forward by seconds or a timedelta."""
        if not isinstance(delta, timedelta):
            delta = timedelta(seconds=delta)
        self._now += delta


default_clock: Clock = SystemClock()
