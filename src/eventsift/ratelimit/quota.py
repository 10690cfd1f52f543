"""
Rate-limit quotas.

A Quota allows ``count`` requests per ``period``, plus ``burst`` extra
requests that may arrive back-to-back. The constructors below don't allow
any burst; use Quota.with_burst() for that.

Usage:
    quota_per_hour(500).with_burst(50)
    quota_per_hour(100).with_burst(10).for_kinds(1)
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from eventsift.errors import QuotaConfigError


@dataclass(frozen=True)
class Quota:
    """
    Number of requests allowed per time period, with burst.

    Attributes:
        count: Requests allowed per period
        period: Length of the period
        burst: Additional requests available immediately
    """

    count: int
    period: timedelta
    burst: int = 0

    def __post_init__(self) -> None:
        """Validate parameters."""
        if self.count <= 0:
            raise QuotaConfigError(parameter="count", value=self.count)
        if self.period <= timedelta(0):
            raise QuotaConfigError(parameter="period", value=self.period)
        if self.burst < 0:
            raise QuotaConfigError(parameter="burst", value=self.burst)

    @property
    def emission_interval(self) -> float:
        """Seconds between two requests at the steady rate."""
        return self.period.total_seconds() / self.count

    def with_burst(self, max_burst: int) -> "Quota":
        """Create a new Quota with the same rate, allowing bursts."""
        return Quota(count=self.count, period=self.period, burst=max_burst)

    def for_kinds(self, *kinds: int) -> "QuotaForKinds":
        """Apply this quota only to events of the given kinds."""
        kind_set = frozenset(kinds)
        return QuotaForKinds(match_kind=kind_set.__contains__, quota=self)

    def for_kinds_matching(self, match_kind: Callable[[int], bool]) -> "QuotaForKinds":
        """
        Apply this quota only to events whose kind satisfies match_kind.

        The kind predicates in eventsift.sifters.matchers (such as
        kinds_all_replaceable) fit here.
        """
        return QuotaForKinds(match_kind=match_kind, quota=self)

    def __str__(self) -> str:
        return f"{self.count}/{self.period} (burst {self.burst})"


@dataclass(frozen=True)
class QuotaForKinds:
    """A quota applied to write requests of specific kinds of events."""

    match_kind: Callable[[int], bool]
    quota: Quota


def quota_per_sec(n: int) -> Quota:
    """Quota with max rate of n per second."""
    return Quota(count=n, period=timedelta(seconds=1))


def quota_per_min(n: int) -> Quota:
    """Quota with max rate of n per minute."""
    return Quota(count=n, period=timedelta(minutes=1))


def quota_per_hour(n: int) -> Quota:
    """Quota with max rate of n per hour."""
    return Quota(count=n, period=timedelta(hours=1))


def quota_per_day(n: int) -> Quota:
    """Quota with max rate of n per day."""
    return Quota(count=n, period=timedelta(days=1))


def quota_per_duration(n: int, period: timedelta) -> Quota:
    """Quota with max rate of n per the given period."""
    return Quota(count=n, period=period)
