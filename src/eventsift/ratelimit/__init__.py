"""
Rate limiting for eventsift.

Per-user admission control using the Generic Cell Rate Algorithm. Rate
limiters are ordinary sifters, so they compose with pipeline / one_of
like any other:

    limiter = by_user(quota_per_hour(500).with_burst(50), UserKey.PUBKEY)
    policy = pipeline(limiter, kind_list([1, 7], Mode.ALLOW))

The limiter is the only stateful sifter. Its state lives in memory and
is lost on restart.
"""

from eventsift.ratelimit.gcra import GCRARateLimiter, LimiterState, MemoryStore, RateLimitResult
from eventsift.ratelimit.quota import (
    Quota,
    QuotaForKinds,
    quota_per_day,
    quota_per_duration,
    quota_per_hour,
    quota_per_min,
    quota_per_sec,
)
from eventsift.ratelimit.sifter import (
    RateLimitSifter,
    UserKey,
    by_user,
    by_user_and_kind,
    derive_user_and_kind_key,
    derive_user_key,
)

__all__ = [
    "GCRARateLimiter",
    "LimiterState",
    "MemoryStore",
    "Quota",
    "QuotaForKinds",
    "RateLimitResult",
    "RateLimitSifter",
    "UserKey",
    "by_user",
    "by_user_and_kind",
    "derive_user_and_kind_key",
    "derive_user_key",
    "quota_per_day",
    "quota_per_duration",
    "quota_per_hour",
    "quota_per_min",
    "quota_per_sec",
]
