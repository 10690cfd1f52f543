"""
Rate-limiting sifters.

A rate-limiting sifter derives a key from the request (the client's IP
address or the author's pubkey, optionally combined with the event kind),
selects the limiter responsible for the request and asks it whether the
request fits the quota.

Requests are never limited when:
    - they didn't come from an end user (import, stream, sync)
    - the exclusion predicate matches them
    - the IP address is required but can't be parsed
    - no quota applies to their kind (by_user_and_kind)

A limiter failure (timeout) is raised as LimiterError, not turned into a
decision.
"""

import ipaddress
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Self

import structlog

from eventsift.clock import Clock
from eventsift.ratelimit.gcra import (
    DEFAULT_STORE_CAPACITY,
    DEFAULT_TIMEOUT_SECONDS,
    GCRARateLimiter,
    MemoryStore,
)
from eventsift.ratelimit.quota import Quota, QuotaForKinds
from eventsift.schema import (
    REJECT_PREFIX_RATE_LIMITED,
    Decision,
    Request,
    build_reject_message,
)
from eventsift.sifters.base import Sifter
from eventsift.sifters.rejection import Rejectable, reject_with_msg

logger = structlog.get_logger(__name__)

DEFAULT_REJECT_MSG = build_reject_message(REJECT_PREFIX_RATE_LIMITED, "rate limit exceeded")

SelectLimiterFn = Callable[[Request], GCRARateLimiter | None]
DeriveKeyFn = Callable[[Request], tuple[bool, str]]


class UserKey(Enum):
    """What identifies a "user" for rate limiting."""

    IP_ADDR = "ip_addr"
    PUBKEY = "pubkey"


def _is_valid_ip_addr(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def derive_user_key(request: Request, user_key: UserKey) -> tuple[bool, str]:
    """
    Derive the rate-limit key identifying the user behind a request.

    Returns:
        Tuple of (should_limit, key)
    """
    if not request.source_type.is_end_user:
        return False, ""
    if user_key is UserKey.IP_ADDR:
        if _is_valid_ip_addr(request.source_info):
            return True, request.source_info
        return False, ""
    if user_key is UserKey.PUBKEY:
        return True, request.event.pubkey
    return False, ""


def derive_user_and_kind_key(request: Request, user_key: UserKey) -> tuple[bool, str]:
    """Same as derive_user_key, with "/<kind>" appended to the key."""
    should_limit, key = derive_user_key(request, user_key)
    if not should_limit:
        return False, ""
    return True, f"{key}/{request.event.kind}"


class RateLimitSifter(Rejectable, Sifter):
    """
    Sifter rejecting requests that exceed their user's quota.

    Rejects with "rate-limited: rate limit exceeded" by default; use
    shadow_reject(), reject_with_msg() or reject_with_msg_from_input() to
    change that, and exclude() to bypass limiting for some requests.

    Build instances with by_user() or by_user_and_kind() rather than directly.
    """

    def __init__(self, select_limiter: SelectLimiterFn, derive_key: DeriveKeyFn) -> None:
        self._select_limiter = select_limiter
        self._derive_key = derive_key
        self._exclude: Callable[[Request], bool] = lambda _request: False
        self._reject = reject_with_msg(DEFAULT_REJECT_MSG)

    def exclude(self, exclude: Callable[[Request], bool]) -> Self:
        """Never rate-limit requests for which exclude returns True."""
        self._exclude = exclude
        return self

    def sift(self, request: Request) -> Decision:
        if self._exclude(request):
            return request.accept()

        should_limit, key = self._derive_key(request)
        if not should_limit:
            return request.accept()

        limiter = self._select_limiter(request)
        if limiter is None:
            return request.accept()

        result = limiter.check(key)
        if result.limited:
            logger.info(
                "rate limit exceeded",
                key=key,
                event_id=request.event.id,
                retry_after=round(result.retry_after, 3),
            )
            return self._reject(request)
        return request.accept()


def by_user(
    quota: Quota,
    user_key: UserKey,
    *,
    clock: Clock | None = None,
    capacity: int = DEFAULT_STORE_CAPACITY,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> RateLimitSifter:
    """
    Rate-limit requests per user with a single quota.

    Example:
        by_user(quota_per_hour(500).with_burst(50), UserKey.PUBKEY).exclude(
            lambda r: kinds_all_ephemeral(r.event.kind)
        )
    """
    limiter = GCRARateLimiter(quota, MemoryStore(capacity), clock=clock, timeout=timeout)

    def select_limiter(_request: Request) -> GCRARateLimiter:
        return limiter

    def derive_key(request: Request) -> tuple[bool, str]:
        return derive_user_key(request, user_key)

    return RateLimitSifter(select_limiter, derive_key)


def by_user_and_kind(
    quotas: Sequence[QuotaForKinds],
    user_key: UserKey,
    *,
    clock: Clock | None = None,
    capacity: int = DEFAULT_STORE_CAPACITY,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> RateLimitSifter:
    """
    Rate-limit requests per user and kind, with a quota per set of kinds.

    The first quota whose kind predicate matches the event applies. Events
    of kinds no quota matches are not rate-limited. Each quota keeps its
    own state, so a user is tracked independently per quota.

    Example:
        by_user_and_kind(
            [
                quota_per_hour(100).with_burst(10).for_kinds(1),
                quota_per_hour(200).with_burst(50).for_kinds(7),
            ],
            UserKey.PUBKEY,
        )
    """
    limiters = [
        (
            kq.match_kind,
            GCRARateLimiter(kq.quota, MemoryStore(capacity), clock=clock, timeout=timeout),
        )
        for kq in quotas
    ]

    def select_limiter(request: Request) -> GCRARateLimiter | None:
        kind = request.event.kind
        for match_kind, limiter in limiters:
            if match_kind(kind):
                return limiter
        return None

    def derive_key(request: Request) -> tuple[bool, str]:
        return derive_user_and_kind_key(request, user_key)

    return RateLimitSifter(select_limiter, derive_key)
