"""
Generic Cell Rate Algorithm (GCRA) rate limiter.

State per key is a single theoretical arrival time (TAT). With emission
interval T = period / count and burst B, a request arriving at ``now``:

    allow_at = TAT - B * T
    now >= allow_at  ->  admitted, TAT = max(TAT, now) + T
    now <  allow_at  ->  limited, TAT unchanged

so up to B + 1 requests pass back-to-back, then one per T.

Thread Safety:
    MemoryStore guards its key map with one lock, and each key's
    read-modify-write runs under that key's own lock. Both waits are
    bounded by the limiter's timeout; running out of time raises
    LimiterTimeoutError instead of returning a decision.

Eviction:
    MemoryStore holds at most ``capacity`` keys. Creating a key beyond
    that drops the least recently used one, which resets its quota.
"""

import threading
import time
from collections import OrderedDict
from dataclasses import dataclass, field

import structlog

from eventsift.clock import Clock, default_clock
from eventsift.errors import LimiterTimeoutError
from eventsift.ratelimit.quota import Quota

logger = structlog.get_logger(__name__)

DEFAULT_STORE_CAPACITY = 65536
DEFAULT_TIMEOUT_SECONDS = 5.0


@dataclass
class LimiterState:
    """
    Rate-limit state of one key.

    Attributes:
        tat: Theoretical arrival time in Unix seconds (None until first check)
        lock: Serializes checks against this key
    """

    tat: float | None = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


class MemoryStore:
    """Bounded, in-process LRU map from rate-limit key to LimiterState."""

    def __init__(self, capacity: int = DEFAULT_STORE_CAPACITY) -> None:
        if capacity <= 0:
            msg = f"store capacity must be positive, got {capacity}"
            raise ValueError(msg)
        self.capacity = capacity
        self._states: OrderedDict[str, LimiterState] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str, timeout: float) -> LimiterState:
        """
        Return the state for key, creating it if missing.

        Raises:
            LimiterTimeoutError: If the store lock isn't acquired in time
        """
        if not self._lock.acquire(timeout=timeout):
            raise LimiterTimeoutError(key=key, timeout_seconds=timeout)
        try:
            state = self._states.get(key)
            if state is not None:
                self._states.move_to_end(key)
                return state

            state = LimiterState()
            self._states[key] = state
            while len(self._states) > self.capacity:
                evicted, _ = self._states.popitem(last=False)
                logger.debug("rate limit state evicted", key=evicted)
            return state
        finally:
            self._lock.release()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._states

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)


@dataclass(frozen=True)
class RateLimitResult:
    """
    Outcome of one rate limit check.

    Attributes:
        limited: Whether the request must be refused
        retry_after: Seconds until the request would be admitted (0 if admitted)
    """

    limited: bool
    retry_after: float = 0.0


class GCRARateLimiter:
    """
    GCRA rate limiter over a MemoryStore.

    Usage:
        limiter = GCRARateLimiter(quota_per_sec(1).with_burst(1))
        if limiter.rate_limit("pubkey"):
            # refuse

    Attributes:
        quota: The quota enforced for every key
        store: Per-key state, owned by this limiter unless one is passed in
        clock: Time source
        timeout: Max seconds a check may wait for its locks
    """

    def __init__(
        self,
        quota: Quota,
        store: MemoryStore | None = None,
        clock: Clock | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        if timeout <= 0:
            msg = f"timeout must be positive, got {timeout}"
            raise ValueError(msg)
        self.quota = quota
        self.store = store if store is not None else MemoryStore()
        self.clock = clock or default_clock
        self.timeout = timeout

    def check(self, key: str) -> RateLimitResult:
        """
        Check (and on admission, consume) one request for key.

        Raises:
            LimiterTimeoutError: If the check couldn't complete within timeout
        """
        deadline = time.monotonic() + self.timeout
        state = self.store.get(key, self.timeout)

        remaining = max(0.0, deadline - time.monotonic())
        if not state.lock.acquire(timeout=remaining):
            raise LimiterTimeoutError(key=key, timeout_seconds=self.timeout)
        try:
            interval = self.quota.emission_interval
            now = self.clock.timestamp()
            tat = now if state.tat is None else state.tat

            allow_at = tat - self.quota.burst * interval
            if now < allow_at:
                return RateLimitResult(limited=True, retry_after=allow_at - now)

            state.tat = max(tat, now) + interval
            return RateLimitResult(limited=False)
        finally:
            state.lock.release()

    def rate_limit(self, key: str) -> bool:
        """Return True if the request for key must be refused."""
        return self.check(key).limited

    def __repr__(self) -> str:
        return f"GCRARateLimiter(quota={self.quota}, keys={len(self.store)})"
