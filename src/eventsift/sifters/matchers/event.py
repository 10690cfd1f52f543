"""
Matchers on event fields: NIP-01 filters, author, kind, tags and timestamp.
"""

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from eventsift.clock import Clock, default_clock
from eventsift.schema import (
    REJECT_PREFIX_BLOCKED,
    REJECT_PREFIX_INVALID,
    Filter,
    MatchResult,
    Mode,
    Request,
    build_reject_message,
)
from eventsift.sifters.base import SifterUnit, match_result_from_bool
from eventsift.sifters.rejection import RejectionFn, reject_with_msg_per_mode

Tags = list[list[str]]


# =============================================================================
# Filters
# =============================================================================


def matches_filters(filters: Iterable[Filter | Mapping[str, object]], mode: Mode) -> SifterUnit:
    """
    Match an event against NIP-01 filters.

    The event matches if any of the filters matches it; an empty filter
    list matches nothing. Filters may be given as Filter models or as the
    decoded JSON objects a client would send.

    Usage:
        matches_filters([{"kinds": [1], "#t": ["nostr"]}], Mode.ALLOW)
    """
    parsed = tuple(f if isinstance(f, Filter) else Filter.model_validate(f) for f in filters)

    def match_input(request: Request) -> MatchResult:
        return match_result_from_bool(any(f.matches(request.event) for f in parsed))

    return SifterUnit(
        match_input,
        mode,
        reject_with_msg_per_mode(
            mode,
            "blocked: event must match filters to be accepted",
            "blocked: event is denied by filters",
        ),
        name="matches_filters",
    )


# =============================================================================
# Author
# =============================================================================


def author_matcher(matcher: Callable[[str], bool], mode: Mode) -> SifterUnit:
    """
    Match the author (pubkey) of an event with the given function.

    If the function raises, the sifter raises MatchError.
    """

    def match_input(request: Request) -> MatchResult:
        return match_result_from_bool(matcher(request.event.pubkey))

    return SifterUnit(
        match_input,
        mode,
        reject_with_msg_per_mode(
            mode,
            "blocked: event author is not in the whitelist",
            "blocked: event author is in the blacklist",
        ),
        name="author_matcher",
    )


def author_list(authors: Iterable[str], mode: Mode) -> SifterUnit:
    """Check whether the author (pubkey) of an event is in the given list."""
    author_set = frozenset(authors)

    def match_input(request: Request) -> MatchResult:
        return match_result_from_bool(request.event.pubkey in author_set)

    return SifterUnit(
        match_input,
        mode,
        reject_with_msg_per_mode(
            mode,
            "blocked: event author is not in the whitelist",
            "blocked: event author is in the blacklist",
        ),
        name="author_list",
    )


# =============================================================================
# Kind
# =============================================================================


def kinds_all_non_param_replaceable(kind: int) -> bool:
    """Non-parameterized replaceable events: kind 0, 3, 41 and 10000 <= kind < 20000."""
    return kind in (0, 3, 41) or 10000 <= kind < 20000


def kinds_all_param_replaceable(kind: int) -> bool:
    """Parameterized replaceable events: 30000 <= kind < 40000."""
    return 30000 <= kind < 40000


def kinds_all_replaceable(kind: int) -> bool:
    """Replaceable events, parameterized or not."""
    return kinds_all_non_param_replaceable(kind) or kinds_all_param_replaceable(kind)


def kinds_all_ephemeral(kind: int) -> bool:
    """Ephemeral events: 20000 <= kind < 30000."""
    return 20000 <= kind < 30000


def kinds_all_regular(kind: int) -> bool:
    """Regular events: neither replaceable nor ephemeral."""
    return not (kinds_all_replaceable(kind) or kinds_all_ephemeral(kind))


def _kind_rejection(mode: Mode) -> RejectionFn:
    return reject_with_msg_per_mode(
        mode,
        "blocked: the kind of the event is not in the whitelist",
        "blocked: the kind of the event is in the blacklist",
    )


def kind_matcher_fallible(matcher: Callable[[int], bool], mode: Mode) -> SifterUnit:
    """
    Match the kind of an event with a function that may raise.

    If the function raises, the sifter raises MatchError.
    """

    def match_input(request: Request) -> MatchResult:
        return match_result_from_bool(matcher(request.event.kind))

    return SifterUnit(match_input, mode, _kind_rejection(mode), name="kind_matcher")


def kind_matcher(matcher: Callable[[int], bool], mode: Mode) -> SifterUnit:
    """
    Match the kind of an event with the given function.

    Usage:
        kind_matcher(kinds_all_ephemeral, Mode.DENY)
    """
    return kind_matcher_fallible(matcher, mode)


def kind_list(kinds: Iterable[int], mode: Mode) -> SifterUnit:
    """Check whether the kind of an event is in the given list."""
    kind_set = frozenset(kinds)

    def match_input(request: Request) -> MatchResult:
        return match_result_from_bool(request.event.kind in kind_set)

    return SifterUnit(match_input, mode, _kind_rejection(mode), name="kind_list")


# =============================================================================
# Tags
# =============================================================================


def tags_matcher(matcher: Callable[[Tags], bool], mode: Mode) -> SifterUnit:
    """
    Match the tag list of an event with the given function.

    If the function raises, the sifter raises MatchError.
    """

    def match_input(request: Request) -> MatchResult:
        return match_result_from_bool(matcher(request.event.tags))

    return SifterUnit(
        match_input,
        mode,
        reject_with_msg_per_mode(
            mode,
            "blocked: event tags don't match required patterns",
            "blocked: event tags match forbidden patterns",
        ),
        name="tags_matcher",
    )


# =============================================================================
# Timestamp
# =============================================================================


@dataclass(frozen=True)
class RelativeTimeRange:
    """
    Time range relative to now, as maximum allowed distances into the past
    and into the future.

    A zero (or unset) delta leaves that side of the range unbounded.
    """

    max_past_delta: timedelta = timedelta(0)
    max_future_delta: timedelta = timedelta(0)

    def contains(self, t: datetime, now: datetime) -> bool:
        """Check whether t falls in the range around now."""
        ok_past = not self.max_past_delta or t >= now - self.max_past_delta
        ok_future = not self.max_future_delta or t <= now + self.max_future_delta
        return ok_past and ok_future

    def __str__(self) -> str:
        left = f"{self.max_past_delta} ago" if self.max_past_delta else "-∞"
        right = f"{self.max_future_delta} after" if self.max_future_delta else "+∞"
        return f"[{left}, {right}]"


def created_at_range(
    time_range: RelativeTimeRange,
    mode: Mode,
    clock: Clock | None = None,
) -> SifterUnit:
    """Check whether the created_at timestamp of an event is in the time range."""
    clock = clock or default_clock

    def match_input(request: Request) -> MatchResult:
        created_at = datetime.fromtimestamp(request.event.created_at, UTC)
        return match_result_from_bool(time_range.contains(created_at, clock.now()))

    return SifterUnit(
        match_input,
        mode,
        reject_with_msg_per_mode(
            mode,
            build_reject_message(
                REJECT_PREFIX_INVALID, f"event timestamp is out of the range: {time_range}"
            ),
            build_reject_message(
                REJECT_PREFIX_BLOCKED, f"event timestamp must be out of the range: {time_range}"
            ),
        ),
        name="created_at_range",
    )
