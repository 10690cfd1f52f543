"""
Matchers on event content.

Word matching is case-sensitive.
"""

import re
from collections.abc import Callable, Iterable

from eventsift.schema import MatchResult, Mode, Request
from eventsift.sifters.base import SifterUnit, match_result_from_bool
from eventsift.sifters.rejection import reject_with_msg_per_mode


def content_matcher(matcher: Callable[[str], bool], mode: Mode) -> SifterUnit:
    """
    Match the content of an event with the given function.

    If the function raises, the sifter raises MatchError.
    """

    def match_input(request: Request) -> MatchResult:
        return match_result_from_bool(matcher(request.event.content))

    return SifterUnit(
        match_input,
        mode,
        reject_with_msg_per_mode(
            mode,
            "blocked: content must obey some rules to be accepted",
            "blocked: content conflicts with some rules",
        ),
        name="content_matcher",
    )


def content_has_any_word(words: Iterable[str], mode: Mode) -> SifterUnit:
    """Check whether the content contains any of the given words."""
    words = tuple(words)

    def match_input(request: Request) -> MatchResult:
        content = request.event.content
        return match_result_from_bool(any(word in content for word in words))

    return SifterUnit(
        match_input,
        mode,
        reject_with_msg_per_mode(
            mode,
            "blocked: content must have one of keywords to be accepted",
            "blocked: content has one of forbidden words",
        ),
        name="content_has_any_word",
    )


def content_has_all_words(words: Iterable[str], mode: Mode) -> SifterUnit:
    """Check whether the content contains all of the given words."""
    words = tuple(words)

    def match_input(request: Request) -> MatchResult:
        content = request.event.content
        return match_result_from_bool(all(word in content for word in words))

    return SifterUnit(
        match_input,
        mode,
        reject_with_msg_per_mode(
            mode,
            "blocked: content must have all keywords to be accepted",
            "blocked: content has all of forbidden words",
        ),
        name="content_has_all_words",
    )


def content_matches_any_regexp(patterns: Iterable[re.Pattern[str]], mode: Mode) -> SifterUnit:
    """Check whether the content matches any of the given regular expressions."""
    patterns = tuple(patterns)

    def match_input(request: Request) -> MatchResult:
        content = request.event.content
        return match_result_from_bool(any(p.search(content) for p in patterns))

    return SifterUnit(
        match_input,
        mode,
        reject_with_msg_per_mode(
            mode,
            "blocked: content must match one of key-patterns to be accepted",
            "blocked: content matches one of forbidden patterns",
        ),
        name="content_matches_any_regexp",
    )


def content_matches_all_regexps(patterns: Iterable[re.Pattern[str]], mode: Mode) -> SifterUnit:
    """Check whether the content matches all of the given regular expressions."""
    patterns = tuple(patterns)

    def match_input(request: Request) -> MatchResult:
        content = request.event.content
        return match_result_from_bool(all(p.search(content) for p in patterns))

    return SifterUnit(
        match_input,
        mode,
        reject_with_msg_per_mode(
            mode,
            "blocked: content must match all of key-patterns to be accepted",
            "blocked: content matches all of forbidden patterns",
        ),
        name="content_matches_all_regexps",
    )
