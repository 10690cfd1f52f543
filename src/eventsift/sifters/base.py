"""
Base classes for the sifter interface.

This module defines the core abstractions every sifter is built from:
- Sifter: Abstract base class for leaf matchers and combinators alike
- SifterFunc: Adapter turning a plain function into a Sifter
- SifterUnit: Leaf matcher driven by a match function and a Mode
- should_accept: The single place where Mode inverts a match result

Design Principles:
    - One method, sift(request) -> Decision, for every sifter
    - Failures are raised, never turned into decisions
    - Sifters are stateless, so one tree can serve concurrent requests
      (the rate limiter is the only exception, and guards its own state)
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

import structlog

from eventsift.errors import EventSiftError, MatchError
from eventsift.schema import Decision, MatchResult, Mode, Request
from eventsift.sifters.rejection import Rejectable, RejectionFn

logger = structlog.get_logger(__name__)

InputMatcher = Callable[[Request], MatchResult]


class Sifter(ABC):
    """
    Abstract base class for all sifters.

    Subclasses must implement sift(), which returns the Decision for a
    request or raises an EventSiftError if it can't decide.

    Example:
        class AcceptShortNotes(Sifter):
            def sift(self, request: Request) -> Decision:
                if len(request.event.content) <= 140:
                    return request.accept()
                return request.reject("blocked: too long")
    """

    @abstractmethod
    def sift(self, request: Request) -> Decision:
        """
        Decide what to do with the request.

        Args:
            request: The event and its source information

        Returns:
            Decision carrying the request's event ID

        Raises:
            EventSiftError: If the decision couldn't be computed
        """
        ...

    def __call__(self, request: Request) -> Decision:
        return self.sift(request)


class SifterFunc(Sifter):
    """Adapter allowing a plain function to be used as a Sifter."""

    def __init__(self, fn: Callable[[Request], Decision]) -> None:
        self._fn = fn

    def sift(self, request: Request) -> Decision:
        return self._fn(request)

    def __repr__(self) -> str:
        return f"SifterFunc({getattr(self._fn, '__name__', self._fn)!r})"


accept_all = SifterFunc(lambda request: request.accept())


def match_result_from_bool(matched: bool) -> MatchResult:
    """Convert a plain predicate outcome into a MatchResult."""
    return MatchResult.MATCH if matched else MatchResult.MISMATCH


def should_accept(match_result: MatchResult, mode: Mode) -> bool:
    """
    Decide whether a match result leads to acceptance under a mode.

    Unknown modes or match results are configuration defects. They are
    logged and resolve to rejection.
    """
    if match_result is MatchResult.ALWAYS_ACCEPT:
        return True
    if match_result is MatchResult.ALWAYS_REJECT:
        return False

    if match_result is MatchResult.MATCH:
        if mode is Mode.ALLOW:
            return True
        if mode is Mode.DENY:
            return False
        logger.error("unknown mode", mode=mode, match_result=match_result.value)
        return False

    if match_result is MatchResult.MISMATCH:
        if mode is Mode.ALLOW:
            return False
        if mode is Mode.DENY:
            return True
        logger.error("unknown mode", mode=mode, match_result=match_result.value)
        return False

    logger.error("unknown match result", match_result=match_result)
    return False


class SifterUnit(Rejectable, Sifter):
    """
    Leaf sifter built from a match function, a Mode and a rejection strategy.

    All built-in matchers are SifterUnits. Each responds with its own
    predefined message when rejecting; use shadow_reject(),
    reject_with_msg() or reject_with_msg_from_input() to customize it.

    Attributes:
        name: Matcher name reported in MatchError
        mode: Whether a match means accept (ALLOW) or reject (DENY)
    """

    def __init__(
        self,
        match: InputMatcher,
        mode: Mode,
        default_reject: RejectionFn,
        name: str = "",
    ) -> None:
        self._match = match
        self.mode = mode
        self._reject = default_reject
        self.name = name

    def sift(self, request: Request) -> Decision:
        try:
            matched = self._match(request)
        except EventSiftError:
            raise
        except Exception as e:
            raise MatchError(
                sifter=self.name,
                event_id=request.event.id,
                underlying_error=str(e),
            ) from e

        if should_accept(matched, self.mode):
            return request.accept()
        return self._reject(request)

    def __repr__(self) -> str:
        return f"SifterUnit(name={self.name!r}, mode={self.mode!r})"
