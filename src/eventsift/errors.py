"""
Exception hierarchy for eventsift.

All eventsift exceptions inherit from EventSiftError, allowing the host to
catch every failure raised while evaluating a sifter tree with a single
except clause.

Exception Categories:
    - MatchError: A leaf matcher could not evaluate its predicate
    - GuardError: A guard condition of a modded sifter failed
    - LimiterError: The rate limiter could not check its state in time
    - QuotaConfigError: A quota was built with impossible parameters
    - InputError: The host received an input it could not parse
    - ConfigError: Runner settings or sifter reference are invalid

Failures are raised, never returned as decisions. Only the host boundary
(see eventsift.runner) turns them into a rejection.
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Evaluation errors: 1xxx
ERROR_MATCH_FAILED = 1001
ERROR_GUARD_FAILED = 1002

# Rate limiter errors: 2xxx
ERROR_LIMITER_FAILED = 2001
ERROR_LIMITER_TIMEOUT = 2002
ERROR_QUOTA_INVALID = 2003

# Input errors: 3xxx
ERROR_INPUT_MALFORMED = 3001
ERROR_INPUT_UNSUPPORTED_TYPE = 3002

# Configuration errors: 4xxx
ERROR_CONFIG_INVALID = 4001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class EventSiftError(Exception):
    """
    Base exception for all eventsift errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        """Format error for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Evaluation Errors
# =============================================================================


@dataclass
class MatchError(EventSiftError):
    """
    Raised when a leaf matcher fails to evaluate its predicate.

    Combinators never catch this: it aborts the evaluation of the
    remaining siblings and reaches the host unchanged.

    Attributes:
        sifter: Name of the matcher that failed
        event_id: ID of the event being evaluated
        underlying_error: Description of the original failure
    """

    sifter: str = ""
    event_id: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Matcher {self.sifter or '<anonymous>'} failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_MATCH_FAILED
        self.context.update({
            "sifter": self.sifter,
            "event_id": self.event_id,
            "underlying_error": self.underlying_error,
        })


@dataclass
class GuardError(EventSiftError):
    """Raised when the guard condition of a modded sifter fails."""

    label: str = ""
    event_id: str = ""
    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Guard of {self.label or '<unlabelled>'} failed: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_GUARD_FAILED
        self.context.update({
            "label": self.label,
            "event_id": self.event_id,
            "underlying_error": self.underlying_error,
        })


# =============================================================================
# Rate Limiter Errors
# =============================================================================


@dataclass
class LimiterError(EventSiftError):
    """
    Raised when the rate limiter fails to check its state.

    This is neither an accept nor a reject: the host decides what to do.

    Attributes:
        key: The derived rate-limit key being checked
    """

    key: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Rate limit check failed for key {self.key!r}"
        if self.code == 0:
            self.code = ERROR_LIMITER_FAILED
        self.context["key"] = self.key


@dataclass
class LimiterTimeoutError(LimiterError):
    """Raised when the rate limit check exceeds its deadline."""

    timeout_seconds: float = 0.0

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = (
                f"Rate limit check for key {self.key!r} timed out after {self.timeout_seconds}s"
            )
        if self.code == 0:
            self.code = ERROR_LIMITER_TIMEOUT
        super().__post_init__()
        self.context["timeout_seconds"] = self.timeout_seconds


@dataclass
class QuotaConfigError(EventSiftError):
    """Raised when a quota is constructed with invalid parameters."""

    parameter: str = ""
    value: Any = None

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid quota parameter {self.parameter}: {self.value!r}"
        if self.code == 0:
            self.code = ERROR_QUOTA_INVALID
        if not self.suggestion:
            self.suggestion = "Use a positive count and period, and a non-negative burst"
        self.context.update({
            "parameter": self.parameter,
            "value": self.value,
        })


# =============================================================================
# Input Errors
# =============================================================================


@dataclass
class InputError(EventSiftError):
    """Raised when an input line can't be parsed into a request."""

    underlying_error: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Malformed input: {self.underlying_error}"
        if self.code == 0:
            self.code = ERROR_INPUT_MALFORMED
        self.context["underlying_error"] = self.underlying_error


@dataclass
class UnsupportedInputTypeError(InputError):
    """Raised when the input type is anything other than "new"."""

    input_type: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Unexpected input type: {self.input_type}"
        if self.code == 0:
            self.code = ERROR_INPUT_UNSUPPORTED_TYPE
        super().__post_init__()
        self.context["input_type"] = self.input_type


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigError(EventSiftError):
    """Raised when runner settings or a sifter reference are invalid."""

    source: str = ""

    def __post_init__(self) -> None:
        """Set defaults after dataclass init."""
        if not self.message:
            self.message = f"Invalid configuration: {self.source}"
        if self.code == 0:
            self.code = ERROR_CONFIG_INVALID
        self.context["source"] = self.source
