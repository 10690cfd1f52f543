"""
Schema definitions for eventsift.

This module defines the Pydantic models shared by every sifter:
- Event/Request: What the relay hands to the sifter for one write
- Filter: A NIP-01 subscription filter events can be matched against
- Decision: What the sifter answers (accept, reject, shadow-reject)
- Mode/MatchResult: How a leaf matcher's outcome maps to a decision

Design Decisions:
    - Requests and decisions are immutable (frozen=True)
    - Field aliases follow the relay's camelCase wire format
    - Unknown event fields are ignored so newer relays keep working
"""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


# =============================================================================
# Enums
# =============================================================================


class SourceType(str, Enum):
    """Where an event came from."""

    IP4 = "IP4"
    IP6 = "IP6"
    IMPORT = "Import"
    STREAM = "Stream"
    SYNC = "Sync"

    @property
    def is_end_user(self) -> bool:
        """Whether the event was sent directly by a client."""
        return self in (SourceType.IP4, SourceType.IP6)


class Action(str, Enum):
    """How the relay should process an event."""

    ACCEPT = "accept"
    REJECT = "reject"
    SHADOW_REJECT = "shadowReject"


class Mode(str, Enum):
    """
    How a leaf matcher treats inputs matching its condition.

    ALLOW accepts matching inputs (whitelist).
    DENY rejects matching inputs (blacklist).
    """

    ALLOW = "allow"
    DENY = "deny"


class MatchResult(str, Enum):
    """
    Outcome of a leaf matcher's predicate.

    ALWAYS_ACCEPT and ALWAYS_REJECT bypass Mode entirely.
    """

    MATCH = "match"
    MISMATCH = "mismatch"
    ALWAYS_ACCEPT = "always_accept"
    ALWAYS_REJECT = "always_reject"


# =============================================================================
# Rejection Messages
# =============================================================================

# Machine-readable prefixes for rejection messages (NIP-01)
REJECT_PREFIX_BLOCKED = "blocked"
REJECT_PREFIX_RATE_LIMITED = "rate-limited"
REJECT_PREFIX_INVALID = "invalid"
REJECT_PREFIX_POW = "pow"
REJECT_PREFIX_ERROR = "error"


def build_reject_message(prefix: str, body: str) -> str:
    """Build a rejection message of the form "prefix: body"."""
    return f"{prefix}: {body}"


# =============================================================================
# Event & Request
# =============================================================================


class Event(BaseModel):
    """
    A Nostr event submitted to the relay.

    Attributes:
        id: Hex-encoded event ID
        pubkey: Hex-encoded public key of the author
        created_at: Unix timestamp (seconds) declared by the author
        kind: Event kind
        tags: Tag list
        content: Event content
        sig: Signature
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(default="", description="Hex-encoded event ID")
    pubkey: str = Field(default="", description="Author public key")
    created_at: int = Field(default=0, description="Unix timestamp in seconds")
    kind: int = Field(default=0, description="Event kind", ge=0)
    tags: list[list[str]] = Field(default_factory=list, description="Tag list")
    content: str = Field(default="", description="Event content")
    sig: str = Field(default="", description="Signature")

    def tag_values(self, name: str) -> list[str]:
        """Return the first value of every tag named ``name``."""
        return [tag[1] for tag in self.tags if len(tag) >= 2 and tag[0] == name]


class Filter(BaseModel):
    """
    A NIP-01 filter.

    Every condition that is set must hold for an event to match. Tag
    conditions are written "#<name>" on the wire, e.g. {"#t": ["nostr"]}.

    Attributes:
        ids: Allowed event IDs
        authors: Allowed author pubkeys
        kinds: Allowed kinds
        tags: Allowed values per tag name (without the leading "#")
        since: Oldest allowed created_at
        until: Newest allowed created_at
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    ids: list[str] | None = Field(default=None, description="Allowed event IDs")
    authors: list[str] | None = Field(default=None, description="Allowed author pubkeys")
    kinds: list[int] | None = Field(default=None, description="Allowed kinds")
    tags: dict[str, list[str]] = Field(default_factory=dict, description="Allowed tag values")
    since: int | None = Field(default=None, description="Oldest allowed created_at")
    until: int | None = Field(default=None, description="Newest allowed created_at")

    @model_validator(mode="before")
    @classmethod
    def collect_tag_conditions(cls, data: Any) -> Any:
        """Move "#<name>" keys into tags."""
        if not isinstance(data, dict):
            return data
        fields: dict[str, Any] = {}
        tags = dict(data.get("tags") or {})
        for key, value in data.items():
            if key.startswith("#"):
                tags[key[1:]] = value
            elif key != "tags":
                fields[key] = value
        fields["tags"] = tags
        return fields

    def matches(self, event: Event) -> bool:
        """Check whether the event satisfies every condition of the filter."""
        if self.ids is not None and event.id not in self.ids:
            return False
        if self.authors is not None and event.pubkey not in self.authors:
            return False
        if self.kinds is not None and event.kind not in self.kinds:
            return False
        for name, values in self.tags.items():
            if not any(v in values for v in event.tag_values(name)):
                return False
        if self.since is not None and event.created_at < self.since:
            return False
        if self.until is not None and event.created_at > self.until:
            return False
        return True


class Request(BaseModel):
    """
    Input of a sifter: one event plus where it came from.

    Attributes:
        type: Input type. Always "new" for current relays
        event: The submitted event
        received_at: Unix timestamp (seconds) of when the relay got the event
        source_type: Where the event came from
        source_info: Client IP for end users, source relay URL for streams
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    type: str = Field(default="new", description="Input type")
    event: Event = Field(..., description="The submitted event")
    received_at: int = Field(default=0, alias="receivedAt", description="Receive timestamp")
    source_type: SourceType = Field(
        default=SourceType.IP4,
        alias="sourceType",
        description="Where the event came from",
    )
    source_info: str = Field(default="", alias="sourceInfo", description="Source details")

    def accept(self) -> "Decision":
        """Accept the event."""
        return Decision.accept(self.event.id)

    def reject(self, msg: str) -> "Decision":
        """Reject the event with a message for the client."""
        return Decision.reject(self.event.id, msg)

    def shadow_reject(self) -> "Decision":
        """Make the event look accepted to the client, but drop it."""
        return Decision.shadow_reject(self.event.id)


# =============================================================================
# Decision
# =============================================================================


class Decision(BaseModel):
    """
    Result of sifting one request.

    Attributes:
        id: ID of the event this decision is for
        action: What to do with the event
        msg: Message sent to the client on rejection
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="ID of the target event")
    action: Action = Field(..., description="Action to take")
    msg: str = Field(default="", description="Message for the client")

    @property
    def accepted(self) -> bool:
        """Whether the decision is a plain accept."""
        return self.action is Action.ACCEPT

    @classmethod
    def accept(cls, event_id: str) -> "Decision":
        """Create an ACCEPT decision."""
        return cls(id=event_id, action=Action.ACCEPT)

    @classmethod
    def reject(cls, event_id: str, msg: str) -> "Decision":
        """Create a REJECT decision."""
        return cls(id=event_id, action=Action.REJECT, msg=msg)

    @classmethod
    def shadow_reject(cls, event_id: str) -> "Decision":
        """Create a SHADOW_REJECT decision."""
        return cls(id=event_id, action=Action.SHADOW_REJECT)

    def to_wire(self) -> str:
        """Render the decision as one JSON output line (without newline)."""
        return json.dumps(self.model_dump(mode="json"), separators=(",", ":"))


# =============================================================================
# Parsing Helpers
# =============================================================================


def load_request(data: dict[str, Any]) -> Request:
    """Validate a decoded JSON object as a Request."""
    return Request.model_validate(data)


def load_request_from_string(content: str) -> Request:
    """
    Load a request from one JSON input line.

    Raises:
        ValidationError: If the line isn't JSON or doesn't match the schema
    """
    return Request.model_validate_json(content)
