"""
Pytest configuration and fixtures for eventsift tests.

This module provides shared fixtures used across unit and integration tests.
"""

import logging
import tempfile
from pathlib import Path
from typing import Any, Generator

import pytest
import structlog

from eventsift.clock import FakeClock
from eventsift.schema import Event, Request, SourceType


def make_request(
    event_id: str = "event-1",
    pubkey: str = "pubkey-1",
    kind: int = 1,
    content: str = "",
    tags: list[list[str]] | None = None,
    created_at: int = 0,
    source_type: SourceType = SourceType.IP4,
    source_info: str = "192.168.1.1",
) -> Request:
    """Build a request with sensible defaults for tests."""
    return Request(
        event=Event(
            id=event_id,
            pubkey=pubkey,
            kind=kind,
            content=content,
            tags=tags or [],
            created_at=created_at,
        ),
        source_type=source_type,
        source_info=source_info,
    )


@pytest.fixture(autouse=True)
def reset_structlog() -> Generator[None, None, None]:
    """Restore the default structlog and root logger configuration after each test."""
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture
def sample_request() -> Request:
    """Return a simple end-user request."""
    return make_request()


@pytest.fixture
def clock() -> FakeClock:
    """Return a fake clock starting at 2024-01-01T00:00:00Z."""
    return FakeClock()


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sample_input_line() -> str:
    """Return one JSON input line as the relay writes it."""
    return (
        '{"type":"new","event":{"id":"abc123","pubkey":"pk","created_at":1700000000,'
        '"kind":1,"tags":[],"content":"hello","sig":"sig"},"receivedAt":1700000001,'
        '"sourceType":"IP4","sourceInfo":"127.0.0.1"}'
    )


def request_dict(**overrides: Any) -> dict[str, Any]:
    """Return a request as the decoded JSON object the relay sends."""
    data: dict[str, Any] = {
        "type": "new",
        "event": {
            "id": "abc123",
            "pubkey": "pk",
            "created_at": 1700000000,
            "kind": 1,
            "tags": [],
            "content": "hello",
            "sig": "sig",
        },
        "receivedAt": 1700000001,
        "sourceType": "IP4",
        "sourceInfo": "127.0.0.1",
    }
    data.update(overrides)
    return data
