"""Shared test fixtures for wabridge."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from wabridge.audit.logger import AuditLogger
from wabridge.client.base import CONNECTED, EventEmitter
from wabridge.models import CallEvent, MediaPayload, MessageEvent, SendRequest
from wabridge.session.janitor import CleanupReport, ProcessJanitor
from wabridge.session.recovery import RecoveryCoordinator
from wabridge.session.state import ConnectionState


class FakeClient(EventEmitter):
    """In-memory automation client; every capability is an ``AsyncMock``."""

    def __init__(self) -> None:
        super().__init__()
        self.initialize = AsyncMock()
        self.destroy = AsyncMock()
        self.get_connection_state = AsyncMock(return_value=CONNECTED)
        self.get_contacts = AsyncMock(return_value=[])
        self.get_number_id = AsyncMock(side_effect=lambda chat_id: chat_id)
        self.send_message = AsyncMock(return_value="msg-1")
        self.fetch_media = AsyncMock(side_effect=_fake_media)
        self.reject_call = AsyncMock()


async def _fake_media(url: str, mime_type: str | None = None) -> MediaPayload:
    return MediaPayload(
        mimetype=mime_type or "image/jpeg",
        data="aGVsbG8=",
        filename=url.rsplit("/", 1)[-1],
    )


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state(clock: FakeClock) -> ConnectionState:
    return ConnectionState(clock=clock)


@pytest.fixture
def mock_janitor() -> MagicMock:
    janitor = MagicMock(spec=ProcessJanitor)
    janitor.clear_lock = AsyncMock(return_value=CleanupReport(lock_removed=True))
    janitor.terminate_processes = AsyncMock(return_value=CleanupReport())
    return janitor


@pytest.fixture
def recovery(state: ConnectionState, mock_janitor: MagicMock) -> RecoveryCoordinator:
    return RecoveryCoordinator(state, mock_janitor)


@pytest.fixture
def mock_audit_logger() -> MagicMock:
    return MagicMock(spec=AuditLogger)


# --- Factory functions for test data ---


def make_message_event(**kwargs: Any) -> MessageEvent:
    """Factory for MessageEvent with sensible defaults."""
    defaults: dict[str, Any] = {
        "id": "false_15551234567@c.us_ABC",
        "from": "15551234567@c.us",
        "type": "chat",
        "timestamp": 1700000000,
        "body": "hello",
    }
    defaults.update(kwargs)
    return MessageEvent.model_validate(defaults)


def make_call_event(**kwargs: Any) -> CallEvent:
    defaults: dict[str, Any] = {
        "id": "call-1",
        "from": "15551234567@c.us",
        "isVideo": False,
    }
    defaults.update(kwargs)
    return CallEvent.model_validate(defaults)


def make_send_request(**kwargs: Any) -> SendRequest:
    defaults: dict[str, Any] = {"phoneNumber": "+15551234567"}
    defaults.update(kwargs)
    return SendRequest.model_validate(defaults)
