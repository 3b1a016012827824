"""Automation client boundary: capabilities and the event subscription seam."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from wabridge.models import (
    AuthFailureEvent,
    CallEvent,
    DisconnectedEvent,
    MediaPayload,
    MessageEvent,
    QREvent,
    ReadyEvent,
)

logger = logging.getLogger(__name__)

CONNECTED = "CONNECTED"

AnyEvent = QREvent | ReadyEvent | DisconnectedEvent | AuthFailureEvent | CallEvent | MessageEvent
EventHandler = Callable[[AnyEvent], Awaitable[None]]


class AutomationClient(Protocol):
    """What the supervisor needs from the browser-driven messaging client."""

    async def initialize(self) -> None: ...

    async def destroy(self) -> None: ...

    async def get_connection_state(self) -> str | None: ...

    async def get_contacts(self) -> list[dict[str, Any]]: ...

    async def get_number_id(self, chat_id: str) -> str | None: ...

    async def send_message(
        self,
        chat_id: str,
        content: str | MediaPayload,
        options: dict[str, Any] | None = None,
    ) -> Any: ...

    async def fetch_media(self, url: str, mime_type: str | None = None) -> MediaPayload: ...

    async def reject_call(self, call_id: str) -> None: ...

    def subscribe(self, handler: EventHandler) -> None: ...


class EventEmitter:
    """Fan-out of client events to subscribed handlers, in subscription order."""

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    async def emit(self, event: AnyEvent) -> None:
        for handler in list(self._handlers):
            try:
                await handler(event)
            except Exception:
                logger.exception("Event handler failed for %s event", event.event)
