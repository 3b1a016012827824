"""Outbound dispatcher: resolves the recipient and sends through the client.

Content priority per request: PDF > multiple images > single image > text.
Only the first applicable kind is sent.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from wabridge.audit.logger import AuditLogger
from wabridge.client.base import AutomationClient
from wabridge.errors import (
    LockContentionError,
    NumberNotFoundError,
    RequestValidationError,
    SendTimeoutError,
    SessionRecoveryError,
    SupervisorError,
    UnknownError,
)
from wabridge.models import (
    AuditEvent,
    AuditEventType,
    MediaPayload,
    RecoveryAction,
    SendRequest,
    Severity,
)
from wabridge.session.recovery import RecoveryCoordinator
from wabridge.session.state import ConnectionState
from wabridge.webhook.mapping import is_status_identity

logger = logging.getLogger(__name__)

USER_DOMAIN = "@c.us"
PDF_MIME = "application/pdf"
DEFAULT_SEND_TIMEOUT_SECONDS = 30.0
DEFAULT_IMAGE_PAUSE_SECONDS = 1.0


def resolve_chat_id(phone_number: str) -> str:
    """``+15551234567`` -> ``15551234567@c.us``.

    A leading non-alphanumeric symbol is stripped; identities that already
    carry a server part are kept as they are. Status identities are refused.
    """
    identity = phone_number.strip()
    if "@" not in identity:
        if identity and not identity[0].isalnum():
            identity = identity[1:]
        identity = f"{identity}{USER_DOMAIN}"
    if is_status_identity(identity):
        raise RequestValidationError("Recipient not allowed")
    return identity


@dataclass
class DispatchResult:
    chat_id: str
    kind: str
    sent: int = 0
    failed: list[int] = field(default_factory=list)


class OutboundDispatcher:
    """Sends one ``SendRequest`` and maps client errors onto typed failures."""

    def __init__(
        self,
        client: AutomationClient,
        state: ConnectionState,
        recovery: RecoveryCoordinator,
        send_timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS,
        image_pause: float = DEFAULT_IMAGE_PAUSE_SECONDS,
        audit_logger: AuditLogger | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._state = state
        self._recovery = recovery
        self._send_timeout = send_timeout
        self._image_pause = image_pause
        self._audit = audit_logger
        self._sleep = sleep

    async def send(self, request: SendRequest) -> DispatchResult:
        chat_id = resolve_chat_id(request.phone_number)
        logger.info("Looking up WhatsApp ID for %s", chat_id)
        try:
            number_id = await self._client.get_number_id(chat_id)
            if not number_id:
                logger.warning("Number not found on WhatsApp: %s", chat_id)
                raise NumberNotFoundError()
            result = await self._deliver(chat_id, request)
        except SupervisorError as exc:
            self._journal_failure(chat_id, exc)
            raise
        except Exception as exc:
            logger.error("Error sending message to %s: %s", chat_id, exc)
            failure = await self._classify_failure(exc)
            self._journal_failure(chat_id, failure)
            raise failure from exc

        logger.info("Message sent to %s", chat_id)
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=AuditEventType.MESSAGE_SENT,
                action=result.kind,
                result="success" if not result.failed else "partial",
                details={"chat_id": chat_id, "sent": result.sent, "failed": result.failed},
            ))
        return result

    async def _deliver(self, chat_id: str, request: SendRequest) -> DispatchResult:
        caption = request.message or ""
        if request.pdf_url:
            logger.info("Sending PDF to %s", chat_id)
            media = await self._client.fetch_media(request.pdf_url, mime_type=PDF_MIME)
            await self._send(chat_id, media, {"caption": caption})
            return DispatchResult(chat_id, "pdf", sent=1)
        if request.image_urls:
            return await self._send_images(chat_id, request.image_urls, caption)
        if request.image_url:
            logger.info("Sending single image to %s", chat_id)
            media = await self._client.fetch_media(request.image_url)
            await self._send(chat_id, media, {"caption": caption})
            return DispatchResult(chat_id, "image", sent=1)
        if request.message:
            logger.info("Sending text message to %s", chat_id)
            await self._send(chat_id, request.message)
            return DispatchResult(chat_id, "text", sent=1)
        raise RequestValidationError(
            "At least one of: message, imageUrl, imageUrls, or pdfUrl is required",
        )

    async def _send_images(
        self, chat_id: str, urls: list[str], caption: str,
    ) -> DispatchResult:
        """Send sequentially; the caption rides on the first image only.

        A failed image is logged, classified and skipped. The request still
        counts as a success when some or all images failed.
        """
        logger.info("Sending %d images to %s", len(urls), chat_id)
        result = DispatchResult(chat_id, "images")
        for index, url in enumerate(urls):
            if index:
                await self._sleep(self._image_pause)
            try:
                media = await self._client.fetch_media(url)
                await self._send(chat_id, media, {"caption": caption if index == 0 else ""})
            except Exception as exc:
                logger.error("Error sending image %d: %s", index + 1, exc)
                result.failed.append(index)
                if not isinstance(exc, SendTimeoutError):
                    await self._recovery.handle(exc, origin="send_image")
                continue
            result.sent += 1
            logger.info("Image %d/%d sent to %s", index + 1, len(urls), chat_id)
        return result

    async def _send(
        self,
        chat_id: str,
        content: str | MediaPayload,
        options: dict[str, Any] | None = None,
    ) -> Any:
        # shield: on timeout the client call is abandoned, not cancelled
        call = asyncio.ensure_future(self._client.send_message(chat_id, content, options or {}))
        try:
            sent = await asyncio.wait_for(asyncio.shield(call), timeout=self._send_timeout)
        except TimeoutError as exc:
            call.add_done_callback(_drain_late_result)
            raise SendTimeoutError() from exc
        await self._state.touch()
        return sent

    async def _classify_failure(self, exc: Exception) -> SupervisorError:
        action = await self._recovery.handle(exc, origin="send")
        if action is RecoveryAction.CLEAR_LOCK_AND_MARK_NOT_READY:
            return LockContentionError()
        if action is not RecoveryAction.NONE:
            logger.warning("Session lost during message send, will auto-reconnect")
            return SessionRecoveryError()
        return UnknownError()

    def _journal_failure(self, chat_id: str, exc: SupervisorError) -> None:
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=AuditEventType.MESSAGE_FAILED,
                action="send",
                result=type(exc).__name__,
                severity=Severity.WARNING,
                details={"chat_id": chat_id, "error": exc.message},
            ))


def _drain_late_result(task: asyncio.Future[Any]) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.info("Abandoned send finished late with error: %s", exc)
