"""Event bridge: client lifecycle/message events -> state and webhooks."""

from __future__ import annotations

import io
import logging
from datetime import UTC, datetime

import qrcode

from wabridge.audit.logger import AuditLogger
from wabridge.client.base import AnyEvent, AutomationClient
from wabridge.models import (
    AuditEvent,
    AuditEventType,
    AuthFailureEvent,
    CallEvent,
    ConnectionPhase,
    DisconnectedEvent,
    MessageEvent,
    QREvent,
    ReadyEvent,
    Severity,
)
from wabridge.session.recovery import RecoveryCoordinator
from wabridge.session.state import ConnectionState
from wabridge.webhook import mapping
from wabridge.webhook.relay import DELIVERY_ERRORS, WebhookRelay

logger = logging.getLogger(__name__)

DEFAULT_CALL_NOTICE = "No se pueden recibir llamadas"


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def render_qr(code: str) -> str:
    """Compact text rendering of a pairing code, scannable from a terminal."""
    qr = qrcode.QRCode(border=1)
    qr.add_data(code)
    qr.make(fit=True)
    out = io.StringIO()
    qr.print_ascii(out=out, invert=True)
    return out.getvalue()


class EventBridge:
    """Only writer of ``ConnectionState`` driven by the client's push events."""

    def __init__(
        self,
        client: AutomationClient,
        state: ConnectionState,
        recovery: RecoveryCoordinator,
        relay: WebhookRelay,
        call_notice: str = DEFAULT_CALL_NOTICE,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._client = client
        self._state = state
        self._recovery = recovery
        self._relay = relay
        self._call_notice = call_notice
        self._audit = audit_logger

    def attach(self) -> None:
        self._client.subscribe(self.handle)

    async def handle(self, event: AnyEvent) -> None:
        if isinstance(event, MessageEvent):
            await self.on_message(event)
        elif isinstance(event, CallEvent):
            await self.on_call(event)
        elif isinstance(event, ReadyEvent):
            await self.on_ready()
        elif isinstance(event, DisconnectedEvent):
            logger.warning("WhatsApp client disconnected: %s", event.reason)
            await self._connection_lost("disconnected", event.reason)
        elif isinstance(event, AuthFailureEvent):
            logger.error("Authentication failure: %s", event.message)
            await self._connection_lost("auth_failure", event.message)
        elif isinstance(event, QREvent):
            await self.on_qr(event)

    async def on_qr(self, event: QREvent) -> None:
        logger.info("QR code generated for WhatsApp session")
        logger.info("Scan to pair:\n%s", render_qr(event.code))
        logger.info("%s", event.code)
        await self._state.enter_phase(ConnectionPhase.AWAITING_QR)

    async def on_ready(self) -> None:
        logger.info("WhatsApp client is ready!")
        await self._state.set_ready(True)
        await self._state.touch()
        self._journal(AuditEventType.CONNECTION_READY, "ready", "success")

    async def _connection_lost(self, action: str, reason: str | None) -> None:
        await self._state.set_ready(False, ConnectionPhase.DISCONNECTED)
        self._journal(
            AuditEventType.CONNECTION_LOST, action, "failure",
            severity=Severity.ERROR, details={"reason": reason},
        )
        await self._relay.notify_down(mapping.down_payload(reason, _now_iso()))

    async def on_call(self, call: CallEvent) -> None:
        kind = "video" if call.is_video else "voice"
        logger.info("Incoming call from %s (%s)", call.from_, kind)
        try:
            await self._client.reject_call(call.id)
            logger.info("Call from %s rejected.", call.from_)
            await self._client.send_message(call.from_, self._call_notice)
            logger.info("Sent %r to %s", self._call_notice, call.from_)
            await self._state.touch()
        except Exception as exc:
            logger.error("Error handling call: %s", exc)
            await self._recovery.handle(exc, origin="call")
            return

        url = self._relay.message_url
        if not url:
            return
        try:
            await self._relay.post(url, mapping.call_payload(call, _now_iso()))
        except DELIVERY_ERRORS as exc:
            logger.error("Error posting call info: %s", exc)
            self._journal(
                AuditEventType.WEBHOOK_FAILED, "call", "failure",
                severity=Severity.WARNING, details={"error": str(exc)},
            )
            return
        logger.info("Posted call info to %s", url)

    async def on_message(self, msg: MessageEvent) -> None:
        logger.info("Received message from %s of type %s", msg.from_, msg.type)
        if mapping.is_status_identity(msg.from_):
            logger.info("Ignored status update from %s | type: %s | id: %s",
                        msg.from_, msg.type, msg.id or "N/A")
            return
        if not mapping.should_relay(msg):
            logger.info("Ignored message of type %s from %s", msg.type, msg.from_)
            return

        url = self._relay.message_url
        if not url:
            return
        data = mapping.message_payload(msg)
        summary = f"id: {data['id']} | type: {data['type']} | phoneNumber: {data['phoneNumber']}"
        try:
            await self._relay.post(url, data)
        except DELIVERY_ERRORS as exc:
            logger.error("Error posting message info: %s | %s", exc, summary)
            self._journal(
                AuditEventType.WEBHOOK_FAILED, "message", "failure",
                severity=Severity.WARNING, details={"error": str(exc), "type": msg.type},
            )
            await self._recovery.handle(exc, origin="message_relay")
            return
        logger.info("Posted message info to %s | %s", url, summary)
        await self._state.touch()

    def _journal(
        self,
        event_type: AuditEventType,
        action: str,
        result: str,
        severity: Severity = Severity.INFO,
        details: dict[str, object] | None = None,
    ) -> None:
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=event_type,
                action=action,
                result=result,
                severity=severity,
                details=details,
            ))
