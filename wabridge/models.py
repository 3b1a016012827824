"""Shared Pydantic data models for wabridge."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

# --- Enums ---


class RecoveryAction(str, Enum):
    NONE = "none"
    MARK_NOT_READY = "mark_not_ready"
    MARK_NOT_READY_AND_RESTART = "mark_not_ready_and_restart"
    CLEAR_LOCK_AND_MARK_NOT_READY = "clear_lock_and_mark_not_ready"


class ConnectionPhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    AWAITING_QR = "awaiting_qr"
    READY = "ready"
    DEGRADED = "degraded"
    DISCONNECTED = "disconnected"


class AuditEventType(str, Enum):
    AUTH_SUCCESS = "auth_success"
    AUTH_FAILURE = "auth_failure"
    CONNECTION_READY = "connection_ready"
    CONNECTION_LOST = "connection_lost"
    SESSION_RECOVERY = "session_recovery"
    LOCK_CLEARED = "lock_cleared"
    ZOMBIE_RESTART = "zombie_restart"
    MESSAGE_SENT = "message_sent"
    MESSAGE_FAILED = "message_failed"
    WEBHOOK_FAILED = "webhook_failed"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


# --- Outbound ---


class SendRequest(BaseModel):
    """Body of ``POST /send``, validated after the readiness check."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    phone_number: str = Field(alias="phoneNumber", min_length=1)
    message: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    image_urls: list[str] | None = Field(default=None, alias="imageUrls", min_length=1)
    pdf_url: str | None = Field(default=None, alias="pdfUrl")

    def has_content(self) -> bool:
        return bool(self.message or self.image_url or self.image_urls or self.pdf_url)


class MediaPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    mimetype: str
    data: str  # base64
    filename: str | None = None


# --- Inbound events ---


class Location(BaseModel):
    latitude: float | None = None
    longitude: float | None = None
    description: str | None = None


class QREvent(BaseModel):
    event: Literal["qr"] = "qr"
    code: str


class ReadyEvent(BaseModel):
    event: Literal["ready"] = "ready"


class DisconnectedEvent(BaseModel):
    event: Literal["disconnected"] = "disconnected"
    reason: str | None = None


class AuthFailureEvent(BaseModel):
    event: Literal["auth_failure"] = "auth_failure"
    message: str | None = None


class CallEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event: Literal["call"] = "call"
    id: str
    from_: str = Field(alias="from")
    is_video: bool = Field(default=False, alias="isVideo")


class MessageEvent(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    event: Literal["message"] = "message"
    id: str | None = None
    from_: str = Field(alias="from")
    type: str
    timestamp: int | None = None
    body: str | None = None
    caption: str | None = None
    filename: str | None = None
    has_media: bool = Field(default=False, alias="hasMedia")
    location: Location | None = None
    vcard: str | None = None


InboundEvent = Annotated[
    QREvent | ReadyEvent | DisconnectedEvent | AuthFailureEvent | CallEvent | MessageEvent,
    Field(discriminator="event"),
]


# --- Journal ---


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


class AuditEvent(BaseModel):
    timestamp: str = Field(default_factory=_now_iso)
    event_type: AuditEventType
    source_ip: str | None = None
    action: str
    result: str  # "success" | "failure" | "skipped"
    severity: Severity = Severity.INFO
    details: dict[str, object] | None = None
