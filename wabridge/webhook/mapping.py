"""Inbound event filtering and the canonical webhook payload shapes."""

from __future__ import annotations

from typing import Any

from wabridge.models import CallEvent, MessageEvent

STATUS_IDENTITIES = frozenset({"status@broadcast", "status@c.us"})

IGNORED_MESSAGE_TYPES = frozenset({
    "sticker",
    "call_log",
    "e2e_notification",
    "revoked",
    "multi_vcard",
    "order",
    "product",
    "list",
    "buttons_response",
    "list_response",
    "poll",
    "poll_response",
})

# type -> (boolean flag set to True, {payload field: MessageEvent attribute})
MESSAGE_EXTRAS: dict[str, tuple[str | None, dict[str, str]]] = {
    "image": ("imagen", {"caption": "caption"}),
    "video": ("video", {"caption": "caption"}),
    "audio": ("audio", {}),
    "ptt": ("audio", {}),
    "document": ("document", {"filename": "filename", "caption": "caption"}),
    "location": (None, {"location": "location"}),
    "contact": (None, {"contact": "vcard"}),
    "vcard": (None, {"contact": "vcard"}),
    "ciphertext": ("ciphertext", {}),
}

CALL_DECLINED_TEMPLATE = "Llamada rechazada del número: {caller}"


def is_status_identity(identity: str | None) -> bool:
    return identity in STATUS_IDENTITIES


def should_relay(msg: MessageEvent) -> bool:
    return not is_status_identity(msg.from_) and msg.type not in IGNORED_MESSAGE_TYPES


def local_identity(identity: str) -> str | None:
    """Part of ``user@server`` before the ``@``."""
    user, sep, _ = identity.partition("@")
    return user if sep and user else None


def message_payload(msg: MessageEvent) -> dict[str, Any]:
    data: dict[str, Any] = {
        "phoneNumber": local_identity(msg.from_) or "",
        "type": msg.type,
        "from": msg.from_,
        "id": msg.id,
        "timestamp": msg.timestamp,
        "body": msg.body or "",
        "hasMedia": msg.has_media,
    }
    flag, fields = MESSAGE_EXTRAS.get(msg.type, (None, {}))
    if flag:
        data[flag] = True
    for target, attr in fields.items():
        value = getattr(msg, attr)
        if attr == "location":
            loc = value
            data[target] = {
                "latitude": loc.latitude if loc else None,
                "longitude": loc.longitude if loc else None,
                "description": loc.description if loc else None,
            }
        else:
            data[target] = value or ""
    return data


def call_payload(call: CallEvent, timestamp: str) -> dict[str, Any]:
    return {
        "phoneNumber": call.from_,
        "message": CALL_DECLINED_TEMPLATE.format(caller=call.from_),
        "type": "call",
        "isVideo": call.is_video,
        "timestamp": timestamp,
    }


def down_payload(reason: str | None, timestamp: str) -> dict[str, Any]:
    return {
        "message": "WhatsApp client is down",
        "reason": reason or "unknown",
        "timestamp": timestamp,
    }
