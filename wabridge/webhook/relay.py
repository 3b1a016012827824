"""Best-effort JSON POST of canonical payloads to configured webhooks."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0

# InvalidURL is not an HTTPError subclass
DELIVERY_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


class WebhookRelay:
    """Posts payloads to the inbound-event and connection-down URLs.

    ``post`` raises on transport errors and non-2xx answers; callers decide
    whether a failure is only logged or also classified. Nothing is retried.
    """

    def __init__(
        self,
        message_url: str | None = None,
        down_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.message_url = message_url or None
        self.down_url = down_url or None
        self._timeout = timeout

    async def post(self, url: str, payload: dict[str, Any]) -> None:
        headers = {"Content-Type": "application/json"}
        async with httpx.AsyncClient() as client:
            resp = await client.post(url, json=payload, headers=headers, timeout=self._timeout)
            resp.raise_for_status()

    async def notify_down(self, payload: dict[str, Any]) -> bool:
        if not self.down_url:
            return False
        try:
            await self.post(self.down_url, payload)
        except DELIVERY_ERRORS as exc:
            logger.error("Error posting ONDOWN info: %s", exc)
            return False
        logger.info("Posted ONDOWN info to %s", self.down_url)
        return True
