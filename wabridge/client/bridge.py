"""HTTP client for the browser-automation sidecar.

The sidecar hosts the actual messaging-web session. Commands go out as REST
calls; lifecycle and message events come back through ``POST /bridge/events``
on the wabridge app and are fanned out by ``emit``.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from wabridge.client.base import EventEmitter
from wabridge.client.media import fetch_media
from wabridge.errors import AutomationClientError
from wabridge.models import MediaPayload

logger = logging.getLogger(__name__)


class HttpBridgeClient(EventEmitter):
    """``AutomationClient`` backed by the sidecar's REST API."""

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = 60.0,
        media_timeout: float = 30.0,
    ) -> None:
        super().__init__()
        self._base_url = base_url.rstrip("/")
        self._token = token
        self._timeout = timeout
        self._media_timeout = media_timeout

    async def initialize(self) -> None:
        await self._request("POST", "/initialize")

    async def destroy(self) -> None:
        await self._request("POST", "/destroy")

    async def get_connection_state(self) -> str | None:
        data = await self._request("GET", "/state")
        return data.get("state")

    async def get_contacts(self) -> list[dict[str, Any]]:
        data = await self._request("GET", "/contacts")
        return list(data.get("contacts", []))

    async def get_number_id(self, chat_id: str) -> str | None:
        data = await self._request("GET", f"/number-id/{quote(chat_id, safe='')}")
        return data.get("id")

    async def send_message(
        self,
        chat_id: str,
        content: str | MediaPayload,
        options: dict[str, Any] | None = None,
    ) -> Any:
        body: dict[str, Any] = {"chatId": chat_id, "options": options or {}}
        if isinstance(content, MediaPayload):
            body["media"] = content.model_dump()
        else:
            body["content"] = content
        data = await self._request("POST", "/messages", json=body)
        return data.get("id")

    async def fetch_media(self, url: str, mime_type: str | None = None) -> MediaPayload:
        return await fetch_media(url, mime_type=mime_type, timeout=self._media_timeout)

    async def reject_call(self, call_id: str) -> None:
        await self._request("POST", f"/calls/{quote(call_id, safe='')}/reject")

    async def _request(
        self, method: str, path: str, json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"

        try:
            async with httpx.AsyncClient() as client:
                resp = await client.request(
                    method,
                    f"{self._base_url}{path}",
                    json=json,
                    headers=headers,
                    timeout=self._timeout,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise AutomationClientError(f"Bridge unavailable: {exc}") from exc

        try:
            data = resp.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {"result": data}

        if resp.status_code >= 400:
            message = data.get("error") or resp.text or f"HTTP {resp.status_code}"
            raise AutomationClientError(str(message), status_code=resp.status_code)
        return data
