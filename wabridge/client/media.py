"""Download remote media into a base64 payload the client can send."""

from __future__ import annotations

import base64
from pathlib import PurePosixPath
from urllib.parse import urlparse

import httpx

from wabridge.models import MediaPayload

_DEFAULT_MIME = "application/octet-stream"


async def fetch_media(
    url: str,
    mime_type: str | None = None,
    timeout: float = 30.0,
) -> MediaPayload:
    """Fetch ``url``; ``mime_type`` overrides whatever the server declares.

    Raises ``httpx.HTTPError`` on transport failures and non-2xx answers.
    """
    async with httpx.AsyncClient(follow_redirects=True) as client:
        resp = await client.get(url, timeout=timeout)
        resp.raise_for_status()

    declared = resp.headers.get("content-type", "").split(";")[0].strip()
    filename = PurePosixPath(urlparse(url).path).name or None
    return MediaPayload(
        mimetype=mime_type or declared or _DEFAULT_MIME,
        data=base64.b64encode(resp.content).decode("ascii"),
        filename=filename,
    )
