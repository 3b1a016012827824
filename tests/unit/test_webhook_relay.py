"""Tests for the outbound webhook relay."""

from __future__ import annotations

from collections.abc import Iterator
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from wabridge.webhook.relay import WebhookRelay

HOOK = "http://hooks.test/onmessage"
DOWN = "http://hooks.test/ondown"


def _response(status: int, url: str = HOOK) -> httpx.Response:
    return httpx.Response(status, request=httpx.Request("POST", url))


@pytest.fixture
def mock_http() -> Iterator[AsyncMock]:
    with patch("wabridge.webhook.relay.httpx.AsyncClient") as mock_client_cls:
        mock_client = AsyncMock()
        mock_client.post.return_value = _response(200)
        mock_client.__aenter__ = AsyncMock(return_value=mock_client)
        mock_client.__aexit__ = AsyncMock(return_value=False)
        mock_client_cls.return_value = mock_client
        yield mock_client


class TestPost:

    @pytest.mark.asyncio
    async def test_posts_json(self, mock_http: AsyncMock) -> None:
        relay = WebhookRelay(message_url=HOOK, timeout=3.0)
        await relay.post(HOOK, {"type": "chat"})

        mock_http.post.assert_awaited_once()
        args, kwargs = mock_http.post.call_args
        assert args[0] == HOOK
        assert kwargs["json"] == {"type": "chat"}
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert kwargs["timeout"] == 3.0

    @pytest.mark.asyncio
    async def test_non_2xx_raises(self, mock_http: AsyncMock) -> None:
        mock_http.post.return_value = _response(502)
        with pytest.raises(httpx.HTTPStatusError):
            await WebhookRelay(message_url=HOOK).post(HOOK, {})

    @pytest.mark.asyncio
    async def test_transport_error_raises(self, mock_http: AsyncMock) -> None:
        mock_http.post.side_effect = httpx.ConnectError("refused")
        with pytest.raises(httpx.ConnectError):
            await WebhookRelay(message_url=HOOK).post(HOOK, {})


class TestNotifyDown:

    @pytest.mark.asyncio
    async def test_without_url_is_noop(self, mock_http: AsyncMock) -> None:
        assert await WebhookRelay(down_url="").notify_down({"reason": "x"}) is False
        mock_http.post.assert_not_called()

    @pytest.mark.asyncio
    async def test_posts_to_down_url(self, mock_http: AsyncMock) -> None:
        relay = WebhookRelay(down_url=DOWN)
        assert await relay.notify_down({"reason": "NAVIGATION"}) is True
        assert mock_http.post.call_args.args[0] == DOWN

    @pytest.mark.asyncio
    async def test_failure_is_swallowed(self, mock_http: AsyncMock) -> None:
        mock_http.post.return_value = _response(500, DOWN)
        assert await WebhookRelay(down_url=DOWN).notify_down({}) is False


def test_empty_urls_are_treated_as_unset() -> None:
    relay = WebhookRelay(message_url="", down_url="")
    assert relay.message_url is None
    assert relay.down_url is None


@pytest.mark.asyncio
async def test_malformed_down_url_is_swallowed(mock_http: AsyncMock) -> None:
    mock_http.post.side_effect = httpx.InvalidURL("No host included in URL.")
    assert await WebhookRelay(down_url="http://").notify_down({}) is False
