"""Tests for the auth middleware."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.applications import Starlette
from starlette.responses import PlainTextResponse
from starlette.routing import Route

from wabridge.models import AuditEventType
from wabridge.proxy.auth_middleware import AuthMiddleware, bearer_matches

TOKEN = "test-secret-token-12345"


def _create_app(
    audit_logger: MagicMock | None = None,
    bridge_paths: frozenset[str] = frozenset(),
) -> Starlette:
    async def send(request):  # noqa: ANN001
        return PlainTextResponse("OK")

    async def health(request):  # noqa: ANN001
        return PlainTextResponse("healthy")

    async def probe(request):  # noqa: ANN001
        return PlainTextResponse("probed")

    async def events(request):  # noqa: ANN001
        return PlainTextResponse("accepted")

    app = Starlette(routes=[
        Route("/send", send, methods=["POST"]),
        Route("/health", health),
        Route("/test", probe),
        Route("/bridge/events", events, methods=["POST"]),
    ])
    return AuthMiddleware(  # type: ignore[return-value]
        app, token=TOKEN, audit_logger=audit_logger, bridge_paths=bridge_paths,
    )


@pytest.mark.asyncio
async def test_valid_token_passes() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/send", headers={"Authorization": f"Bearer {TOKEN}"})
        assert resp.status_code == 200
        assert resp.text == "OK"


@pytest.mark.asyncio
async def test_missing_token_returns_401() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/send")
        assert resp.status_code == 401
        assert resp.json() == {"res": False, "error": "No token provided"}


@pytest.mark.asyncio
async def test_non_bearer_scheme_returns_401() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/send", headers={"Authorization": f"Token {TOKEN}"})
        assert resp.status_code == 401


@pytest.mark.asyncio
async def test_invalid_token_returns_403() -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.post("/send", headers={"Authorization": "Bearer wrong"})
        assert resp.status_code == 403
        assert resp.json() == {"res": False, "error": "Invalid token"}


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/health", "/test"])
async def test_public_paths_bypass_auth(path: str) -> None:
    app = _create_app()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get(path)
        assert resp.status_code == 200


@pytest.mark.asyncio
async def test_bridge_path_requires_token_unless_exempted() -> None:
    guarded = _create_app()
    exempt = _create_app(bridge_paths=frozenset({"/bridge/events"}))
    async with AsyncClient(transport=ASGITransport(app=guarded), base_url="http://test") as client:
        assert (await client.post("/bridge/events")).status_code == 401
    async with AsyncClient(transport=ASGITransport(app=exempt), base_url="http://test") as client:
        assert (await client.post("/bridge/events")).status_code == 200


@pytest.mark.asyncio
async def test_auth_events_are_journaled() -> None:
    audit = MagicMock()
    app = _create_app(audit_logger=audit)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        await client.post("/send", headers={"Authorization": "Bearer wrong"})
        await client.post("/send", headers={"Authorization": f"Bearer {TOKEN}"})

    failure, success = (c.args[0] for c in audit.log.call_args_list)
    assert failure.event_type is AuditEventType.AUTH_FAILURE
    assert failure.details == {"reason": "invalid_token"}
    assert failure.action == "POST /send"
    assert success.event_type is AuditEventType.AUTH_SUCCESS


def test_bearer_matches() -> None:
    assert bearer_matches(f"Bearer {TOKEN}", TOKEN.encode()) is True
    assert bearer_matches(f"bearer {TOKEN}", TOKEN.encode()) is False
    assert bearer_matches("Bearer ", TOKEN.encode()) is False
