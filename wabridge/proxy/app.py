"""FastAPI application exposing send, readiness and bridge-event endpoints."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import BackgroundTasks, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import TypeAdapter, ValidationError

from wabridge.audit.logger import AuditLogger
from wabridge.client.base import EventEmitter
from wabridge.client.bridge import HttpBridgeClient
from wabridge.config import SupervisorConfig
from wabridge.errors import NotReadyError, RequestValidationError, SupervisorError
from wabridge.models import InboundEvent, SendRequest
from wabridge.proxy.auth_middleware import AuthMiddleware, bearer_matches
from wabridge.supervisor import Supervisor

logger = logging.getLogger(__name__)

BRIDGE_EVENTS_PATH = "/bridge/events"

_event_adapter: TypeAdapter[Any] = TypeAdapter(InboundEvent)


def create_app_from_env() -> FastAPI:
    """Factory for uvicorn --factory: reads config from environment variables."""
    config = SupervisorConfig.from_env()
    if not config.access_token:
        raise RuntimeError("TOKENACCESS must be set")
    audit_logger = AuditLogger.from_env(config.audit_log_path) if config.audit_log_path else None
    client = HttpBridgeClient(
        config.bridge_url, token=config.bridge_token, media_timeout=config.send_timeout,
    )
    supervisor = Supervisor(client, config, audit_logger)
    return create_app(
        supervisor,
        config.access_token,
        audit_logger=audit_logger,
        bridge_token=config.bridge_token,
    )


def create_app(
    supervisor: Supervisor,
    token: str,
    audit_logger: AuditLogger | None = None,
    bridge_token: str | None = None,
) -> FastAPI:
    """Create the app; the lifespan starts and stops the supervisor."""

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await supervisor.start()
        yield
        await supervisor.stop()

    app = FastAPI(docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.supervisor = supervisor

    @app.exception_handler(SupervisorError)
    async def supervisor_error(request: Request, exc: SupervisorError) -> JSONResponse:
        body: dict[str, object] = {"res": False, "error": exc.message}
        if exc.retryable:
            body["retry"] = True
        return JSONResponse(body, status_code=exc.status_code)

    @app.get("/health")
    async def health() -> dict[str, object]:
        return {"status": "ok", "connection": supervisor.state.snapshot().as_dict()}

    @app.get("/test")
    async def readiness() -> JSONResponse:
        logger.info("Health check on /test")
        try:
            ready = await supervisor.health.confirm_ready()
        except Exception as exc:
            logger.error("Error checking client status: %s", exc)
            return JSONResponse({"status": "error", "whatsapp": "check failed"}, status_code=503)
        if ready:
            logger.info("WhatsApp client ready - test passed")
            return JSONResponse({"status": "ok", "whatsapp": "ready"})
        logger.warning("WhatsApp client not ready - test failed")
        return JSONResponse({"status": "error", "whatsapp": "not ready"}, status_code=503)

    @app.post("/send")
    async def send(request: Request) -> JSONResponse:
        logger.info("Received request to /send")
        if not await supervisor.health.confirm_ready():
            logger.warning("WhatsApp client not ready or session closed")
            raise NotReadyError()

        send_request = _parse_send_request(await _json_body(request))
        await supervisor.send(send_request)
        return JSONResponse({"status": True})

    bridge_paths: frozenset[str] = frozenset()
    if isinstance(supervisor.client, EventEmitter):
        emitter = supervisor.client
        expected = bridge_token.encode() if bridge_token else None

        @app.post(BRIDGE_EVENTS_PATH, status_code=202)
        async def bridge_events(request: Request, tasks: BackgroundTasks) -> JSONResponse:
            if expected is not None and not bearer_matches(
                request.headers.get("authorization", ""), expected,
            ):
                return JSONResponse({"res": False, "error": "Invalid token"}, status_code=403)
            try:
                event = _event_adapter.validate_python(await _json_body(request))
            except ValidationError as exc:
                raise RequestValidationError(_describe(exc)) from exc
            tasks.add_task(emitter.emit, event)
            return JSONResponse({"accepted": True}, status_code=202)

        # with a bridge token the route checks it; otherwise the caller token applies
        if expected is not None:
            bridge_paths = frozenset({BRIDGE_EVENTS_PATH})

    app.add_middleware(
        AuthMiddleware, token=token, audit_logger=audit_logger, bridge_paths=bridge_paths,
    )

    return app


async def _json_body(request: Request) -> Any:
    try:
        return json.loads(await request.body())
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise RequestValidationError("Invalid JSON body") from exc


def _parse_send_request(body: Any) -> SendRequest:
    if not isinstance(body, dict):
        raise RequestValidationError("Request body must be a JSON object")
    try:
        send_request = SendRequest.model_validate(body)
    except ValidationError as exc:
        logger.warning("Invalid send request: %s", exc.errors()[0].get("msg"))
        raise RequestValidationError(_describe(exc)) from exc
    if not send_request.has_content():
        logger.warning("No content to send")
        raise RequestValidationError(
            "At least one of: message, imageUrl, imageUrls, or pdfUrl is required",
        )
    return send_request


def _describe(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
