"""ASGI middleware for Bearer token authentication."""

from __future__ import annotations

import hmac

from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Receive, Scope, Send

from wabridge.audit.logger import AuditLogger
from wabridge.models import AuditEvent, AuditEventType, Severity

# Paths that bypass authentication (exact match)
PUBLIC_PATHS = {"/health", "/test"}


def bearer_matches(auth_header: str, expected: bytes) -> bool:
    if not auth_header.startswith("Bearer "):
        return False
    return hmac.compare_digest(auth_header[7:].encode(), expected)


class AuthMiddleware:
    """Validates the caller's Bearer token with a constant-time comparison.

    Paths listed in ``bridge_paths`` carry their own token check.
    """

    def __init__(
        self,
        app: ASGIApp,
        token: str,
        audit_logger: AuditLogger | None = None,
        bridge_paths: frozenset[str] = frozenset(),
    ) -> None:
        self.app = app
        self._token = token.encode()
        self.audit_logger = audit_logger
        self._bridge_paths = bridge_paths

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope)
        path = request.url.path

        if path in PUBLIC_PATHS or path in self._bridge_paths:
            await self.app(scope, receive, send)
            return

        auth_header = request.headers.get("authorization", "")

        if not auth_header.startswith("Bearer "):
            response = JSONResponse({"res": False, "error": "No token provided"}, status_code=401)
            self._log(request, AuditEventType.AUTH_FAILURE, "missing_token")
            await response(scope, receive, send)
            return

        if not bearer_matches(auth_header, self._token):
            response = JSONResponse({"res": False, "error": "Invalid token"}, status_code=403)
            self._log(request, AuditEventType.AUTH_FAILURE, "invalid_token")
            await response(scope, receive, send)
            return

        self._log(request, AuditEventType.AUTH_SUCCESS)
        await self.app(scope, receive, send)

    def _log(
        self, request: Request, event_type: AuditEventType, reason: str | None = None,
    ) -> None:
        if not self.audit_logger:
            return
        failed = event_type is AuditEventType.AUTH_FAILURE
        self.audit_logger.log(AuditEvent(
            event_type=event_type,
            source_ip=request.client.host if request.client else None,
            action=f"{request.method} {request.url.path}",
            result="failure" if failed else "success",
            severity=Severity.WARNING if failed else Severity.INFO,
            details={"reason": reason} if reason else None,
        ))
