"""Applies the Error Classifier's verdict to the shared connection state."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from wabridge.audit.logger import AuditLogger
from wabridge.models import AuditEvent, AuditEventType, RecoveryAction, Severity
from wabridge.session.classifier import classify
from wabridge.session.janitor import ProcessJanitor
from wabridge.session.state import ConnectionState

logger = logging.getLogger(__name__)


class RecoveryCoordinator:
    """Single recovery policy for every call site that sees client errors."""

    def __init__(
        self,
        state: ConnectionState,
        janitor: ProcessJanitor,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._state = state
        self._janitor = janitor
        self._audit = audit_logger
        self._request_restart: Callable[[], Awaitable[bool]] | None = None

    def bind_restart(self, request_restart: Callable[[], Awaitable[bool]]) -> None:
        """Register the watchdog hook used by ``MARK_NOT_READY_AND_RESTART``."""
        self._request_restart = request_restart

    async def handle(self, error: BaseException | str, origin: str = "unknown") -> RecoveryAction:
        action = classify(error)
        if action is RecoveryAction.NONE:
            return action

        if action is RecoveryAction.MARK_NOT_READY:
            logger.warning("Session closed detected (%s), marking client as not ready", origin)
            await self._state.set_ready(False)
        elif action is RecoveryAction.MARK_NOT_READY_AND_RESTART:
            await self._state.set_ready(False)
            if self._request_restart is not None:
                await self._request_restart()
            else:
                logger.error("Restart requested by %s but no watchdog is bound", origin)
        elif action is RecoveryAction.CLEAR_LOCK_AND_MARK_NOT_READY:
            report = await self._janitor.clear_lock()
            await self._state.set_ready(False)
            self._journal(
                AuditEventType.LOCK_CLEARED,
                origin,
                "success" if report.ok else "failure",
                {"terminated": report.terminated, "lock_removed": report.lock_removed,
                 "errors": report.errors},
            )

        self._journal(
            AuditEventType.SESSION_RECOVERY, origin, action.value, {"error": str(error)},
        )
        return action

    def _journal(
        self,
        event_type: AuditEventType,
        origin: str,
        result: str,
        details: dict[str, object],
    ) -> None:
        if self._audit:
            self._audit.log(AuditEvent(
                event_type=event_type,
                action=origin,
                result=result,
                severity=Severity.WARNING,
                details=details,
            ))
