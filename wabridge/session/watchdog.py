"""Zombie watchdog: the only component allowed to tear down the client."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from wabridge.audit.logger import AuditLogger
from wabridge.client.base import AutomationClient
from wabridge.models import AuditEvent, AuditEventType, ConnectionPhase, Severity
from wabridge.session.state import ConnectionState

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5 * 60.0
DEFAULT_IDLE_THRESHOLD_SECONDS = 15 * 60.0
DEFAULT_RESTART_DELAY_SECONDS = 5.0


class ZombieWatchdog:
    """Restarts a client that looks ready but has gone quiet for too long."""

    def __init__(
        self,
        client: AutomationClient,
        state: ConnectionState,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        idle_threshold_seconds: float = DEFAULT_IDLE_THRESHOLD_SECONDS,
        restart_delay_seconds: float = DEFAULT_RESTART_DELAY_SECONDS,
        audit_logger: AuditLogger | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._state = state
        self.interval_seconds = interval_seconds
        self._idle_threshold = idle_threshold_seconds
        self._restart_delay = restart_delay_seconds
        self._audit = audit_logger
        self._sleep = sleep
        self._pending_restart: asyncio.Task[None] | None = None

    @property
    def restart_pending(self) -> bool:
        return self._pending_restart is not None and not self._pending_restart.done()

    @property
    def pending_restart(self) -> asyncio.Task[None] | None:
        return self._pending_restart

    async def tick(self) -> bool:
        """Return True when a zombie restart was triggered."""
        async with self._state.exclusive() as txn:
            idle = txn.idle_duration()
            if idle <= self._idle_threshold or not txn.is_marked_ready():
                return False

            logger.warning("Client may be zombie (%.0fs idle), forcing restart", idle)
            await self._destroy()
            txn.set_ready(False, ConnectionPhase.UNINITIALIZED)
            scheduled = self._schedule_reinitialize()

        if self._audit:
            self._audit.log(AuditEvent(
                event_type=AuditEventType.ZOMBIE_RESTART,
                action="watchdog",
                result="scheduled" if scheduled else "already_pending",
                severity=Severity.WARNING,
                details={"idle_seconds": round(idle, 1)},
            ))
        return True

    async def restart(self) -> bool:
        """Destroy and reinitialize on request of the recovery coordinator."""
        async with self._state.exclusive() as txn:
            await self._destroy()
            txn.set_ready(False, ConnectionPhase.UNINITIALIZED)
            return self._schedule_reinitialize()

    async def cancel(self) -> None:
        task = self._pending_restart
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._pending_restart = None

    async def _destroy(self) -> None:
        try:
            await self._client.destroy()
        except Exception as exc:
            logger.error("Error destroying zombie client: %s", exc)

    def _schedule_reinitialize(self) -> bool:
        if self.restart_pending:
            logger.info("Reinitialize already scheduled")
            return False
        self._pending_restart = asyncio.create_task(self._reinitialize())
        return True

    async def _reinitialize(self) -> None:
        await self._sleep(self._restart_delay)
        try:
            await self._client.initialize()
        except Exception as exc:
            logger.error("Reinitialize after zombie restart failed: %s", exc)
