"""Wires the session components around a single automation client."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from wabridge.audit.logger import AuditLogger
from wabridge.client.base import AutomationClient
from wabridge.config import SupervisorConfig
from wabridge.dispatch.dispatcher import DispatchResult, OutboundDispatcher
from wabridge.models import SendRequest
from wabridge.session import (
    ConnectionState,
    HealthMonitor,
    ProcessJanitor,
    RecoveryCoordinator,
    ZombieWatchdog,
)
from wabridge.webhook.events import EventBridge
from wabridge.webhook.relay import WebhookRelay

logger = logging.getLogger(__name__)


class Supervisor:
    """Owns the process-wide client, state and periodic triggers."""

    def __init__(
        self,
        client: AutomationClient,
        config: SupervisorConfig | None = None,
        audit_logger: AuditLogger | None = None,
        janitor: ProcessJanitor | None = None,
    ) -> None:
        config = config or SupervisorConfig()
        self.config = config
        self.client = client
        self.state = ConnectionState()
        self.janitor = janitor or ProcessJanitor(config.lock_path)
        self.recovery = RecoveryCoordinator(self.state, self.janitor, audit_logger)
        self.health = HealthMonitor(
            client, self.state, self.recovery, interval_seconds=config.health_interval,
        )
        self.watchdog = ZombieWatchdog(
            client,
            self.state,
            interval_seconds=config.zombie_interval,
            idle_threshold_seconds=config.zombie_idle_threshold,
            restart_delay_seconds=config.zombie_restart_delay,
            audit_logger=audit_logger,
        )
        self.recovery.bind_restart(self.watchdog.restart)
        self.relay = WebhookRelay(
            message_url=config.message_webhook_url,
            down_url=config.down_webhook_url,
            timeout=config.webhook_timeout,
        )
        self.events = EventBridge(
            client,
            self.state,
            self.recovery,
            self.relay,
            call_notice=config.call_notice,
            audit_logger=audit_logger,
        )
        self.dispatcher = OutboundDispatcher(
            client,
            self.state,
            self.recovery,
            send_timeout=config.send_timeout,
            image_pause=config.image_pause,
            audit_logger=audit_logger,
        )
        self._tasks: list[asyncio.Task[None]] = []
        self.events.attach()

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        if self._tasks:
            return
        try:
            await self.client.initialize()
        except Exception as exc:
            logger.error("Client initialization failed: %s", exc)
            await self.recovery.handle(exc, origin="initialize")
        self._tasks = [
            asyncio.create_task(
                _every(self.health.interval_seconds, self.health.tick, "health check"),
            ),
            asyncio.create_task(
                _every(self.watchdog.interval_seconds, self.watchdog.tick, "zombie watchdog"),
            ),
        ]

    async def stop(self) -> None:
        logger.info("Process before exit, cleaning up...")
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.watchdog.cancel()
        try:
            await self.client.destroy()
        except Exception as exc:
            logger.error("Error in cleanup: %s", exc)
        await self.janitor.terminate_processes()

    async def send(self, request: SendRequest) -> DispatchResult:
        return await self.dispatcher.send(request)


async def _every(
    interval: float, tick: Callable[[], Awaitable[object]], name: str,
) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await tick()
        except Exception:
            logger.exception("Periodic %s failed", name)
