"""Active health probing of the automation client."""

from __future__ import annotations

import logging

from wabridge.client.base import CONNECTED, AutomationClient
from wabridge.session.recovery import RecoveryCoordinator
from wabridge.session.state import ConnectionState

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30.0


class HealthMonitor:
    """Confirms liveness with real client calls.

    Listing contacts only succeeds on an authenticated, active session.
    """

    def __init__(
        self,
        client: AutomationClient,
        state: ConnectionState,
        recovery: RecoveryCoordinator,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ) -> None:
        self._client = client
        self._state = state
        self._recovery = recovery
        self.interval_seconds = interval_seconds

    async def check(self) -> bool:
        """Run the full probe; return True when the session is healthy."""
        if not self._state.is_marked_ready():
            return False
        try:
            status = await self._client.get_connection_state()
            await self._client.get_contacts()
        except Exception as exc:
            logger.error("Health check failed: %s", exc)
            await self._recovery.handle(exc, origin="health_check")
            return False

        if status != CONNECTED:
            logger.warning("Health check saw connection state %r", status)
            return False
        await self._state.touch()
        return True

    async def tick(self) -> bool:
        healthy = await self.check()
        if not healthy and self._state.is_marked_ready():
            logger.warning("Health check failed, marking client as not ready")
            await self._state.set_ready(False)
        return healthy

    async def confirm_ready(self) -> bool:
        """Light readiness probe used before serving a request."""
        if not self._state.is_marked_ready():
            return False
        try:
            status = await self._client.get_connection_state()
        except Exception as exc:
            logger.warning("Client state check failed: %s", exc)
            await self._recovery.handle(exc, origin="readiness_probe")
            await self._state.set_ready(False)
            return False
        if status != CONNECTED:
            return False
        await self._state.touch()
        return True
