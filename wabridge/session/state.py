"""Process-wide connection state shared by every supervisor component."""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

from wabridge.models import ConnectionPhase


@dataclass(frozen=True)
class StateSnapshot:
    ready: bool
    phase: ConnectionPhase
    last_successful_operation_at: str
    idle_seconds: float

    def as_dict(self) -> dict[str, object]:
        return {
            "ready": self.ready,
            "phase": self.phase.value,
            "last_successful_operation_at": self.last_successful_operation_at,
            "idle_seconds": round(self.idle_seconds, 3),
        }


class ConnectionState:
    """Readiness flag plus the time of the last successful operation.

    ``ready`` is advisory: it only says the client reported a connected
    status at some point. Every mutation goes through an ``asyncio.Lock``
    so that a multi-step transition (see ``exclusive``) cannot interleave
    with a concurrent ``touch`` or ``set_ready``.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = asyncio.Lock()
        self._ready = False
        self._phase = ConnectionPhase.UNINITIALIZED
        self._last_op = clock()
        self._last_op_wall = datetime.now(UTC)

    # --- reads ---

    def is_marked_ready(self) -> bool:
        return self._ready

    @property
    def phase(self) -> ConnectionPhase:
        return self._phase

    def idle_duration(self) -> float:
        """Seconds since the last successful operation."""
        return max(0.0, self._clock() - self._last_op)

    def snapshot(self) -> StateSnapshot:
        return StateSnapshot(
            ready=self._ready,
            phase=self._phase,
            last_successful_operation_at=self._last_op_wall.isoformat(),
            idle_seconds=self.idle_duration(),
        )

    # --- writes ---

    async def set_ready(self, ready: bool, phase: ConnectionPhase | None = None) -> None:
        async with self._lock:
            self._apply_ready(ready, phase)

    async def touch(self) -> None:
        async with self._lock:
            self._apply_touch()

    async def enter_phase(self, phase: ConnectionPhase) -> None:
        async with self._lock:
            self._phase = phase

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[StateTransaction]:
        """Hold the state lock across a multi-step transition."""
        async with self._lock:
            yield StateTransaction(self)

    def _apply_ready(self, ready: bool, phase: ConnectionPhase | None) -> None:
        if phase is None:
            if ready:
                phase = ConnectionPhase.READY
            elif self._phase is ConnectionPhase.READY:
                phase = ConnectionPhase.DEGRADED
            else:
                phase = self._phase
        self._ready = ready
        self._phase = phase

    def _apply_touch(self) -> None:
        self._last_op = self._clock()
        self._last_op_wall = datetime.now(UTC)


class StateTransaction:
    """Lock-free view of ``ConnectionState`` used inside ``exclusive()``."""

    def __init__(self, state: ConnectionState) -> None:
        self._state = state

    def is_marked_ready(self) -> bool:
        return self._state.is_marked_ready()

    def idle_duration(self) -> float:
        return self._state.idle_duration()

    def set_ready(self, ready: bool, phase: ConnectionPhase | None = None) -> None:
        self._state._apply_ready(ready, phase)

    def touch(self) -> None:
        self._state._apply_touch()
