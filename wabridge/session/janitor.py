"""Best-effort cleanup of lingering browser processes and the profile lock."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_PROCESS_PATTERNS = ("puppeteer", "chrome")

# pkill: 0 = signalled, 1 = no process matched
_PKILL_NO_MATCH = 1


@dataclass
class CleanupReport:
    terminated: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    lock_removed: bool = False

    @property
    def ok(self) -> bool:
        return not self.errors


class ProcessJanitor:
    """Kills automation-browser processes and removes the session lock file.

    Every step logs its failure and carries on; nothing here raises.
    """

    def __init__(
        self,
        lock_path: str | Path,
        process_patterns: Sequence[str] = DEFAULT_PROCESS_PATTERNS,
    ) -> None:
        self.lock_path = Path(lock_path)
        self._patterns = tuple(process_patterns)

    @classmethod
    def for_session(cls, auth_dir: str | Path, client_id: str) -> ProcessJanitor:
        return cls(Path(auth_dir) / f"session-{client_id}" / "SingletonLock")

    async def terminate_processes(self, report: CleanupReport | None = None) -> CleanupReport:
        report = report or CleanupReport()
        for pattern in self._patterns:
            try:
                proc = await asyncio.create_subprocess_exec(
                    "pkill", "-f", pattern,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.DEVNULL,
                )
                code = await proc.wait()
            except OSError as exc:
                logger.error("Could not run pkill for %r: %s", pattern, exc)
                report.errors.append(f"pkill {pattern}: {exc}")
                continue
            if code == 0:
                report.terminated.append(pattern)
            elif code != _PKILL_NO_MATCH:
                logger.error("pkill -f %r exited with status %d", pattern, code)
                report.errors.append(f"pkill {pattern}: exit {code}")
        return report

    def remove_lock(self, report: CleanupReport | None = None) -> CleanupReport:
        report = report or CleanupReport()
        try:
            self.lock_path.unlink()
        except FileNotFoundError:
            logger.info("No lock file at %s", self.lock_path)
        except OSError as exc:
            logger.error("Could not remove lock file %s: %s", self.lock_path, exc)
            report.errors.append(f"unlink {self.lock_path}: {exc}")
        else:
            report.lock_removed = True
        return report

    async def clear_lock(self) -> CleanupReport:
        logger.warning("Trying to resolve SingletonLock contention")
        report = await self.terminate_processes()
        self.remove_lock(report)
        if report.lock_removed:
            logger.info("Lock removed, waiting for reinitialization")
        return report
