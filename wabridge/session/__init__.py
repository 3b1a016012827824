"""Session lifecycle supervision for wabridge.

This package keeps the single automation-client session usable:
- Connection state shared by every component
- Error classification and recovery
- Active health probing
- Zombie detection and forced restart
"""

from wabridge.session.classifier import classify, is_session_recovery
from wabridge.session.health import HealthMonitor
from wabridge.session.janitor import CleanupReport, ProcessJanitor
from wabridge.session.recovery import RecoveryCoordinator
from wabridge.session.state import ConnectionState, StateSnapshot
from wabridge.session.watchdog import ZombieWatchdog

__all__ = [
    "CleanupReport",
    "ConnectionState",
    "HealthMonitor",
    "ProcessJanitor",
    "RecoveryCoordinator",
    "StateSnapshot",
    "ZombieWatchdog",
    "classify",
    "is_session_recovery",
]
