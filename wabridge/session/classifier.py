"""Maps automation-client error text onto a recovery action."""

from __future__ import annotations

from wabridge.models import RecoveryAction

SESSION_CLOSED_MARKERS = ("Session closed", "Protocol error", "Target closed")
LOCK_MARKER = "SingletonLock"


def classify(error: BaseException | str | None) -> RecoveryAction:
    """Return the recovery action for an error.

    Session-closed markers are checked before the lock marker; the first
    match wins.
    """
    text = error if isinstance(error, str) else str(error or "")
    if any(marker in text for marker in SESSION_CLOSED_MARKERS):
        return RecoveryAction.MARK_NOT_READY
    if LOCK_MARKER in text:
        return RecoveryAction.CLEAR_LOCK_AND_MARK_NOT_READY
    return RecoveryAction.NONE


def is_session_recovery(action: RecoveryAction) -> bool:
    return action is not RecoveryAction.NONE
