"""Failure taxonomy shared by the dispatcher, the client and the HTTP layer."""

from __future__ import annotations


class SupervisorError(Exception):
    """Base class for failures that map onto an HTTP answer."""

    status_code = 500
    retryable = False
    default_message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class RequestValidationError(SupervisorError):
    status_code = 400
    default_message = "Invalid request"


class NotReadyError(SupervisorError):
    status_code = 503
    default_message = "WhatsApp client not connected or session closed"


class NumberNotFoundError(SupervisorError):
    status_code = 404
    default_message = "Number not found on WhatsApp"


class SessionRecoveryError(SupervisorError):
    """The session dropped mid-operation; recovery runs in the background."""

    status_code = 503
    retryable = True
    default_message = "WhatsApp session temporarily unavailable, please retry in a few seconds"


class LockContentionError(SessionRecoveryError):
    """Browser profile lock was held; cleanup was forced."""


class SendTimeoutError(SupervisorError):
    default_message = "Send message timeout"


class UnknownError(SupervisorError):
    pass


class AutomationClientError(Exception):
    """Error reported by the automation client; its text drives recovery."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
