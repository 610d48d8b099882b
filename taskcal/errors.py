"""
Error taxonomy for the scheduling core.

Every error here is recoverable at panel level:
- ValidationError: bad form input, handled inline, no transition
- RemoteError: a store call failed, state rolls back to the prior mode
- NotFoundError: the target no longer exists, state returns to idle
- ConfirmationRequired: a destructive step was not confirmed
- PanelBusy: a mutation is already in flight
"""


class TaskcalError(Exception):
    """Base class for all taskcal errors."""

    pass


class ValidationError(TaskcalError):
    """Raised when form input cannot be turned into a schedule."""

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class RemoteError(TaskcalError):
    """
    Raised when a remote store call fails.

    Attributes:
        reason: Short machine-readable cause (api_disabled, permission,
            unavailable, timeout, not_found)
        hint: Optional user-facing suggestion for recovering
    """

    def __init__(self, message: str, reason: str = "unavailable", hint: str | None = None):
        super().__init__(message)
        self.reason = reason
        self.hint = hint


class NotFoundError(RemoteError):
    """Raised when a task or event id is absent from the store."""

    def __init__(self, message: str):
        super().__init__(message, reason="not_found")


class ConfirmationRequired(TaskcalError):
    """Raised when a destructive operation was not confirmed."""

    pass


class PanelBusy(TaskcalError):
    """Raised when a message arrives while a mutation is in flight."""

    pass
