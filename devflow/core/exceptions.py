class DevFlowError(Exception):
    """Base exception for DevFlow.

    ``message`` is safe to show to API callers.
    """

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidArgumentError(DevFlowError):
    """Raised when input is malformed before any store access."""

    status_code = 400


class NotFoundError(DevFlowError):
    """Raised when a referenced project or session does not exist."""

    status_code = 404


class ConflictError(DevFlowError):
    """Raised on name collisions and active-session invariant violations."""

    status_code = 409


class StoreError(DevFlowError):
    """Raised when the database fails during a write.

    The underlying exception is chained and logged; only the generic message
    reaches the caller.
    """

    status_code = 500
