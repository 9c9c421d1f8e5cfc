"""Sync engine exceptions for error handling."""


class SyncError(Exception):
    """Base exception for synchronization engine operations."""

    pass


class StartupError(SyncError):
    """Raised when the engine cannot start (no store, no resume point)."""

    pass


class PositionUnavailableError(StartupError):
    """Raised when the store's current change-log position cannot be read."""

    pass


class PayloadDecodeError(SyncError):
    """Raised when a reverse-path body is neither an edit nor a list of edits."""

    def __init__(self, message: str = None):
        super().__init__(message or "Invalid JSON payload")


class TransactionError(SyncError):
    """Raised when a reverse batch transaction cannot be opened or committed."""

    pass
