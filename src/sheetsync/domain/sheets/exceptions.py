"""Google Sheets mirror exceptions for error handling."""

from typing import Optional


class MirrorError(Exception):
    """Base exception for mirror operations."""

    pass


class SheetsAPIError(MirrorError):
    """Raised when the Sheets API rejects or fails a request."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
