"""Sheets domain - the Google Sheets mirror of the product table."""

from .client import SheetsClient
from .exceptions import MirrorError, SheetsAPIError
from .mirror import MirrorStore, SheetMirror

__all__ = [
    "SheetsClient",
    "MirrorError",
    "SheetsAPIError",
    "MirrorStore",
    "SheetMirror",
]
