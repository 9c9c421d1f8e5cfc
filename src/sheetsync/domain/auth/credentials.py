"""
Credential provider: turns the stored OAuth token into a usable mirror.

Also owns the single-slot notification the web layer fires when a login
completes, which the reconciliation worker listens on.
"""

import queue
import threading
from contextlib import AbstractContextManager
from typing import Any, Callable, Dict, Optional

from loguru import logger

from sheetsync.core.config import Config
from sheetsync.core.database import (
    get_db_connection,
    get_latest_token,
    get_sheet_id,
    upsert_token,
)
from sheetsync.domain.sheets.client import SheetsClient
from sheetsync.domain.sheets.exceptions import MirrorError
from sheetsync.domain.sheets.mirror import SheetMirror

from . import google
from .exceptions import NotAuthenticatedError

INVENTORY_MAPPING = "inventory"

ConnectionFactory = Callable[[], AbstractContextManager]


class AuthReadySignal:
    """Single-slot, non-blocking notification channel.

    A notification sent while one is already pending is dropped, so any
    number of logins between two worker polls collapse into one reload.
    """

    def __init__(self) -> None:
        self._slot: "queue.Queue[None]" = queue.Queue(maxsize=1)

    def notify(self) -> bool:
        """Post a notification. Returns False if one was already pending."""
        try:
            self._slot.put_nowait(None)
            return True
        except queue.Full:
            return False

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until a notification arrives (consuming it)."""
        try:
            self._slot.get(timeout=timeout)
            return True
        except queue.Empty:
            return False

    def poll(self) -> bool:
        """Consume a pending notification without blocking."""
        try:
            self._slot.get_nowait()
            return True
        except queue.Empty:
            return False

    @property
    def pending(self) -> bool:
        return self._slot.full()


class StoredTokenSource:
    """Hands out a valid access token, refreshing and persisting as needed."""

    def __init__(
        self,
        config: Config,
        token_data: Dict[str, Any],
        connect: ConnectionFactory = get_db_connection,
    ):
        self._config = config
        self._token_data = token_data
        self._connect = connect
        self._lock = threading.Lock()

    @property
    def user_email(self) -> str:
        return self._token_data.get("user_email", "")

    def __call__(self) -> str:
        with self._lock:
            if google.is_token_expired(self._token_data):
                logger.info("Google token expired, attempting refresh")
                refreshed = google.refresh_access_token(
                    self._config.google, self._token_data
                )
                if not refreshed:
                    raise NotAuthenticatedError("Token refresh failed, please login again")

                refreshed["user_email"] = self.user_email
                with self._connect() as conn:
                    upsert_token(conn, self.user_email, refreshed)
                self._token_data = refreshed

            return self._token_data["access_token"]


class CredentialProvider:
    """Builds Sheets clients and mirrors from the most recent stored token.

    Args:
        config: Application configuration
        connect: Context-manager factory yielding store connections
    """

    def __init__(self, config: Config, connect: ConnectionFactory = get_db_connection):
        self.config = config
        self._connect = connect

    def build_client(self) -> SheetsClient:
        """Create a Sheets client for the last user who logged in.

        Raises:
            NotAuthenticatedError: If no token is stored
        """
        with self._connect() as conn:
            token_data = get_latest_token(conn)

        if not token_data:
            raise NotAuthenticatedError("No auth token found in DB, please login first")

        return SheetsClient(StoredTokenSource(self.config, token_data, self._connect))

    def resolve_spreadsheet_id(self) -> Optional[str]:
        """Configured spreadsheet id, else the one saved by the seed endpoint."""
        if self.config.sheets.spreadsheet_id:
            return self.config.sheets.spreadsheet_id
        with self._connect() as conn:
            return get_sheet_id(conn, INVENTORY_MAPPING)

    def acquire_mirror(self) -> SheetMirror:
        """Give me a usable mirror.

        Raises:
            NotAuthenticatedError: If no token is stored
            MirrorError: If no spreadsheet is configured
        """
        client = self.build_client()
        spreadsheet_id = self.resolve_spreadsheet_id()
        if not spreadsheet_id:
            raise MirrorError("No spreadsheet configured (set SPREADSHEET_ID or seed one)")

        mirror = SheetMirror(
            client,
            spreadsheet_id,
            sheet_name=self.config.sheets.sheet_name,
            sheet_id=self.config.sheets.sheet_id,
        )

        try:
            mirror.initialize()
        except Exception as e:
            logger.warning(f"Failed to initialize sheet headers: {e}")

        return mirror
