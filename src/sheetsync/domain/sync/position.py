"""Capture of the store's current change-log head."""

from typing import Any

from loguru import logger

from .exceptions import PositionUnavailableError
from .models import SyncPosition

# MySQL 8.4 removed SHOW MASTER STATUS in favour of the second form
_STATUS_QUERIES = ("SHOW MASTER STATUS", "SHOW BINARY LOG STATUS")


def _row_to_position(row: Any) -> SyncPosition:
    row = dict(row)
    return SyncPosition(log_file=str(row["File"]), log_pos=int(row["Position"]))


def capture_sync_position(conn: Any) -> SyncPosition:
    """Read the current binlog file and offset once.

    Args:
        conn: MySQL connection from the db adapter

    Returns:
        Position at which replication should start

    Raises:
        PositionUnavailableError: If neither status query yields a position
    """
    last_error = None
    for query in _STATUS_QUERIES:
        try:
            row = conn.execute(query).fetchone()
        except Exception as e:
            logger.debug(f"{query} failed: {e}")
            last_error = e
            continue

        if row:
            position = _row_to_position(row)
            logger.info(f"Captured change-log position {position}")
            return position
        last_error = None

    if last_error is not None:
        raise PositionUnavailableError(
            f"Could not read change-log position: {last_error}"
        ) from last_error
    raise PositionUnavailableError(
        "Binary logging appears to be disabled (empty status result)"
    )
