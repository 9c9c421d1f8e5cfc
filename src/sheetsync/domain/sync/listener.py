"""
Replication listener: tails the MySQL binlog and feeds the ingestion filter.

Runs on its own thread. Because ingestion blocks on a full queue, a slow
worker pauses this thread and with it the binlog cursor.
"""

import threading
from typing import Any, Dict, List, Optional, Sequence

from loguru import logger
from pymysqlreplication import BinLogStreamReader
from pymysqlreplication.row_event import (
    DeleteRowsEvent,
    UpdateRowsEvent,
    WriteRowsEvent,
)

from .ingestion import ChangeIngestionFilter
from .models import ChangeAction, SyncPosition


def row_image(values: Any) -> Sequence[Any]:
    """Positional view of a decoded row image (dicts keep column order)."""
    if isinstance(values, dict):
        return list(values.values())
    if isinstance(values, (list, tuple)):
        return values
    return []


def rows_for_event(event: Any) -> List[tuple]:
    """(action, row image) for every row of a rows event, in order."""
    if isinstance(event, WriteRowsEvent):
        return [(ChangeAction.INSERT, row_image(row["values"])) for row in event.rows]
    if isinstance(event, UpdateRowsEvent):
        return [
            (ChangeAction.UPDATE, row_image(row["after_values"])) for row in event.rows
        ]
    if isinstance(event, DeleteRowsEvent):
        return [(ChangeAction.DELETE, row_image(row["values"])) for row in event.rows]
    return []


class ReplicationListener:
    """Streams row events for one table, starting at a captured position.

    Args:
        ingestion: Filter that turns rows into queued events
        connection_settings: host/port/user/password for the replication client
        position: Where to start reading; never rewound
        server_id: Replication client id, unique per MySQL server
        schema: Watched database
        table: Watched table
        reconnect_delay: Seconds to wait after a stream error
    """

    def __init__(
        self,
        ingestion: ChangeIngestionFilter,
        connection_settings: Dict[str, Any],
        position: SyncPosition,
        server_id: int = 100,
        schema: str = "interndb",
        table: str = "product",
        reconnect_delay: float = 5.0,
    ):
        self.ingestion = ingestion
        self.connection_settings = connection_settings
        self.position = position
        self.server_id = server_id
        self.schema = schema
        self.table = table
        self.reconnect_delay = reconnect_delay
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._stream: Optional[BinLogStreamReader] = None

    def start(self) -> None:
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run, name="replication-listener", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        stream = self._stream
        if stream is not None:
            try:
                stream.close()
            except Exception as e:
                logger.debug(f"Error closing binlog stream: {e}")
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None

    def _open_stream(self) -> BinLogStreamReader:
        return BinLogStreamReader(
            connection_settings=self.connection_settings,
            server_id=self.server_id,
            log_file=self.position.log_file,
            log_pos=self.position.log_pos,
            resume_stream=True,
            blocking=True,
            only_events=[WriteRowsEvent, UpdateRowsEvent, DeleteRowsEvent],
            only_schemas=[self.schema],
            only_tables=[self.table],
        )

    def run(self) -> None:
        logger.info(f"Replication listener starting from {self.position}")
        while not self._stop.is_set():
            try:
                self._stream = self._open_stream()
                self.consume(self._stream)
            except Exception as e:
                if self._stop.is_set():
                    break
                logger.error(
                    f"Replication stream error at {self.position}: {e}; "
                    f"reconnecting in {self.reconnect_delay}s"
                )
                self._stop.wait(self.reconnect_delay)
            finally:
                if self._stream is not None:
                    self._stream.close()
                    self._stream = None
        logger.info("Replication listener stopped")

    def consume(self, stream: Any) -> None:
        """Feed every row of every event to ingestion, tracking the position."""
        for event in stream:
            if self._stop.is_set():
                return
            if event.schema != self.schema or event.table != self.table:
                continue
            for action, row in rows_for_event(event):
                self.ingestion.handle_row(action, row)
            self._advance(stream)

    def _advance(self, stream: Any) -> None:
        log_file = getattr(stream, "log_file", None)
        log_pos = getattr(stream, "log_pos", None)
        if log_file and log_pos:
            self.position = SyncPosition(log_file=log_file, log_pos=int(log_pos))
