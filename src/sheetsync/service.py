"""
Sync service bootstrap.

Wires the store, position capture, replication listener, ingestion filter,
event queue and reconciliation worker together, and exposes their status.
"""

import queue
from typing import Any, Callable, Dict, Optional

from loguru import logger

from sheetsync.core.config import Config
from sheetsync.core.database import get_db_connection, load_all_products
from sheetsync.core.db_adapter import (
    configure_database,
    get_database_url,
    is_mysql,
    parse_mysql_url,
)
from sheetsync.domain.auth.credentials import AuthReadySignal, CredentialProvider
from sheetsync.domain.sync.exceptions import StartupError
from sheetsync.domain.sync.ingestion import ChangeIngestionFilter
from sheetsync.domain.sync.listener import ReplicationListener
from sheetsync.domain.sync.models import ChangeEvent, SyncPosition
from sheetsync.domain.sync.position import capture_sync_position
from sheetsync.domain.sync.retry import policy_from_config
from sheetsync.domain.sync.worker import ReconciliationWorker


def read_current_position() -> SyncPosition:
    """Connect to the store and read its change-log head.

    Raises:
        StartupError: If the store is unreachable, not MySQL, or has no position
    """
    url = get_database_url()
    if not is_mysql(url):
        raise StartupError("Change-log capture requires a mysql:// DATABASE_URL")

    try:
        with get_db_connection() as conn:
            conn.ping()
            return capture_sync_position(conn)
    except StartupError:
        raise
    except Exception as e:
        raise StartupError(f"Could not connect to database: {e}") from e


class SyncService:
    """Owns the engine's threads for the lifetime of the process.

    Args:
        config: Application configuration
        signal: Shared credential-ready channel (the web layer notifies it)
        credentials: Mirror provider for the worker
    """

    def __init__(
        self,
        config: Config,
        signal: Optional[AuthReadySignal] = None,
        credentials: Optional[CredentialProvider] = None,
    ):
        self.config = config
        self.signal = signal or AuthReadySignal()
        self.credentials = credentials or CredentialProvider(config)
        self.events: "queue.Queue[ChangeEvent]" = queue.Queue(
            maxsize=config.sync.queue_capacity
        )
        self.ingestion = ChangeIngestionFilter(self.events)
        self.position: Optional[SyncPosition] = None
        self.listener: Optional[ReplicationListener] = None
        self.worker = ReconciliationWorker(
            events=self.events,
            acquire_mirror=self.credentials.acquire_mirror,
            load_products=load_all_products,
            signal=self.signal,
            retry=policy_from_config(
                config.sync.apply_retries, config.sync.retry_delay_seconds
            ),
            poll_interval=config.sync.poll_interval_seconds,
        )
        self.running = False

    def start(
        self, capture_position: Callable[[], SyncPosition] = read_current_position
    ) -> None:
        """Capture the resume point, then start the listener and worker.

        Raises:
            StartupError: If the store or its change-log position is unavailable
        """
        configure_database(self.config.database.url)
        logger.info("Connecting to database")

        try:
            self.position = capture_position()
        except StartupError as e:
            logger.error(f"Fatal error: {e}")
            raise

        logger.info(f"Snapshot taken. Resume CDC from {self.position}")

        self.listener = ReplicationListener(
            ingestion=self.ingestion,
            connection_settings=parse_mysql_url(get_database_url()).connection_settings(),
            position=self.position,
            server_id=self.config.database.server_id,
            schema=self.config.database.schema,
            table=self.config.database.table,
            reconnect_delay=self.config.sync.reconnect_delay_seconds,
        )
        self.listener.start()
        self.worker.start()
        self.running = True

    def stop(self) -> None:
        if self.listener:
            self.listener.stop()
        self.worker.stop()
        self.running = False
        logger.info("Sync service stopped")

    def request_resync(self) -> bool:
        """Ask the worker to re-acquire the mirror and resync.

        Returns:
            False if a request was already pending
        """
        return self.signal.notify()

    def status(self) -> Dict[str, Any]:
        position = self.listener.position if self.listener else self.position
        return {
            "running": self.running,
            "state": self.worker.state.value,
            "queue_depth": self.events.qsize(),
            "queue_capacity": self.events.maxsize,
            "processed": self.worker.processed,
            "failed": self.worker.failed,
            "position": str(position) if position else None,
        }
