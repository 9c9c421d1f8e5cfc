"""
Reconciliation worker: the single consumer of change events.

Owns the mirror handle. Nothing else reads or replaces it, so it needs no
lock as long as there is exactly one worker thread.
"""

import queue
import threading
from typing import Any, Callable, Dict, List, Optional

from loguru import logger

from sheetsync.domain.auth.credentials import AuthReadySignal
from sheetsync.domain.sheets import layout
from sheetsync.domain.sheets.mirror import MirrorStore

from .locator import locate_row
from .models import ChangeAction, ChangeEvent, WorkerState
from .retry import NoRetry, RetryPolicy


class ReconciliationWorker:
    """Applies change events to the mirror strictly in arrival order.

    Args:
        events: Queue filled by the ingestion filter
        acquire_mirror: Returns a usable mirror or raises
        load_products: Returns every store row, in store order
        signal: Credential-ready / resync notification channel
        retry: Strategy wrapping each mirror write
        poll_interval: Seconds to wait for an event before re-checking the signal
        clock: Returns the timestamp written into mirror rows
    """

    def __init__(
        self,
        events: "queue.Queue[ChangeEvent]",
        acquire_mirror: Callable[[], MirrorStore],
        load_products: Callable[[], List[Dict[str, Any]]],
        signal: AuthReadySignal,
        retry: Optional[RetryPolicy] = None,
        poll_interval: float = 0.5,
        clock: Callable[[], str] = layout.timestamp,
    ):
        self.events = events
        self.signal = signal
        self.retry = retry or NoRetry()
        self.poll_interval = poll_interval
        self._acquire_mirror = acquire_mirror
        self._load_products = load_products
        self._clock = clock
        self._mirror: Optional[MirrorStore] = None
        self._state = WorkerState.UNAUTHENTICATED
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.processed = 0
        self.failed = 0

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def has_mirror(self) -> bool:
        return self._mirror is not None

    # Lifecycle

    def start(self) -> None:
        """Run the worker on a background daemon thread."""
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self.run, name="reconciliation-worker", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None

    def run(self) -> None:
        logger.info("Starting sheet sync worker...")
        self.bootstrap()
        logger.info("Sheet sync worker running via event loop")
        while not self._stop.is_set():
            self.step()
        logger.info("Sheet sync worker stopped")

    def bootstrap(self) -> None:
        """First acquisition; on failure wait for a login and try once more.

        The event loop starts either way. Until a mirror exists, events are
        dropped and the next successful reload resyncs everything.
        """
        if self.connect():
            return

        logger.warning("Worker stalled. Waiting for login...")
        while not self._stop.is_set():
            if self.signal.wait(timeout=self.poll_interval):
                logger.info("Resuming...")
                self.connect()
                return

    # Mirror handle

    def connect(self) -> bool:
        """Acquire a fresh mirror and resync it.

        On failure the previous mirror (if any) stays in use.
        """
        try:
            mirror = self._acquire_mirror()
        except Exception as e:
            if self._mirror is None:
                self._state = WorkerState.UNAUTHENTICATED
                logger.warning(f"Could not acquire sheet mirror: {e}")
            else:
                self._state = WorkerState.DEGRADED
                logger.error(f"Failed to refresh sheet mirror, keeping previous one: {e}")
            return False

        self._mirror = mirror
        self._state = WorkerState.SYNCING
        logger.info("Sheet mirror ready")
        self.full_resync()
        return True

    def full_resync(self) -> bool:
        """Overwrite the mirror's data rows with the current store contents."""
        mirror = self._mirror
        if mirror is None:
            return False

        logger.info("Performing full sync...")
        try:
            products = self._load_products()
        except Exception as e:
            logger.error(f"Error fetching products for full sync: {e}")
            return False

        rows = layout.resync_rows(products, self._clock())
        try:
            self.retry.run(lambda: mirror.clear_and_overwrite(rows), "Full sync")
        except Exception as e:
            logger.error(f"Error performing full sheet overwrite: {e}")
            return False

        logger.info(f"Successfully performed full sync of {len(rows)} products")
        return True

    # Event loop

    def step(self) -> None:
        """One loop iteration: reload if signalled, else apply one event."""
        if self.signal.poll():
            logger.info("Hot reload: refreshing sheet mirror with new token...")
            self.connect()
            return

        try:
            event = self.events.get(timeout=self.poll_interval)
        except queue.Empty:
            return

        try:
            self.process(event)
        finally:
            self.events.task_done()

    def process(self, event: ChangeEvent) -> bool:
        """Apply one event, logging and dropping it on failure."""
        if self._mirror is None:
            logger.warning(f"Skipping {event.action.value} {event.key}: sheet mirror not ready")
            return False

        if event.is_noop:
            logger.debug(f"Skipping {event.action.value} {event.key}: no fields")
            return False

        logger.info(f"Processing event: {event.action.value} {event.key}")
        try:
            self.retry.run(
                lambda: self.apply_event(event),
                f"Sync {event.action.value} {event.key}",
            )
        except Exception as e:
            self.failed += 1
            logger.error(f"Error syncing ({event.action.value} {event.key}): {e}")
            return False

        self.processed += 1
        return True

    def apply_event(self, event: ChangeEvent) -> None:
        """Write one event to the mirror: delete, update in place, or append."""
        mirror = self._mirror
        index = locate_row(mirror, event.key)

        if event.action == ChangeAction.DELETE:
            if index is None:
                logger.info(f"{event.key} not found in sheet, skipping delete")
                return
            mirror.delete_row(index)
            logger.info(f"Deleted row {index + 1} for {event.key}")
            return

        ts = self._clock()
        if index is None:
            mirror.append_row(layout.append_values(event.key, event.fields, ts))
            logger.info(f"Appended row for {event.key} (updated by: {event.actor})")
        else:
            mirror.update_row(index + 1, layout.update_values(event.fields, ts))
            logger.info(
                f"Synced row {index + 1} for {event.key} (updated by: {event.actor})"
            )
