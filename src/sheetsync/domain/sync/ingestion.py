"""
Change ingestion: turns decoded replication rows into change events.

Rows written by the engine itself are dropped here, which is what keeps the
two sync directions from feeding each other forever.
"""

import queue
from decimal import Decimal
from datetime import date, datetime
from typing import Any, Dict, Optional, Sequence

from loguru import logger

from .attribution import SYSTEM, is_self_inflicted, resolve_actor
from .models import SOURCE_BINLOG, ChangeAction, ChangeEvent

# Positions in the product row image
KEY_POSITION = 0
ATTRIBUTION_POSITION = 6
FIELD_POSITIONS = {
    "product_name": 1,
    "quantity": 2,
    "price": 3,
    "discount": 4,
}


def normalize_value(column: str, value: Any) -> Any:
    """Convert a raw row-image value into something the mirror API accepts."""
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8", errors="replace")
    elif isinstance(value, Decimal):
        value = float(value)
    elif isinstance(value, datetime):
        value = value.strftime("%Y-%m-%d %H:%M:%S")
    elif isinstance(value, date):
        value = value.isoformat()

    if column == "discount" and value is not None:
        if isinstance(value, str):
            return value not in ("", "0")
        return bool(value)
    return value


def _as_text(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8", errors="replace")
    return "" if value is None else str(value)


def extract_fields(row: Sequence[Any]) -> Dict[str, Any]:
    """Build the field map from whatever watched columns the row carries."""
    fields = {}
    for column, position in FIELD_POSITIONS.items():
        if position < len(row):
            fields[column] = normalize_value(column, row[position])
    return fields


class ChangeIngestionFilter:
    """Filters and normalizes row changes, then publishes them to the worker.

    Publishing blocks while the queue is full, so a stalled worker stalls the
    replication cursor instead of losing changes.
    """

    def __init__(self, events: "queue.Queue[ChangeEvent]", source: str = SOURCE_BINLOG):
        self.events = events
        self.source = source

    def build_event(
        self, action: ChangeAction, row: Sequence[Any]
    ) -> Optional[ChangeEvent]:
        """Build an event from one row image, or None if it must be dropped."""
        raw_actor = row[ATTRIBUTION_POSITION] if len(row) > ATTRIBUTION_POSITION else None
        actor = resolve_actor(raw_actor, default=SYSTEM)

        if is_self_inflicted(actor):
            logger.debug(f"Dropping self-inflicted {action.value} event")
            return None

        key = _as_text(row[KEY_POSITION]) if row else ""
        if not key:
            logger.warning(f"Skipping {action.value} event without a row key")
            return None

        fields = {} if action == ChangeAction.DELETE else extract_fields(row)
        if fields:
            fields["last_updated_by"] = actor

        return ChangeEvent(
            source=self.source,
            key=key,
            action=action,
            fields=fields,
            actor=actor,
        )

    def handle_row(self, action: ChangeAction, row: Sequence[Any]) -> bool:
        """Ingest one row change.

        Returns:
            True if an event was published, False if the row was dropped
        """
        try:
            event = self.build_event(action, row)
        except Exception as e:
            logger.warning(f"Skipping undecodable {action.value} row: {e}")
            return False

        if event is None:
            return False

        self.events.put(event)  # Blocks while the worker is behind
        logger.debug(f"Queued {event.action.value} for {event.key}")
        return True
