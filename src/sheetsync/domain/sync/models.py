"""
Sync domain models.

Contains the events, positions and edits that flow through the
synchronization engine, plus the static whitelist of editable fields.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Optional

# Where change events come from
SOURCE_BINLOG = "binlog"


class ChangeAction(str, Enum):
    """Kind of row mutation carried by a change event."""

    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class WorkerState(str, Enum):
    """Reconciliation worker lifecycle state."""

    UNAUTHENTICATED = "unauthenticated"
    SYNCING = "syncing"
    DEGRADED = "degraded"


@dataclass(frozen=True)
class ChangeEvent:
    """Canonical, immutable description of one store row change.

    Produced by ingestion and consumed exactly once by the worker.
    """

    source: str
    key: str
    action: ChangeAction
    fields: Dict[str, Any] = field(default_factory=dict)
    actor: str = "system"

    @property
    def is_noop(self) -> bool:
        """An insert/update with no usable fields has nothing to write."""
        return self.action != ChangeAction.DELETE and not self.fields


@dataclass(frozen=True)
class SyncPosition:
    """Resume point in the store's change log."""

    log_file: str
    log_pos: int

    def __str__(self) -> str:
        return f"{self.log_file}:{self.log_pos}"


@dataclass(frozen=True)
class FieldEdit:
    """One cell edit reported by the mirror."""

    uuid: str
    field: str  # Logical (header) name, e.g. "Price"
    value: Any
    user_email: str = ""


def parse_text(value: Any) -> str:
    return "" if value is None else str(value)


def parse_quantity(value: Any) -> int:
    """Whole units; floats are truncated and unparsable text becomes 0.

    Raises:
        ValueError: For an infinite or NaN float, which has no whole value
    """
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"Quantity must be finite, got {value}")
        return int(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(str(value))
    except ValueError:
        return 0


def parse_price(value: Any) -> float:
    """Unparsable or non-finite text becomes 0.0; a non-finite float raises ValueError."""
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"Price must be finite, got {value}")
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    try:
        parsed = float(str(value))
    except ValueError:
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def parse_discount(value: Any) -> bool:
    """True only for a boolean true or the strings "true"/"TRUE"."""
    if isinstance(value, bool):
        return value
    return str(value) in ("true", "TRUE")


class SheetField(Enum):
    """Whitelist of mirror columns that may be written back to the store.

    Each member maps a logical header name to a physical column and the
    parser that coerces the raw mirror value.
    """

    PRODUCT_NAME = ("Product Name", "product_name", parse_text)
    QUANTITY = ("Quantity", "quantity", parse_quantity)
    PRICE = ("Price", "price", parse_price)
    DISCOUNT = ("Discount", "discount", parse_discount)

    def __init__(self, label: str, column: str, parser: Callable[[Any], Any]):
        self.label = label
        self.column = column
        self.parser = parser

    def parse(self, value: Any) -> Any:
        return self.parser(value)

    @classmethod
    def from_label(cls, label: str) -> Optional["SheetField"]:
        """Resolve a logical field name, or None if it is not whitelisted."""
        for member in cls:
            if member.label == label:
                return member
        return None
