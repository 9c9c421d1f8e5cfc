"""Sync domain - bidirectional product table <-> Google Sheets synchronization.

This domain handles:
- Ingestion: binlog row changes -> change events (self-inflicted rows dropped)
- Reconciliation: change events -> mirror writes, full resync on (re)connect
- Reverse apply: mirror cell edits -> transactional store upserts
- Position tracking: where the binlog stream starts

The listener and worker modules are imported directly by the service layer.
"""

from .attribution import INITIAL_SYNC, SYNC_BOT, SYSTEM, resolve_actor
from .exceptions import (
    PayloadDecodeError,
    PositionUnavailableError,
    StartupError,
    SyncError,
    TransactionError,
)
from .ingestion import ChangeIngestionFilter
from .locator import locate_row
from .models import (
    ChangeAction,
    ChangeEvent,
    FieldEdit,
    SheetField,
    SyncPosition,
    WorkerState,
)
from .retry import FixedRetry, NoRetry, RetryPolicy, policy_from_config

__all__ = [
    "INITIAL_SYNC",
    "SYNC_BOT",
    "SYSTEM",
    "resolve_actor",
    "PayloadDecodeError",
    "PositionUnavailableError",
    "StartupError",
    "SyncError",
    "TransactionError",
    "ChangeIngestionFilter",
    "locate_row",
    "ChangeAction",
    "ChangeEvent",
    "FieldEdit",
    "SheetField",
    "SyncPosition",
    "WorkerState",
    "FixedRetry",
    "NoRetry",
    "RetryPolicy",
    "policy_from_config",
]
