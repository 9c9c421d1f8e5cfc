"""Actor identities stamped on every mutation.

A write carrying SYNC_BOT is one the engine produced itself and must never be
replayed; every other identity is a real actor.
"""

from typing import Any, Optional

SYNC_BOT = "sync_bot"
SYSTEM = "system"
INITIAL_SYNC = "initial_sync"


def is_self_inflicted(actor: Optional[str]) -> bool:
    """Check whether a mutation was produced by the engine itself."""
    return actor == SYNC_BOT


def resolve_actor(value: Any, default: str = SYSTEM) -> str:
    """Read an attribution value, falling back to a default identity.

    Byte strings from the replication stream are decoded; empty or
    unreadable values resolve to the default.
    """
    if isinstance(value, (bytes, bytearray)):
        try:
            value = value.decode("utf-8")
        except UnicodeDecodeError:
            return default
    if not isinstance(value, str) or not value:
        return default
    return value
