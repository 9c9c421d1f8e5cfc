"""Mirror row lookup by key.

The key column is re-read on every call; no index survives between calls.
"""

from typing import Any, List, Optional, Protocol

# Row 0 is the header
FIRST_DATA_INDEX = 1


class KeyColumnReader(Protocol):
    def read_key_column(self) -> List[List[Any]]: ...


def find_row_index(column: List[List[Any]], key: str) -> Optional[int]:
    """Return the 0-based index of the first data row whose first cell equals key."""
    for index, row in enumerate(column[FIRST_DATA_INDEX:], start=FIRST_DATA_INDEX):
        if row and row[0] == key:
            return index
    return None


def locate_row(mirror: KeyColumnReader, key: str) -> Optional[int]:
    """Scan the mirror's key column for key.

    Returns:
        0-based row index (sheet row number is index + 1), or None if absent
    """
    return find_row_index(mirror.read_key_column(), key)
