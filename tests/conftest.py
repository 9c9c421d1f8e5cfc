"""Shared fixtures: an in-memory store and an in-memory sheet mirror."""

from typing import Any, List, Optional

import pytest

from sheetsync.core.database import init_database
from sheetsync.core.db_adapter import connect_sqlite
from sheetsync.domain.sheets.exceptions import SheetsAPIError
from sheetsync.domain.sheets.layout import HEADER


class FakeMirror:
    """List-of-rows stand-in for a worksheet (row 0 is the header)."""

    def __init__(self, rows: Optional[List[List[Any]]] = None):
        self.rows: List[List[Any]] = [list(HEADER)] + [list(r) for r in rows or []]
        self.calls: List[str] = []
        self.fail_with: Optional[Exception] = None

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    def read_range(self, a1_range: str) -> List[List[Any]]:
        self._record("read_range")
        return [list(r) for r in self.rows]

    def read_key_column(self) -> List[List[Any]]:
        self._record("read_key_column")
        return [[r[0]] if r else [] for r in self.rows]

    def update_row(self, row_number: int, values: List[Any]) -> None:
        self._record("update_row")
        row = self.rows[row_number - 1]
        self.rows[row_number - 1] = row[:1] + list(values)

    def append_row(self, values: List[Any]) -> None:
        self._record("append_row")
        self.rows.append(list(values))

    def delete_row(self, index: int) -> None:
        self._record("delete_row")
        del self.rows[index]

    def clear_and_overwrite(self, rows: List[List[Any]]) -> None:
        self._record("clear_and_overwrite")
        self.rows = [self.rows[0]] + [list(r) for r in rows]

    def data_rows(self) -> List[List[Any]]:
        return self.rows[1:]

    def keys(self) -> List[Any]:
        return [r[0] for r in self.rows[1:]]


@pytest.fixture
def db_conn():
    """In-memory SQLite store with the sheetsync schema."""
    conn = connect_sqlite(":memory:")
    init_database(conn)
    yield conn
    conn.close()


@pytest.fixture
def fake_mirror() -> FakeMirror:
    return FakeMirror()


@pytest.fixture
def make_mirror():
    """Factory for mirrors pre-populated with data rows."""
    return FakeMirror


@pytest.fixture
def api_error() -> SheetsAPIError:
    return SheetsAPIError("Sheets API error 503: backend unavailable", status_code=503)
