"""
Worksheet-level mirror operations used by the reconciliation worker.
"""

from typing import Any, List, Protocol

from loguru import logger

from . import layout
from .client import SheetsClient


class MirrorStore(Protocol):
    """Operations the reconciliation worker needs from a mirror."""

    def read_key_column(self) -> List[List[Any]]: ...
    def read_range(self, a1_range: str) -> List[List[Any]]: ...
    def update_row(self, row_number: int, values: List[Any]) -> None: ...
    def append_row(self, values: List[Any]) -> None: ...
    def delete_row(self, index: int) -> None: ...
    def clear_and_overwrite(self, rows: List[List[Any]]) -> None: ...


class SheetMirror:
    """One worksheet of one spreadsheet, addressed through a SheetsClient.

    Args:
        client: Authenticated Sheets API client
        spreadsheet_id: Target spreadsheet
        sheet_name: Worksheet title used in A1 ranges
        sheet_id: Worksheet grid id used by batchUpdate requests
    """

    def __init__(
        self,
        client: SheetsClient,
        spreadsheet_id: str,
        sheet_name: str = "Sheet1",
        sheet_id: int = 0,
    ):
        self.client = client
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name
        self.sheet_id = sheet_id

    def read_range(self, a1_range: str) -> List[List[Any]]:
        return self.client.get_values(self.spreadsheet_id, a1_range)

    def read_key_column(self) -> List[List[Any]]:
        return self.read_range(layout.key_column_range(self.sheet_name))

    def update_row(self, row_number: int, values: List[Any]) -> None:
        """Overwrite B..G of a 1-based sheet row."""
        self.client.update_values(
            self.spreadsheet_id,
            layout.update_range(self.sheet_name, row_number),
            [values],
        )

    def append_row(self, values: List[Any]) -> None:
        self.client.append_values(
            self.spreadsheet_id, layout.header_range(self.sheet_name), [values]
        )

    def delete_row(self, index: int) -> None:
        """Remove the row at a 0-based index."""
        self.client.batch_update(
            self.spreadsheet_id, [layout.delete_row_request(self.sheet_id, index)]
        )

    def clear_and_overwrite(self, rows: List[List[Any]]) -> None:
        """Clear everything below the header, then write rows in one call."""
        self.client.clear_values(
            self.spreadsheet_id, layout.data_range(self.sheet_name)
        )
        if not rows:
            return
        self.client.update_values(
            self.spreadsheet_id, layout.data_start(self.sheet_name), rows
        )

    def initialize(self) -> bool:
        """Write and format the header row if the sheet is empty.

        Returns:
            True if the header was written, False if it already existed
        """
        existing = self.read_range(layout.header_range(self.sheet_name))
        if existing and existing[0]:
            return False

        logger.info("Sheet appears empty. Initializing headers and formatting...")
        self.client.batch_update(
            self.spreadsheet_id, layout.header_format_requests(self.sheet_id)
        )
        return True
