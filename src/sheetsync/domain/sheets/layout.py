"""
Worksheet layout for the product mirror.

Columns A..G: UUID | Product Name | Quantity | Price | Discount | Last Updated | Updated By
Row 1 is the header; data starts at row 2.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sheetsync.domain.sync.attribution import INITIAL_SYNC, SYSTEM

HEADER = [
    "UUID",
    "Product Name",
    "Quantity",
    "Price",
    "Discount",
    "Last Updated",
    "Updated By",
]

# Store columns written into B..E, in order
VALUE_COLUMNS = ("product_name", "quantity", "price", "discount")

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Demo rows written by the seed endpoint
SEED_ROWS = [
    ["u-101", "Gaming Mouse", 50, 49.99, False],
    ["u-102", "Mechanical Keyboard", 30, 120.00, True],
    ["u-103", "USB-C Cable", 100, 9.99, False],
]


def timestamp(now: Optional[datetime] = None) -> str:
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


def header_range(sheet: str) -> str:
    return f"{sheet}!A1"


def key_column_range(sheet: str) -> str:
    return f"{sheet}!A:A"


def data_range(sheet: str) -> str:
    """Everything below the header."""
    return f"{sheet}!A2:Z"


def data_start(sheet: str) -> str:
    return f"{sheet}!A2"


def update_range(sheet: str, row_number: int) -> str:
    """B..G of one row (the key cell is never rewritten)."""
    return f"{sheet}!B{row_number}:G{row_number}"


def _updated_by(fields: Dict[str, Any], fallback: str) -> str:
    value = fields.get("last_updated_by")
    return value if isinstance(value, str) and value else fallback


def update_values(fields: Dict[str, Any], ts: str) -> List[Any]:
    """Values for an in-place update of B..G."""
    return [fields.get(column) for column in VALUE_COLUMNS] + [
        ts,
        _updated_by(fields, SYSTEM),
    ]


def append_values(key: str, fields: Dict[str, Any], ts: str) -> List[Any]:
    """Values for a new A..G row."""
    return [key] + update_values(fields, ts)


def resync_rows(products: List[Dict[str, Any]], ts: str) -> List[List[Any]]:
    """Rows for a full overwrite, in store order, keeping each last writer."""
    return [
        [product.get("uuid")]
        + [product.get(column) for column in VALUE_COLUMNS]
        + [ts, _updated_by(product, INITIAL_SYNC)]
        for product in products
    ]


def header_format_requests(sheet_id: int) -> List[Dict[str, Any]]:
    """batchUpdate requests that write and style the header row."""
    return [
        {
            "updateCells": {
                "start": {"sheetId": sheet_id, "rowIndex": 0, "columnIndex": 0},
                "rows": [
                    {
                        "values": [
                            {"userEnteredValue": {"stringValue": title}}
                            for title in HEADER
                        ]
                    }
                ],
                "fields": "userEnteredValue",
            }
        },
        {
            "repeatCell": {
                "range": {"sheetId": sheet_id, "startRowIndex": 0, "endRowIndex": 1},
                "cell": {
                    "userEnteredFormat": {
                        "backgroundColor": {"red": 0.9, "green": 0.9, "blue": 0.9},
                        "textFormat": {"bold": True},
                        "horizontalAlignment": "CENTER",
                    }
                },
                "fields": "userEnteredFormat(backgroundColor,textFormat,horizontalAlignment)",
            }
        },
        {
            "updateSheetProperties": {
                "properties": {
                    "sheetId": sheet_id,
                    "gridProperties": {"frozenRowCount": 1},
                },
                "fields": "gridProperties.frozenRowCount",
            }
        },
        {
            # Price
            "repeatCell": {
                "range": {
                    "sheetId": sheet_id,
                    "startColumnIndex": 3,
                    "endColumnIndex": 4,
                    "startRowIndex": 1,
                },
                "cell": {
                    "userEnteredFormat": {
                        "numberFormat": {"type": "CURRENCY", "pattern": "$#,##0.00"}
                    }
                },
                "fields": "userEnteredFormat.numberFormat",
            }
        },
        {
            # Quantity
            "repeatCell": {
                "range": {
                    "sheetId": sheet_id,
                    "startColumnIndex": 2,
                    "endColumnIndex": 3,
                    "startRowIndex": 1,
                },
                "cell": {"userEnteredFormat": {"horizontalAlignment": "CENTER"}},
                "fields": "userEnteredFormat.horizontalAlignment",
            }
        },
    ]


def delete_row_request(sheet_id: int, index: int) -> Dict[str, Any]:
    """batchUpdate request removing the row at a 0-based index."""
    return {
        "deleteDimension": {
            "range": {
                "sheetId": sheet_id,
                "dimension": "ROWS",
                "startIndex": index,
                "endIndex": index + 1,
            }
        }
    }
