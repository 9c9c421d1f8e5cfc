"""Tests for mirror row layout helpers."""

from datetime import datetime

from sheetsync.domain.sheets import layout


def test_header_columns():
    assert layout.HEADER[0] == "UUID"
    assert layout.HEADER[-1] == "Updated By"
    assert len(layout.HEADER) == 7


def test_timestamp_format():
    assert layout.timestamp(datetime(2024, 5, 1, 9, 3, 7)) == "2024-05-01 09:03:07"


def test_ranges():
    assert layout.update_range("Sheet1", 5) == "Sheet1!B5:G5"
    assert layout.data_range("Sheet1") == "Sheet1!A2:Z"
    assert layout.key_column_range("Inventory") == "Inventory!A:A"


def test_update_values_order():
    fields = {"product_name": "Mouse", "quantity": 5, "price": 9.99, "discount": True,
              "last_updated_by": "alice@example.com"}
    assert layout.update_values(fields, "ts") == [
        "Mouse", 5, 9.99, True, "ts", "alice@example.com"
    ]


def test_update_values_missing_fields_and_actor():
    assert layout.update_values({"quantity": 2}, "ts") == [None, 2, None, None, "ts", "system"]


def test_append_values_prefixes_key():
    assert layout.append_values("u-1", {"product_name": "Hub"}, "ts")[:2] == ["u-1", "Hub"]


def test_resync_rows_fallback_actor():
    products = [
        {"uuid": "u-1", "product_name": "A", "quantity": 1, "price": 1.0,
         "discount": False, "last_updated_by": "bob"},
        {"uuid": "u-2", "product_name": "B", "quantity": 2, "price": 2.0,
         "discount": True, "last_updated_by": None},
    ]
    rows = layout.resync_rows(products, "ts")
    assert [r[0] for r in rows] == ["u-1", "u-2"]
    assert [r[-1] for r in rows] == ["bob", "initial_sync"]
