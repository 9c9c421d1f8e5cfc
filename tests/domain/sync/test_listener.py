"""Tests for the binlog listener's event handling (no MySQL needed)."""

import queue
from unittest.mock import MagicMock, patch

import pytest
from pymysqlreplication.row_event import DeleteRowsEvent, UpdateRowsEvent, WriteRowsEvent

from sheetsync.domain.sync.ingestion import ChangeIngestionFilter
from sheetsync.domain.sync.listener import ReplicationListener, row_image, rows_for_event
from sheetsync.domain.sync.models import ChangeAction, SyncPosition


def rows_event(cls, rows, schema="interndb", table="product"):
    event = MagicMock(spec=cls)
    event.rows = rows
    event.schema = schema
    event.table = table
    return event


def values(uuid, actor="alice@example.com"):
    return {
        "uuid": uuid,
        "product_name": "Mouse",
        "quantity": 1,
        "price": 2.5,
        "discount": 0,
        "updated_at": None,
        "last_updated_by": actor,
    }


class FakeStream:
    def __init__(self, events, positions):
        self._events = events
        self._positions = positions
        self.log_file = None
        self.log_pos = None
        self.closed = False

    def __iter__(self):
        for event, (log_file, log_pos) in zip(self._events, self._positions):
            self.log_file, self.log_pos = log_file, log_pos
            yield event

    def close(self):
        self.closed = True


@pytest.fixture
def events():
    return queue.Queue(maxsize=100)


@pytest.fixture
def listener(events):
    return ReplicationListener(
        ingestion=ChangeIngestionFilter(events),
        connection_settings={"host": "db", "port": 3306, "user": "u", "passwd": "p"},
        position=SyncPosition("binlog.000001", 4),
        reconnect_delay=0.01,
    )


def test_row_image_keeps_column_order():
    assert row_image(values("u-1"))[0] == "u-1"
    assert row_image(values("u-1"))[6] == "alice@example.com"
    assert row_image(("a", "b")) == ("a", "b")
    assert row_image(None) == []


def test_every_row_of_multi_row_event():
    event = rows_event(WriteRowsEvent, [{"values": values("u-1")}, {"values": values("u-2")}])
    rows = rows_for_event(event)
    assert [(action, row[0]) for action, row in rows] == [
        (ChangeAction.INSERT, "u-1"),
        (ChangeAction.INSERT, "u-2"),
    ]


def test_update_uses_after_image():
    event = rows_event(
        UpdateRowsEvent,
        [{"before_values": values("old"), "after_values": values("new")}],
    )
    [(action, row)] = rows_for_event(event)
    assert action == ChangeAction.UPDATE
    assert row[0] == "new"


def test_delete_rows():
    event = rows_event(DeleteRowsEvent, [{"values": values("u-1")}])
    assert rows_for_event(event)[0][0] == ChangeAction.DELETE


def test_consume_ingests_and_tracks_position(listener, events):
    stream = FakeStream(
        [
            rows_event(WriteRowsEvent, [{"values": values("u-1")}, {"values": values("u-2")}]),
            rows_event(UpdateRowsEvent, [{"before_values": values("u-1"),
                                          "after_values": values("u-1", actor="sync_bot")}]),
        ],
        [("binlog.000001", 500), ("binlog.000001", 900)],
    )

    listener.consume(stream)

    assert [events.get_nowait().key for _ in range(events.qsize())] == ["u-1", "u-2"]
    assert listener.position == SyncPosition("binlog.000001", 900)


def test_consume_ignores_other_tables(listener, events):
    stream = FakeStream(
        [rows_event(WriteRowsEvent, [{"values": values("u-1")}], table="orders")],
        [("binlog.000001", 500)],
    )
    listener.consume(stream)
    assert events.empty()


def test_reconnects_from_last_position(listener):
    first = MagicMock()
    first.__iter__.side_effect = ConnectionError("lost connection")
    opened = []

    def open_stream(**kwargs):
        opened.append((kwargs["log_file"], kwargs["log_pos"]))
        if len(opened) == 1:
            return first
        listener._stop.set()
        return FakeStream([], [])

    listener.position = SyncPosition("binlog.000002", 1234)
    with patch("sheetsync.domain.sync.listener.BinLogStreamReader", side_effect=open_stream):
        listener.run()

    assert opened == [("binlog.000002", 1234), ("binlog.000002", 1234)]
    first.close.assert_called_once()


def test_stream_restricted_to_watched_table(listener):
    with patch("sheetsync.domain.sync.listener.BinLogStreamReader") as reader:
        listener._open_stream()

    kwargs = reader.call_args.kwargs
    assert kwargs["only_schemas"] == ["interndb"]
    assert kwargs["only_tables"] == ["product"]
    assert kwargs["resume_stream"] is True
    assert kwargs["blocking"] is True
    assert set(kwargs["only_events"]) == {WriteRowsEvent, UpdateRowsEvent, DeleteRowsEvent}
