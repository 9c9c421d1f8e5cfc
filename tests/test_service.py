"""Tests for sync service bootstrap and status."""

from unittest.mock import MagicMock, patch

import pytest

from sheetsync.core import db_adapter
from sheetsync.core.config import Config
from sheetsync.domain.sync.exceptions import PositionUnavailableError, StartupError
from sheetsync.domain.sync.models import SyncPosition, WorkerState
from sheetsync.service import SyncService, read_current_position


@pytest.fixture(autouse=True)
def reset_database_url(monkeypatch):
    monkeypatch.setattr(db_adapter, "_database_url", None)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("DB_HOST", raising=False)


@pytest.fixture
def config():
    config = Config()
    config.database.url = "mysql://repl:secret@db:3306/interndb"
    config.sync.queue_capacity = 5
    return config


def test_status_before_start(config):
    service = SyncService(config, credentials=MagicMock())

    assert service.status() == {
        "running": False,
        "state": WorkerState.UNAUTHENTICATED.value,
        "queue_depth": 0,
        "queue_capacity": 5,
        "processed": 0,
        "failed": 0,
        "position": None,
    }


def test_start_aborts_without_position(config):
    service = SyncService(config, credentials=MagicMock())
    capture = MagicMock(side_effect=PositionUnavailableError("binlog disabled"))

    with patch.object(service.worker, "start") as worker_start:
        with pytest.raises(StartupError):
            service.start(capture_position=capture)

    worker_start.assert_not_called()
    assert service.listener is None
    assert service.running is False


def test_start_wires_listener_at_captured_position(config):
    service = SyncService(config, credentials=MagicMock())
    position = SyncPosition("binlog.000004", 880)

    with patch("sheetsync.service.ReplicationListener") as listener_cls, \
            patch.object(service.worker, "start") as worker_start:
        service.start(capture_position=lambda: position)

    kwargs = listener_cls.call_args.kwargs
    assert kwargs["position"] == position
    assert kwargs["ingestion"] is service.ingestion
    assert kwargs["connection_settings"] == {
        "host": "db", "port": 3306, "user": "repl", "password": "secret",
    }
    listener_cls.return_value.start.assert_called_once()
    worker_start.assert_called_once()
    assert service.running is True


def test_resync_requests_collapse(config):
    service = SyncService(config, credentials=MagicMock())

    assert service.request_resync() is True
    assert service.request_resync() is False
    assert service.signal.pending


def test_worker_uses_credentials_provider(config):
    credentials = MagicMock()
    service = SyncService(config, credentials=credentials)

    assert service.worker._acquire_mirror is credentials.acquire_mirror
    assert service.worker.events is service.ingestion.events


def test_read_position_requires_mysql():
    db_adapter.configure_database("sqlite:///tmp/sheetsync-test.db")
    with pytest.raises(StartupError, match="mysql://"):
        read_current_position()


def test_read_position_unreachable_store(config):
    db_adapter.configure_database(config.database.url)
    with patch("sheetsync.service.get_db_connection", side_effect=OSError("refused")):
        with pytest.raises(StartupError, match="Could not connect"):
            read_current_position()
