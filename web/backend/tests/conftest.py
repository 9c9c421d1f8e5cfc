"""Pytest configuration for backend tests.

Routes get an in-memory store and a fixed config through dependency
overrides; the sync engine is never started (no lifespan).
"""

from contextlib import contextmanager
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from sheetsync.core.config import Config
from sheetsync.core.database import init_database
from sheetsync.core.db_adapter import connect_sqlite
from sheetsync.domain.auth.credentials import AuthReadySignal, CredentialProvider
from web.backend.deps import get_config, get_credentials, get_db
from web.backend.main import app


@pytest.fixture
def store():
    conn = connect_sqlite(":memory:")
    init_database(conn)
    yield conn
    conn.close()


@pytest.fixture
def app_config():
    config = Config()
    config.google.client_id = "client-id"
    config.google.client_secret = "client-secret"
    return config


@pytest.fixture
def signal():
    return AuthReadySignal()


@pytest.fixture
def client(store, app_config, signal):
    """TestClient wired to the in-memory store (lifespan not run)."""

    async def override_db():
        yield store

    @contextmanager
    def connect():
        yield store

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_config] = lambda: app_config
    app.dependency_overrides[get_credentials] = lambda: CredentialProvider(app_config, connect)

    previous_signal, previous_service = app.state.signal, app.state.service
    app.state.signal = signal

    yield TestClient(app)

    app.dependency_overrides.clear()
    app.state.signal, app.state.service = previous_signal, previous_service


@pytest.fixture
def service():
    """Stand-in sync service installed on app.state."""
    service = MagicMock()
    app.state.service = service
    return service
