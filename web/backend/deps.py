from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request

from sheetsync.core.config import Config, load_config
from sheetsync.core.database import get_db_connection
from sheetsync.domain.auth.credentials import AuthReadySignal, CredentialProvider
from sheetsync.service import SyncService


async def get_db() -> AsyncGenerator:
    """FastAPI dependency for database connections."""
    with get_db_connection() as conn:
        yield conn


def get_config() -> Config:
    """FastAPI dependency for configuration."""
    return load_config()


def get_signal(request: Request) -> AuthReadySignal:
    """The credential-ready channel shared with the sync worker."""
    return request.app.state.signal


def get_service(request: Request) -> SyncService:
    """The running sync engine, or 503 if it was not started."""
    service = getattr(request.app.state, "service", None)
    if service is None:
        raise HTTPException(503, "Sync engine not running")
    return service


def get_credentials(config: Config = Depends(get_config)) -> CredentialProvider:
    """Credential provider for sheet access outside the worker."""
    return CredentialProvider(config)
