import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from sheetsync.core.config import load_config
from sheetsync.core.db_adapter import configure_database
from sheetsync.domain.auth.credentials import AuthReadySignal
from sheetsync.service import SyncService


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the sync engine with the server; a failed start aborts startup."""
    config = load_config()
    configure_database(config.database.url)

    service = SyncService(config, signal=app.state.signal)
    try:
        service.start()
    except Exception:
        logger.exception("Sync engine failed to start")
        raise
    app.state.service = service

    yield

    service.stop()
    app.state.service = None


app = FastAPI(title="sheetsync API", version="1.0.0", lifespan=lifespan)

# Login callbacks notify this; the worker listens on it
app.state.signal = AuthReadySignal()
app.state.service = None

# CORS: Allow environment override for production
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
allowed_origins = (
    allowed_origins_env.split(",")
    if allowed_origins_env
    else ["http://localhost:5173"]  # Dev default
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
from web.backend.routers import auth, products, sheets, sync, webhook

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(products.router, prefix="/api", tags=["products"])
app.include_router(webhook.router, prefix="/api", tags=["webhook"])
app.include_router(sync.router, prefix="/api", tags=["sync"])
app.include_router(sheets.router, prefix="/api", tags=["sheets"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
