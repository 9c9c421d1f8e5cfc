"""Sync engine status and manual resync."""

from fastapi import APIRouter, Depends

from sheetsync.service import SyncService

from ..deps import get_service
from ..schemas import ResyncResponse, SyncStatusResponse

router = APIRouter()


@router.get("/sync/status", response_model=SyncStatusResponse)
async def get_sync_status(service: SyncService = Depends(get_service)):
    return service.status()


@router.post("/sync/resync", response_model=ResyncResponse)
async def trigger_resync(service: SyncService = Depends(get_service)):
    """Ask the worker to re-acquire the sheet and rewrite it from the store.

    Requests made while one is already pending collapse into it.
    """
    if service.request_resync():
        return ResyncResponse(requested=True, message="Resync requested")
    return ResyncResponse(requested=False, message="Resync already pending")
