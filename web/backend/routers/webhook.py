"""Reverse-path endpoint called by the sheet's edit trigger."""

from fastapi import APIRouter, Depends, HTTPException, Request

from sheetsync.domain.sync.exceptions import PayloadDecodeError, TransactionError
from sheetsync.domain.sync.reverse import apply_edit_batch, decode_edits

from ..deps import get_db
from ..schemas import WebhookResponse

router = APIRouter()


@router.post("/webhook/sheets", response_model=WebhookResponse)
async def sheets_webhook(request: Request, db=Depends(get_db)):
    """Apply one edit or an array of edits; 200 once the batch commits."""
    body = await request.body()
    try:
        edits = decode_edits(body)
    except PayloadDecodeError as e:
        raise HTTPException(400, str(e))

    try:
        processed = apply_edit_batch(db, edits)
    except TransactionError as e:
        raise HTTPException(500, str(e))

    return WebhookResponse(processed=processed, message=f"Processed {processed} updates")
