"""Spreadsheet creation and seeding."""

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from sheetsync.core.database import save_sheet_id
from sheetsync.domain.auth.credentials import INVENTORY_MAPPING, CredentialProvider
from sheetsync.domain.auth.exceptions import AuthError
from sheetsync.domain.sheets import layout
from sheetsync.domain.sheets.exceptions import MirrorError

from ..deps import get_credentials, get_db
from ..schemas import SeedResponse

router = APIRouter()

SEED_TITLE = "Product Inventory (Seeded)"


@router.post("/sheets/seed", response_model=SeedResponse)
async def seed_sheet(
    db=Depends(get_db), credentials: CredentialProvider = Depends(get_credentials)
):
    """Create a spreadsheet, remember it as 'inventory' and write demo rows."""
    try:
        client = credentials.build_client()
    except AuthError as e:
        raise HTTPException(401, f"User not authenticated: {e}")

    try:
        created = client.create_spreadsheet(SEED_TITLE)
    except (MirrorError, AuthError) as e:
        raise HTTPException(500, f"Unable to create spreadsheet: {e}")

    spreadsheet_id = created["spreadsheetId"]
    logger.info(f"Created spreadsheet ID: {spreadsheet_id}")

    try:
        save_sheet_id(db, INVENTORY_MAPPING, spreadsheet_id)
    except Exception as e:
        raise HTTPException(500, f"Failed to save sheet ID to DB: {e}")

    sheet_name = credentials.config.sheets.sheet_name
    try:
        client.update_values(
            spreadsheet_id,
            layout.header_range(sheet_name),
            [layout.HEADER] + layout.SEED_ROWS,
        )
    except (MirrorError, AuthError) as e:
        raise HTTPException(500, f"Unable to write data to sheet: {e}")

    return SeedResponse(
        status="success",
        message="Sheet created and seeded",
        spreadsheet_id=spreadsheet_id,
        link=created.get("spreadsheetUrl"),
    )
