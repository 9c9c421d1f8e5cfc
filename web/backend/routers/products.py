"""Product CRUD. Writes here reach the sheet through the binlog."""

import uuid as uuid_lib
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException
from loguru import logger

from sheetsync.core import database
from sheetsync.domain.sync.attribution import SYSTEM

from ..deps import get_db
from ..schemas import CreateProductRequest, CreateProductResponse, Product

router = APIRouter()


def new_product_key() -> str:
    return f"u-{uuid_lib.uuid4().hex[:8]}"


@router.get("/products", response_model=list[Product])
async def list_products(db=Depends(get_db)):
    return database.get_all_products(db)


@router.get("/products/{uuid}", response_model=Product)
async def get_product(uuid: str, db=Depends(get_db)):
    product = database.get_product_by_uuid(db, uuid)
    if not product:
        raise HTTPException(404, "Product not found")
    return product


@router.post("/products", response_model=CreateProductResponse, status_code=201)
async def create_product(request: CreateProductRequest, db=Depends(get_db)):
    key = new_product_key()
    try:
        database.create_product(
            db,
            key,
            request.product_name,
            request.quantity,
            request.price,
            request.discount,
            updated_by=SYSTEM,
        )
    except Exception as e:
        logger.error(f"Failed to create product: {e}")
        raise HTTPException(500, "Failed to create product")

    logger.info(f"Created product {key}")
    return CreateProductResponse(message="Product created", uuid=key)


@router.put("/products/{uuid}")
async def update_product(
    uuid: str, updates: dict[str, Any] = Body(...), db=Depends(get_db)
) -> dict[str, str]:
    # Callers cannot choose the attribution
    updates.pop("last_updated_by", None)
    try:
        database.update_product_fields(db, uuid, updates, updated_by=SYSTEM)
    except ValueError as e:
        raise HTTPException(400, str(e))

    return {"message": "Product updated"}


@router.delete("/products/{uuid}")
async def delete_product(uuid: str, db=Depends(get_db)) -> dict[str, str]:
    if database.delete_product(db, uuid) == 0:
        raise HTTPException(404, "Product not found")
    logger.info(f"Deleted product {uuid}")
    return {"message": "Product deleted"}
