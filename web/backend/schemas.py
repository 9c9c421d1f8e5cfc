from pydantic import BaseModel
from typing import Optional


class Product(BaseModel):
    uuid: str
    product_name: str
    quantity: int
    price: float
    discount: bool
    last_updated_by: Optional[str] = None


class CreateProductRequest(BaseModel):
    product_name: str
    quantity: int = 0
    price: float = 0.0
    discount: bool = False


class CreateProductResponse(BaseModel):
    message: str
    uuid: str


class WebhookResponse(BaseModel):
    processed: int
    message: str


class SyncStatusResponse(BaseModel):
    running: bool
    state: str  # 'unauthenticated' | 'syncing' | 'degraded'
    queue_depth: int
    queue_capacity: int
    processed: int = 0
    failed: int = 0
    position: Optional[str] = None  # "binlog.000003:157"


class ResyncResponse(BaseModel):
    requested: bool
    message: str


class SeedResponse(BaseModel):
    status: str
    message: str
    spreadsheet_id: str
    link: Optional[str] = None
