from typing import Optional, List, Any
from pydantic import BaseModel, Field

from app.schemas.reservation import Reservation


class MetaEntry(BaseModel):
    key: str
    value: Any = None


class StorefrontBilling(BaseModel):
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    email: Optional[str] = None


class StorefrontLineItem(BaseModel):
    name: str = ""
    quantity: int = Field(default=1, ge=1)
    total: Optional[str] = None
    meta_data: List[MetaEntry] = []


# WooCommerce-shaped order payload (POST /webhooks/storefront/{tenant_id})
class StorefrontOrder(BaseModel):
    id: int | str
    currency: str = "TRY"
    billing: StorefrontBilling = StorefrontBilling()
    line_items: List[StorefrontLineItem] = []
    meta_data: List[MetaEntry] = []


class SkippedItem(BaseModel):
    name: str
    reason: str


class StorefrontIntakeResponse(BaseModel):
    order_number: str
    duplicate: bool
    reservations: List[Reservation]
    skipped: List[SkippedItem]
