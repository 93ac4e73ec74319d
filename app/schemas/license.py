from typing import Optional
from pydantic import BaseModel, Field, UUID4
from datetime import date


class LicenseUpdate(BaseModel):
    is_active: bool = True
    expires_on: Optional[date] = None
    max_reservations_per_day: Optional[int] = Field(default=None, ge=0)
    max_reservations_per_month: Optional[int] = Field(default=None, ge=0)


class License(LicenseUpdate):
    id: UUID4
    tenant_id: UUID4

    class Config:
        from_attributes = True
