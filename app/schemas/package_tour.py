from typing import Optional, List
from pydantic import BaseModel, Field, UUID4
from datetime import date, time

from app.models.reservation import ReservationStatus


class PackageTourMemberCreate(BaseModel):
    activity_id: UUID4
    day_offset: int = Field(default=0, ge=0)
    default_time: time
    sort_order: int = 0


class PackageTourCreate(BaseModel):
    name: str
    description: Optional[str] = None
    members: List[PackageTourMemberCreate] = Field(min_length=1)


class PackageTourMember(PackageTourMemberCreate):
    id: UUID4

    class Config:
        from_attributes = True


class PackageTour(BaseModel):
    id: UUID4
    name: str
    description: Optional[str] = None
    is_active: bool = True
    members: List[PackageTourMember] = []

    class Config:
        from_attributes = True


# Package booking (POST /package-tours/{id}/reserve)
class PackageReservationCreate(BaseModel):
    start_date: date
    quantity: int = Field(ge=1)
    customer_name: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    customer_email: Optional[str] = None
    order_number: Optional[str] = None
    status: ReservationStatus = ReservationStatus.pending
    notes: Optional[str] = None
