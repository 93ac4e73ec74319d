from typing import Optional, List
from pydantic import BaseModel, Field, UUID4, field_validator
from datetime import date, time, datetime

from app.models.reservation import ReservationStatus


class CustomerFields(BaseModel):
    customer_name: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    customer_email: Optional[str] = None
    order_number: Optional[str] = None
    package_tour_id: Optional[UUID4] = None
    status: ReservationStatus = ReservationStatus.pending
    source: str = "manual"
    notes: Optional[str] = None

    @field_validator("order_number", mode="before")
    @classmethod
    def parse_empty_str_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("status")
    @classmethod
    def only_active_on_create(cls, v):
        if v not in (ReservationStatus.pending, ReservationStatus.confirmed):
            raise ValueError("new reservations must be pending or confirmed")
        return v


class ReservationItem(BaseModel):
    activity_id: UUID4
    date: date
    time: time
    quantity: int = Field(ge=1)


# Reservation: Create (POST /reservations)
class ReservationCreate(ReservationItem, CustomerFields):
    pass


# Multi-item booking (POST /reservations/group)
class GroupReservationCreate(CustomerFields):
    items: List[ReservationItem] = Field(min_length=1)


class QuantityUpdate(BaseModel):
    quantity: int = Field(ge=1)


class StatusUpdate(BaseModel):
    status: ReservationStatus


class Reservation(BaseModel):
    id: UUID4
    activity_id: UUID4
    slot_date: date
    start_time: time
    quantity: int
    status: ReservationStatus
    order_number: Optional[str] = None
    package_tour_id: Optional[UUID4] = None
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    source: Optional[str] = None
    notes: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# Logical booking: one member line per reservation row
class GroupMember(BaseModel):
    reservation_id: UUID4
    activity_id: UUID4
    activity_name: Optional[str] = None
    time: time
    quantity: int
    status: ReservationStatus


class ReservationGroup(BaseModel):
    group_type: str  # order | package | single
    is_group: bool
    order_number: Optional[str] = None
    package_tour_id: Optional[UUID4] = None
    customer_name: str
    customer_phone: str
    total_quantity: int
    status: str
    members: List[GroupMember]


class GroupedReservationsResponse(BaseModel):
    date: date
    groups: List[ReservationGroup]


class GroupCancelResponse(BaseModel):
    cancelled: List[UUID4]
    members: List[Reservation]
