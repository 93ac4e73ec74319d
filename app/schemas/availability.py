from typing import Optional, List, Dict
from pydantic import BaseModel, UUID4
from datetime import date, time


class SlotAvailability(BaseModel):
    time: time
    total_seats: int
    booked_seats: int
    remaining: int
    is_virtual: bool


# Response for GET /activities/{id}/availability
class AvailabilityResponse(BaseModel):
    activity_id: UUID4
    date: date
    is_closed: bool  # no slot at all that day: render as no-data
    slots: List[SlotAvailability]


class DayStats(BaseModel):
    total_slots: int
    booked_slots: int
    occupancy: Optional[float] = None  # percent; None = no data


# Response for GET /stats/monthly
class MonthlyStatsResponse(BaseModel):
    activity_id: Optional[UUID4] = None
    month: int
    year: int
    days: Dict[date, DayStats]
