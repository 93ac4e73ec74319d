from typing import Optional, List
from pydantic import BaseModel, Field, UUID4, field_validator
from datetime import date, time, datetime

from app.models.capacity import OverrideSource


# Activity: Create (admin POST /admin/activities)
class ActivityCreate(BaseModel):
    name: str
    name_aliases: List[str] = []
    description: Optional[str] = None
    duration_minutes: int = 60


class Activity(BaseModel):
    id: UUID4
    name: str
    name_aliases: List[str] = []
    description: Optional[str] = None
    duration_minutes: Optional[int] = None
    is_active: bool = True

    class Config:
        from_attributes = True


# Capacity template: one recurring weekday/time/seats definition
class TemplateEntryCreate(BaseModel):
    weekdays: List[int] = Field(default=[0, 1, 2, 3, 4, 5, 6], min_length=1)  # 0=Mon..6=Sun
    start_time: time
    seats: int = Field(ge=0)

    @field_validator("weekdays")
    @classmethod
    def check_weekdays(cls, v):
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("weekdays must be between 0 (Mon) and 6 (Sun)")
        return sorted(set(v))


class TemplateEntry(BaseModel):
    id: UUID4
    activity_id: UUID4
    weekdays: List[int]
    start_time: time
    seats: int

    @field_validator("weekdays", mode="before")
    @classmethod
    def split_weekdays(cls, v):
        if isinstance(v, str):
            return [int(d) for d in v.split(",") if d.strip()]
        return v

    class Config:
        from_attributes = True


# Capacity override: date-specific exception (admin PUT)
class OverrideUpsert(BaseModel):
    slot_date: date
    start_time: time
    seats: int = Field(ge=0)


class Override(BaseModel):
    id: UUID4
    activity_id: UUID4
    slot_date: date
    start_time: time
    seats: int
    source: OverrideSource
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
