from uuid import UUID
from typing import Optional
from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_tenant, load_activity
from app.models.tenant import Tenant
from app.schemas.availability import (
    AvailabilityResponse,
    SlotAvailability,
    DayStats,
    MonthlyStatsResponse,
)
from app.services.availability import availability, monthly_stats

router = APIRouter(prefix="/activities", tags=["Availability"])
stats_router = APIRouter(prefix="/stats", tags=["Availability"])


# ---------------------------------------------------------------------------
# GET /activities/{id}/availability: date/time picker
# ---------------------------------------------------------------------------


@router.get("/{activity_id}/availability", response_model=AvailabilityResponse)
def get_availability(
    activity_id: UUID,
    date: date = Query(..., description="Date to check (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """
    Remaining seats per time slot for one activity on one date.

    Served without locks and may lag slightly behind live bookings;
    `is_closed` means the template has no slot that day.
    """
    load_activity(db, tenant.id, activity_id)
    slots = availability(db, activity_id, date)
    return AvailabilityResponse(
        activity_id=activity_id,
        date=date,
        is_closed=not slots,
        slots=[
            SlotAvailability(
                time=s.start_time,
                total_seats=s.total_seats,
                booked_seats=s.booked_seats,
                remaining=s.remaining,
                is_virtual=s.is_virtual,
            )
            for s in slots
        ],
    )


# ---------------------------------------------------------------------------
# GET /stats/monthly: calendar heat-map
# ---------------------------------------------------------------------------


@stats_router.get("/monthly", response_model=MonthlyStatsResponse)
def get_monthly_stats(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    activity_id: Optional[UUID] = Query(None, description="Omit for all activities"),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """Per-day seats offered vs. booked; `occupancy` is null on days without slots."""
    if activity_id:
        load_activity(db, tenant.id, activity_id)
    days = monthly_stats(db, tenant.id, month, year, activity_id=activity_id)
    return MonthlyStatsResponse(
        activity_id=activity_id,
        month=month,
        year=year,
        days={day: DayStats(**stats) for day, stats in days.items()},
    )
