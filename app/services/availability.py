"""Read-side views over materialized slots and ledger sums.

These reads take no locks and may lag behind admissions; they feed calendars
and pickers only. Admission re-reads everything inside its own transaction.
"""

from calendar import monthrange
from datetime import date
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.activity import Activity
from app.services.ledger import booked_by_slot
from app.services.slots import Slot, materialize_for_activity


def availability(db: Session, activity_id: UUID, slot_date: date) -> List[Slot]:
    """Slots of one activity on one date with booked seats filled in, ordered by time."""
    slots = materialize_for_activity(db, activity_id, slot_date, slot_date)[slot_date]
    booked = booked_by_slot(db, [activity_id], slot_date, slot_date)
    return [slot.with_booked(booked.get(slot.key, 0)) for slot in slots]


def monthly_stats(
    db: Session,
    tenant_id: UUID,
    month: int,
    year: int,
    activity_id: Optional[UUID] = None,
) -> Dict[date, dict]:
    """
    Per-day occupancy for one month, for one activity or every active activity
    of the tenant.

    Each activity's month is materialized once and booked seats come from a
    single grouped ledger query. ``occupancy`` is ``None`` on days with no
    slots (closed days render as no-data, not as 0%).
    """
    first = date(year, month, 1)
    last = date(year, month, monthrange(year, month)[1])

    query = db.query(Activity.id).filter(Activity.tenant_id == tenant_id, Activity.is_active == True)
    if activity_id:
        query = query.filter(Activity.id == activity_id)
    activity_ids = [row.id for row in query.all()]

    booked = booked_by_slot(db, activity_ids, first, last)
    days = {day: {"total_slots": 0, "booked_slots": 0} for day in (
        date(year, month, d) for d in range(1, last.day + 1)
    )}

    for act_id in activity_ids:
        for day, slots in materialize_for_activity(db, act_id, first, last).items():
            for slot in slots:
                days[day]["total_slots"] += slot.total_seats
                days[day]["booked_slots"] += booked.get(slot.key, 0)

    for stats in days.values():
        total = stats["total_slots"]
        stats["occupancy"] = round(stats["booked_slots"] / total * 100, 1) if total else None
    return days
