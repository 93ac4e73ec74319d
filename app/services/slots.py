"""Slot materialization: template + overrides -> concrete slots.

Nothing here writes. A slot without a persisted override row is *virtual*:
it exists only as a function of the weekly template and the date.
"""

from dataclasses import dataclass, replace
from datetime import date, time, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.activity import CapacityTemplateEntry
from app.models.capacity import CapacityOverride

OverrideMap = Mapping[Tuple[date, time], int]


@dataclass(frozen=True)
class Slot:
    activity_id: UUID
    slot_date: date
    start_time: time
    total_seats: int
    booked_seats: int = 0
    is_virtual: bool = True

    @property
    def key(self) -> Tuple[UUID, date, time]:
        return (self.activity_id, self.slot_date, self.start_time)

    @property
    def remaining(self) -> int:
        return max(0, self.total_seats - self.booked_seats)

    def with_booked(self, booked: int) -> "Slot":
        return replace(self, booked_seats=booked)


def date_range(date_from: date, date_to: date) -> Iterable[date]:
    day = date_from
    while day <= date_to:
        yield day
        day += timedelta(days=1)


def template_seats_by_weekday(templates: Iterable[CapacityTemplateEntry]) -> Dict[int, Dict[time, int]]:
    """Index template entries as ``{weekday: {time: seats}}``.

    Two entries covering the same weekday/time keep the larger seat count.
    """
    index: Dict[int, Dict[time, int]] = {}
    for entry in templates:
        for weekday in entry.weekday_set:
            times = index.setdefault(weekday, {})
            times[entry.start_time] = max(entry.seats, times.get(entry.start_time, 0))
    return index


def materialize(
    activity_id: UUID,
    templates: Iterable[CapacityTemplateEntry],
    overrides: OverrideMap,
    date_from: date,
    date_to: date,
) -> Dict[date, List[Slot]]:
    """
    Expand the weekly template into slots for every date in ``[date_from, date_to]``.

    - Template entries matching the date's weekday produce a slot with the
      template seat count (virtual).
    - An override at the exact (date, time) replaces the seat count and makes
      the slot non-virtual. Overrides at times the template does not cover
      add an extra slot for that date.
    - Dates with no slot at all map to an empty list (closed day).
    """
    by_weekday = template_seats_by_weekday(templates)
    overrides_by_date: Dict[date, Dict[time, int]] = {}
    for (slot_date, start_time), seats in overrides.items():
        overrides_by_date.setdefault(slot_date, {})[start_time] = seats

    result: Dict[date, List[Slot]] = {}
    for day in date_range(date_from, date_to):
        seats_at = dict(by_weekday.get(day.weekday(), {}))
        day_overrides = overrides_by_date.get(day, {})
        slots = []
        for start_time in sorted(set(seats_at) | set(day_overrides)):
            if start_time in day_overrides:
                slots.append(Slot(activity_id, day, start_time, day_overrides[start_time], is_virtual=False))
            else:
                slots.append(Slot(activity_id, day, start_time, seats_at[start_time]))
        result[day] = slots
    return result


def load_templates(db: Session, activity_id: UUID) -> List[CapacityTemplateEntry]:
    return (
        db.query(CapacityTemplateEntry)
        .filter(CapacityTemplateEntry.activity_id == activity_id)
        .all()
    )


def load_overrides(db: Session, activity_id: UUID, date_from: date, date_to: date) -> Dict[Tuple[date, time], int]:
    rows = (
        db.query(CapacityOverride.slot_date, CapacityOverride.start_time, CapacityOverride.seats)
        .filter(
            CapacityOverride.activity_id == activity_id,
            CapacityOverride.slot_date >= date_from,
            CapacityOverride.slot_date <= date_to,
        )
        .all()
    )
    return {(slot_date, start_time): seats for slot_date, start_time, seats in rows}


def materialize_for_activity(db: Session, activity_id: UUID, date_from: date, date_to: date) -> Dict[date, List[Slot]]:
    return materialize(
        activity_id,
        load_templates(db, activity_id),
        load_overrides(db, activity_id, date_from, date_to),
        date_from,
        date_to,
    )


def find_slot(db: Session, activity_id: UUID, slot_date: date, start_time: time) -> Optional[Slot]:
    """Materialize a single (activity, date, time); ``None`` means no slot exists."""
    for slot in materialize_for_activity(db, activity_id, slot_date, slot_date)[slot_date]:
        if slot.start_time == start_time:
            return slot
    return None


def template_seats(db: Session, activity_id: UUID, slot_date: date, start_time: time) -> Optional[int]:
    """Seat count the template alone gives this date/time, ignoring overrides."""
    by_weekday = template_seats_by_weekday(load_templates(db, activity_id))
    return by_weekday.get(slot_date.weekday(), {}).get(start_time)
