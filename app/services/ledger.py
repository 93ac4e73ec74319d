"""Reservation ledger queries.

Cancelled and completed rows stay in the table; every consumption sum
filters them out by status, so changing a status is all it takes to free seats.
"""

from datetime import date, datetime, time, timezone, timedelta
from typing import Dict, Iterable, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.reservation import Reservation, ACTIVE_STATUSES


def booked_seats(db: Session, activity_id: UUID, slot_date: date, start_time: time) -> int:
    total = (
        db.query(func.coalesce(func.sum(Reservation.quantity), 0))
        .filter(
            Reservation.activity_id == activity_id,
            Reservation.slot_date == slot_date,
            Reservation.start_time == start_time,
            Reservation.status.in_(ACTIVE_STATUSES),
        )
        .scalar()
    )
    return int(total or 0)


def booked_by_slot(
    db: Session,
    activity_ids: Iterable[UUID],
    date_from: date,
    date_to: date,
) -> Dict[Tuple[UUID, date, time], int]:
    """One grouped query for all slots of the given activities in a date range."""
    activity_ids = list(activity_ids)
    if not activity_ids:
        return {}
    rows = (
        db.query(
            Reservation.activity_id,
            Reservation.slot_date,
            Reservation.start_time,
            func.sum(Reservation.quantity),
        )
        .filter(
            Reservation.activity_id.in_(activity_ids),
            Reservation.slot_date >= date_from,
            Reservation.slot_date <= date_to,
            Reservation.status.in_(ACTIVE_STATUSES),
        )
        .group_by(Reservation.activity_id, Reservation.slot_date, Reservation.start_time)
        .all()
    )
    return {(activity_id, d, t): int(qty or 0) for activity_id, d, t, qty in rows}


def count_created_between(db: Session, tenant_id: UUID, start: datetime, end: datetime) -> int:
    """Reservation rows a tenant created in ``[start, end)``, whatever their status."""
    return (
        db.query(func.count(Reservation.id))
        .filter(
            Reservation.tenant_id == tenant_id,
            Reservation.created_at >= start,
            Reservation.created_at < end,
        )
        .scalar()
    ) or 0


def day_bounds(day: date) -> Tuple[datetime, datetime]:
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def get_reservation(db: Session, tenant_id: UUID, reservation_id: UUID, for_update: bool = False) -> Optional[Reservation]:
    query = db.query(Reservation).filter(
        Reservation.id == reservation_id,
        Reservation.tenant_id == tenant_id,
    )
    if for_update:
        query = query.with_for_update()
    return query.first()


def reservations_for_date(db: Session, tenant_id: UUID, slot_date: date):
    return (
        db.query(Reservation)
        .filter(Reservation.tenant_id == tenant_id, Reservation.slot_date == slot_date)
        .order_by(Reservation.start_time, Reservation.created_at)
        .all()
    )


def reservations_for_order(db: Session, tenant_id: UUID, order_number: str):
    """Every row booked under one order number, across all dates."""
    return (
        db.query(Reservation)
        .filter(Reservation.tenant_id == tenant_id, Reservation.order_number == order_number)
        .order_by(Reservation.slot_date, Reservation.start_time)
        .all()
    )


def reservations_for_package(db: Session, tenant_id: UUID, package_tour_id: UUID, date_from: date, date_to: date):
    return (
        db.query(Reservation)
        .filter(
            Reservation.tenant_id == tenant_id,
            Reservation.package_tour_id == package_tour_id,
            Reservation.slot_date >= date_from,
            Reservation.slot_date <= date_to,
        )
        .order_by(Reservation.slot_date, Reservation.start_time)
        .all()
    )
