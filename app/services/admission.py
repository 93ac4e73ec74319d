"""
Admission controller: the only writer of reservations and capacity overrides.

Every check-then-write runs as one unit:

1. acquire the in-process keyed locks for the affected slots, sorted by
   (activity_id, date, time), then the tenant key;
2. pin virtual slots to a ``CapacityOverride`` row (``source=booking``) so the
   slot has a database row to lock;
3. ``SELECT ... FOR UPDATE`` those rows in the same sorted order;
4. re-read the ledger sums, check capacity and quota, write, commit.

External orders take an order key before any slot key; nothing holds a slot
key while waiting for an order key, so the two lock orders cannot deadlock.

Nothing here trusts the availability read path.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import (
    ActivityNotFound,
    BookingError,
    GroupPartialFailure,
    InvalidOverride,
    InvalidStatusTransition,
    Overbooked,
    ReservationNotFound,
    SlotBusy,
    SlotNotFound,
)
from app.models.activity import Activity
from app.models.capacity import CapacityOverride, OverrideSource
from app.models.package_tour import PackageTourActivity
from app.models.reservation import Reservation, ReservationStatus, ACTIVE_STATUSES
from app.models.storefront import StorefrontOrderReceipt
from app.services import grouping
from app.services.ledger import (
    booked_seats,
    get_reservation,
    reservations_for_order,
    reservations_for_package,
)
from app.services.licensing import check_reservation_quota
from app.services.locks import KeyedLockRegistry, slot_locks
from app.services.slots import template_seats

logger = logging.getLogger(__name__)

SlotKey = Tuple[UUID, date, time]

ALLOWED_TRANSITIONS = {
    ReservationStatus.pending: {ReservationStatus.confirmed, ReservationStatus.cancelled},
    ReservationStatus.confirmed: {ReservationStatus.completed, ReservationStatus.cancelled},
    ReservationStatus.cancelled: set(),
    ReservationStatus.completed: set(),
}


@dataclass(frozen=True)
class SlotRequest:
    activity_id: UUID
    slot_date: date
    start_time: time
    quantity: int

    @property
    def key(self) -> SlotKey:
        return (self.activity_id, self.slot_date, self.start_time)

    def describe(self) -> dict:
        return {
            "activity_id": str(self.activity_id),
            "date": self.slot_date.isoformat(),
            "time": self.start_time.strftime("%H:%M"),
            "quantity": self.quantity,
        }


@dataclass
class ReservationDetails:
    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None
    order_number: Optional[str] = None
    package_tour_id: Optional[UUID] = None
    status: ReservationStatus = ReservationStatus.pending
    source: str = "manual"
    notes: Optional[str] = None


def _slot_lock_key(key: SlotKey) -> tuple:
    activity_id, slot_date, start_time = key
    return ("slot", str(activity_id), slot_date.isoformat(), start_time.isoformat())


def _fmt(key: SlotKey) -> str:
    activity_id, slot_date, start_time = key
    return f"{activity_id} on {slot_date.isoformat()} at {start_time.strftime('%H:%M')}"


class AdmissionController:
    def __init__(self, db: Session, locks: KeyedLockRegistry = slot_locks, lock_timeout: Optional[float] = None):
        self.db = db
        self.locks = locks
        self.lock_timeout = settings.SLOT_LOCK_TIMEOUT_SECONDS if lock_timeout is None else lock_timeout

    # ------------------------------------------------------------------
    # Locking helpers
    # ------------------------------------------------------------------

    def _hold(self, keys: Sequence[SlotKey], tenant_id: Optional[UUID] = None):
        lock_keys = [_slot_lock_key(k) for k in sorted(set(keys), key=_slot_lock_key)]
        if tenant_id is not None:
            lock_keys.append(("tenant", str(tenant_id)))
        return self.locks.hold(lock_keys, timeout=self.lock_timeout)

    def _override_query(self, key: SlotKey):
        activity_id, slot_date, start_time = key
        return self.db.query(CapacityOverride).filter(
            CapacityOverride.activity_id == activity_id,
            CapacityOverride.slot_date == slot_date,
            CapacityOverride.start_time == start_time,
        )

    def _pin(self, tenant_id: UUID, key: SlotKey) -> None:
        if self._override_query(key).first() is not None:
            return
        seats = template_seats(self.db, *key)
        if seats is None:
            raise SlotNotFound(f"No slot for activity {_fmt(key)}", slot_key=key)
        activity_id, slot_date, start_time = key
        self.db.add(CapacityOverride(
            tenant_id=tenant_id,
            activity_id=activity_id,
            slot_date=slot_date,
            start_time=start_time,
            seats=seats,
            source=OverrideSource.booking,
        ))
        self.db.flush()

    def _lock_slot_rows(self, tenant_id: UUID, keys: Sequence[SlotKey]) -> Dict[SlotKey, CapacityOverride]:
        """Pin and row-lock every slot in ``keys`` (already sorted)."""
        for attempt in range(2):
            try:
                for key in keys:
                    self._pin(tenant_id, key)
                break
            except IntegrityError:
                # another worker pinned the same slot first; its row is there now
                self.db.rollback()
                if attempt:
                    raise SlotBusy("Slot is being booked concurrently; retry the request")
        return {key: self._override_query(key).with_for_update().one() for key in keys}

    def _get_activity(self, tenant_id: UUID, activity_id: UUID) -> Activity:
        activity = (
            self.db.query(Activity)
            .filter(Activity.id == activity_id, Activity.tenant_id == tenant_id, Activity.is_active == True)
            .first()
        )
        if not activity:
            raise ActivityNotFound(f"Activity {activity_id} not found")
        return activity

    # ------------------------------------------------------------------
    # Admission
    # ------------------------------------------------------------------

    def reserve(self, tenant_id: UUID, request: SlotRequest, details: ReservationDetails) -> Reservation:
        return self._admit(tenant_id, [request], details)[0]

    def reserve_group(self, tenant_id: UUID, requests: Sequence[SlotRequest], details: ReservationDetails) -> List[Reservation]:
        """All-or-nothing admission of several slot requests sharing one group key."""
        if not requests:
            raise ValueError("A group reservation needs at least one item")
        return self._admit(tenant_id, list(requests), details)

    def reserve_order(
        self, tenant_id: UUID, requests: Sequence[SlotRequest], details: ReservationDetails
    ) -> Tuple[List[Reservation], bool]:
        """
        Admit an external order at most once. Returns ``(reservations, duplicate)``.

        The order number is re-checked under its own lock, and a
        ``StorefrontOrderReceipt`` is written in the admission transaction so a
        second worker's copy fails on the unique key instead of booking again.
        """
        if not details.order_number:
            raise ValueError("An external order needs an order number")
        if not requests:
            raise ValueError("A group reservation needs at least one item")
        order_key = ("order", str(tenant_id), details.order_number)

        with self.locks.hold([order_key], timeout=self.lock_timeout):
            existing = reservations_for_order(self.db, tenant_id, details.order_number)
            if existing:
                self.db.rollback()
                return existing, True
            receipt = StorefrontOrderReceipt(tenant_id=tenant_id, order_number=details.order_number)
            try:
                return self._admit(tenant_id, list(requests), details, receipt=receipt), False
            except IntegrityError:
                existing = reservations_for_order(self.db, tenant_id, details.order_number)
                if not existing:
                    raise
                logger.info("Order %s was admitted by another worker", details.order_number)
                return existing, True

    def _admit(
        self,
        tenant_id: UUID,
        requests: List[SlotRequest],
        details: ReservationDetails,
        receipt: Optional[StorefrontOrderReceipt] = None,
    ) -> List[Reservation]:
        if details.status not in ACTIVE_STATUSES:
            raise ValueError("New reservations must be pending or confirmed")
        for request in requests:
            if request.quantity < 1:
                raise ValueError("Quantity must be at least 1")
        for activity_id in {r.activity_id for r in requests}:
            self._get_activity(tenant_id, activity_id)

        is_group = len(requests) > 1
        keys = sorted({r.key for r in requests}, key=_slot_lock_key)
        # members are admitted in lock order, not request order
        ordered = sorted(enumerate(requests), key=lambda pair: _slot_lock_key(pair[1].key))
        created: Dict[int, Reservation] = {}
        current: Optional[SlotRequest] = None

        with self._hold(keys, tenant_id):
            try:
                rows = self._lock_slot_rows(tenant_id, keys)
                if receipt is not None:
                    self.db.add(receipt)
                    self.db.flush()
                check_reservation_quota(self.db, tenant_id, len(requests))

                for index, request in ordered:
                    current = request
                    row = rows[request.key]
                    remaining = row.seats - booked_seats(self.db, *request.key)
                    if request.quantity > remaining:
                        raise Overbooked(
                            f"Only {max(remaining, 0)} seat(s) left for {_fmt(request.key)}, "
                            f"requested {request.quantity}",
                            available=max(remaining, 0),
                            requested=request.quantity,
                        )
                    reservation = Reservation(
                        tenant_id=tenant_id,
                        activity_id=request.activity_id,
                        slot_date=request.slot_date,
                        start_time=request.start_time,
                        quantity=request.quantity,
                        status=details.status,
                        order_number=details.order_number,
                        package_tour_id=details.package_tour_id,
                        customer_name=details.customer_name,
                        customer_phone=details.customer_phone,
                        customer_email=details.customer_email,
                        source=details.source,
                        notes=details.notes,
                    )
                    self.db.add(reservation)
                    self.db.flush()
                    created[index] = reservation
                current = None
                self.db.commit()
            except BookingError as exc:
                self.db.rollback()
                failed = current
                if failed is None and isinstance(exc, SlotNotFound):
                    failed = next((r for r in requests if r.key == exc.slot_key), None)
                if is_group and failed is not None:
                    logger.warning(
                        "Group admission rolled back (%d member(s) undone): %s",
                        len(created), exc.message,
                    )
                    raise GroupPartialFailure(
                        f"Group booking failed on {_fmt(failed.key)}: {exc.message}",
                        member=failed.describe(),
                        cause=exc,
                    ) from exc
                logger.info("Admission rejected for tenant %s: %s", tenant_id, exc.message)
                raise
            except Exception:
                self.db.rollback()
                raise

        result = [created[i] for i in range(len(requests))]
        for reservation in result:
            self.db.refresh(reservation)
        logger.info(
            "Admitted %d reservation(s) for tenant %s: %s",
            len(result), tenant_id, ", ".join(_fmt(r.slot_key) for r in result),
        )
        return result

    def update_quantity(self, tenant_id: UUID, reservation_id: UUID, new_quantity: int) -> Reservation:
        if new_quantity < 1:
            raise ValueError("Quantity must be at least 1")
        reservation = get_reservation(self.db, tenant_id, reservation_id)
        if not reservation:
            raise ReservationNotFound(f"Reservation {reservation_id} not found")
        key, current_status = reservation.slot_key, reservation.status
        self.db.rollback()
        if current_status not in ACTIVE_STATUSES:
            raise InvalidStatusTransition(f"Cannot change quantity of a {current_status.value} reservation")

        with self._hold([key]):
            try:
                # slot row before reservation row: a pin retry rolls back every lock held so far
                row = self._lock_slot_rows(tenant_id, [key])[key]
                reservation = get_reservation(self.db, tenant_id, reservation_id, for_update=True)
                if reservation.status not in ACTIVE_STATUSES:
                    raise InvalidStatusTransition(
                        f"Cannot change quantity of a {reservation.status.value} reservation"
                    )
                delta = new_quantity - reservation.quantity
                if delta > 0:
                    remaining = row.seats - booked_seats(self.db, *key)
                    if delta > remaining:
                        raise Overbooked(
                            f"Only {max(remaining, 0)} more seat(s) left for {_fmt(key)}, requested {delta}",
                            available=max(remaining, 0),
                            requested=delta,
                        )
                reservation.quantity = new_quantity
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(reservation)
        logger.info("Reservation %s quantity set to %d", reservation_id, new_quantity)
        return reservation

    # ------------------------------------------------------------------
    # Status changes
    # ------------------------------------------------------------------

    def cancel(self, tenant_id: UUID, reservation_id: UUID) -> Tuple[Reservation, bool]:
        """
        Cancel one reservation. Returns ``(reservation, changed)``; cancelling an
        already-cancelled reservation is a no-op with ``changed=False``.
        """
        reservation = get_reservation(self.db, tenant_id, reservation_id, for_update=True)
        if not reservation:
            self.db.rollback()
            raise ReservationNotFound(f"Reservation {reservation_id} not found")
        if reservation.status == ReservationStatus.cancelled:
            self.db.rollback()
            return reservation, False
        if reservation.status == ReservationStatus.completed:
            self.db.rollback()
            raise InvalidStatusTransition("Completed reservations cannot be cancelled")

        reservation.status = ReservationStatus.cancelled
        reservation.cancelled_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(reservation)
        logger.info("Reservation %s cancelled", reservation_id)
        return reservation, True

    def cancel_group(self, tenant_id: UUID, reservation_id: UUID) -> Tuple[List[Reservation], List[UUID]]:
        """
        Cancel every member of the logical booking ``reservation_id`` belongs to,
        on every date it spans. All members change or none do.

        Returns ``(members, ids_that_changed)``.
        """
        anchor = get_reservation(self.db, tenant_id, reservation_id)
        if not anchor:
            raise ReservationNotFound(f"Reservation {reservation_id} not found")
        group = grouping.find_group(self._group_candidates(tenant_id, anchor), reservation_id)
        member_ids = sorted((m.id for m in group.members), key=str)
        self.db.rollback()

        try:
            members = (
                self.db.query(Reservation)
                .filter(Reservation.id.in_(member_ids))
                .order_by(Reservation.id)
                .with_for_update()
                .all()
            )
            blocked = [m for m in members if m.status == ReservationStatus.completed]
            if blocked:
                raise InvalidStatusTransition(
                    f"Group contains {len(blocked)} completed reservation(s) and cannot be cancelled"
                )
            now = datetime.now(timezone.utc)
            changed = []
            for member in members:
                if member.status in ACTIVE_STATUSES:
                    member.status = ReservationStatus.cancelled
                    member.cancelled_at = now
                    changed.append(member.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for member in members:
            self.db.refresh(member)
        logger.info("Cancelled group of %d reservation(s) anchored at %s", len(changed), reservation_id)
        return members, changed

    def _group_candidates(self, tenant_id: UUID, anchor: Reservation) -> List[Reservation]:
        """Rows that may share ``anchor``'s group key, whatever their date."""
        if anchor.order_number:
            return reservations_for_order(self.db, tenant_id, anchor.order_number)
        if anchor.package_tour_id:
            span = (
                self.db.query(func.max(PackageTourActivity.day_offset))
                .filter(PackageTourActivity.package_tour_id == anchor.package_tour_id)
                .scalar()
            ) or 0
            return reservations_for_package(
                self.db, tenant_id, anchor.package_tour_id,
                anchor.slot_date - timedelta(days=span), anchor.slot_date + timedelta(days=span),
            )
        return [anchor]

    def update_status(self, tenant_id: UUID, reservation_id: UUID, new_status: ReservationStatus) -> Tuple[Reservation, bool]:
        if new_status == ReservationStatus.cancelled:
            return self.cancel(tenant_id, reservation_id)

        reservation = get_reservation(self.db, tenant_id, reservation_id, for_update=True)
        if not reservation:
            self.db.rollback()
            raise ReservationNotFound(f"Reservation {reservation_id} not found")
        if reservation.status == new_status:
            self.db.rollback()
            return reservation, False
        if new_status not in ALLOWED_TRANSITIONS[reservation.status]:
            self.db.rollback()
            raise InvalidStatusTransition(
                f"Cannot move reservation from {reservation.status.value} to {new_status.value}"
            )

        reservation.status = new_status
        self.db.commit()
        self.db.refresh(reservation)
        logger.info("Reservation %s is now %s", reservation_id, new_status.value)
        return reservation, True

    # ------------------------------------------------------------------
    # Capacity overrides
    # ------------------------------------------------------------------

    def set_override(self, tenant_id: UUID, activity_id: UUID, slot_date: date, start_time: time, seats: int) -> CapacityOverride:
        """Create or update an operator override; never below committed seats."""
        if seats < 0:
            raise ValueError("Seats cannot be negative")
        self._get_activity(tenant_id, activity_id)
        key = (activity_id, slot_date, start_time)

        with self._hold([key]):
            try:
                row = self._override_query(key).with_for_update().first()
                booked = booked_seats(self.db, *key)
                if seats < booked:
                    raise InvalidOverride(
                        f"{booked} seat(s) are already committed for {_fmt(key)}; cannot set capacity to {seats}"
                    )
                if row is None:
                    row = CapacityOverride(
                        tenant_id=tenant_id,
                        activity_id=activity_id,
                        slot_date=slot_date,
                        start_time=start_time,
                        seats=seats,
                        source=OverrideSource.operator,
                    )
                    self.db.add(row)
                else:
                    row.seats = seats
                    row.source = OverrideSource.operator
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                raise SlotBusy("Slot is being booked concurrently; retry the request")
            except Exception:
                self.db.rollback()
                raise

        self.db.refresh(row)
        logger.info("Capacity override for %s set to %d", _fmt(key), seats)
        return row

    def clear_override(self, tenant_id: UUID, activity_id: UUID, slot_date: date, start_time: time) -> Optional[CapacityOverride]:
        """
        Revert a slot to its template capacity.

        With no bookings the row is deleted (slot becomes virtual again) and
        ``None`` is returned. With bookings the row stays as a pinned
        template value, and the revert is refused if the template would not
        cover the committed seats.
        """
        self._get_activity(tenant_id, activity_id)
        key = (activity_id, slot_date, start_time)

        with self._hold([key]):
            try:
                row = self._override_query(key).with_for_update().first()
                if row is None:
                    raise SlotNotFound(f"No capacity override for {_fmt(key)}")
                booked = booked_seats(self.db, *key)
                template = template_seats(self.db, *key)
                if booked == 0:
                    self.db.delete(row)
                    row = None
                elif template is None or template < booked:
                    raise InvalidOverride(
                        f"{booked} seat(s) are committed for {_fmt(key)}; "
                        f"template capacity {template or 0} would not cover them"
                    )
                else:
                    row.seats = template
                    row.source = OverrideSource.booking
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise

        if row is not None:
            self.db.refresh(row)
        logger.info("Capacity override for %s reverted to template", _fmt(key))
        return row
