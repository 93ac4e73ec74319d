from uuid import UUID
from typing import Dict, List, Optional
from datetime import date

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ReservationNotFound
from app.db.session import get_db
from app.api.deps import get_admission, get_current_tenant
from app.models.activity import Activity
from app.models.reservation import Reservation, ReservationStatus
from app.models.tenant import Tenant
from app.schemas.reservation import (
    ReservationCreate,
    GroupReservationCreate,
    QuantityUpdate,
    StatusUpdate,
    Reservation as ReservationSchema,
    GroupMember,
    ReservationGroup as ReservationGroupSchema,
    GroupedReservationsResponse,
    GroupCancelResponse,
)
from app.schemas.common import PaginatedResponse
from app.services.admission import AdmissionController, ReservationDetails, SlotRequest
from app.services.grouping import ReservationGroup, group_reservations
from app.services.ledger import get_reservation, reservations_for_date
from app.services.notifications import NotificationDispatcher, get_notifier

router = APIRouter(prefix="/reservations", tags=["Reservations"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _details(payload) -> ReservationDetails:
    return ReservationDetails(
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        customer_email=payload.customer_email,
        order_number=payload.order_number,
        package_tour_id=payload.package_tour_id,
        status=payload.status,
        source=payload.source,
        notes=payload.notes,
    )


def _serialize_group(group: ReservationGroup, names: Dict[UUID, str]) -> ReservationGroupSchema:
    first = group.members[0]
    return ReservationGroupSchema(
        group_type=group.kind,
        is_group=group.is_group,
        order_number=first.order_number,
        package_tour_id=first.package_tour_id,
        customer_name=first.customer_name,
        customer_phone=first.customer_phone,
        total_quantity=group.total_quantity,
        status=group.status,
        members=[
            GroupMember(
                reservation_id=m.id,
                activity_id=m.activity_id,
                activity_name=names.get(m.activity_id),
                time=m.start_time,
                quantity=m.quantity,
                status=m.status,
            )
            for m in group.members
        ],
    )


# ---------------------------------------------------------------------------
# POST /reservations: single slot
# ---------------------------------------------------------------------------


@router.post("/", response_model=ReservationSchema, status_code=status.HTTP_201_CREATED)
def create_reservation(
    payload: ReservationCreate,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_current_tenant),
    admission: AdmissionController = Depends(get_admission),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """
    Reserve seats in one slot.

    Capacity is re-checked under the slot lock; a 409 `overbooked` response
    carries the seats still available.
    """
    request = SlotRequest(payload.activity_id, payload.date, payload.time, payload.quantity)
    reservation = admission.reserve(tenant.id, request, _details(payload))
    background_tasks.add_task(notifier.dispatch, "reservation_confirmed", [reservation.id])
    return reservation


# ---------------------------------------------------------------------------
# POST /reservations/group: several slots, all or nothing
# ---------------------------------------------------------------------------


@router.post("/group", response_model=List[ReservationSchema], status_code=status.HTTP_201_CREATED)
def create_group_reservation(
    payload: GroupReservationCreate,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_current_tenant),
    admission: AdmissionController = Depends(get_admission),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    requests = [SlotRequest(i.activity_id, i.date, i.time, i.quantity) for i in payload.items]
    reservations = admission.reserve_group(tenant.id, requests, _details(payload))
    background_tasks.add_task(notifier.dispatch, "reservation_confirmed", [r.id for r in reservations])
    return reservations


# ---------------------------------------------------------------------------
# GET /reservations/grouped: logical bookings for one date
# ---------------------------------------------------------------------------


@router.get("/grouped", response_model=GroupedReservationsResponse)
def list_grouped_reservations(
    date: date = Query(..., description="Slot date (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """Fold one day's reservations into orders, package bookings and singles."""
    rows = reservations_for_date(db, tenant.id, date)
    activity_ids = {r.activity_id for r in rows}
    names = {}
    if activity_ids:
        names = {
            a.id: a.name
            for a in db.query(Activity).filter(Activity.id.in_(activity_ids)).all()
        }
    return GroupedReservationsResponse(
        date=date,
        groups=[_serialize_group(g, names) for g in group_reservations(rows)],
    )


# ---------------------------------------------------------------------------
# GET /reservations: paginated ledger listing
# ---------------------------------------------------------------------------


@router.get("/", response_model=PaginatedResponse[ReservationSchema])
def list_reservations(
    status: Optional[ReservationStatus] = Query(None),
    activity_id: Optional[UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """Reservations of the tenant, most recent slot first."""
    query = db.query(Reservation).filter(Reservation.tenant_id == tenant.id)
    if status:
        query = query.filter(Reservation.status == status)
    if activity_id:
        query = query.filter(Reservation.activity_id == activity_id)
    if date_from:
        query = query.filter(Reservation.slot_date >= date_from)
    if date_to:
        query = query.filter(Reservation.slot_date <= date_to)

    total = query.count()
    reservations = (
        query.order_by(Reservation.slot_date.desc(), Reservation.start_time.desc(), Reservation.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return PaginatedResponse(
        data=[ReservationSchema.model_validate(r) for r in reservations],
        total=total,
        page=page,
        limit=limit,
        total_pages=-(-total // limit) if total else 0,
    )


# ---------------------------------------------------------------------------
# GET /reservations/{id}
# ---------------------------------------------------------------------------


@router.get("/{reservation_id}", response_model=ReservationSchema)
def get_reservation_detail(
    reservation_id: UUID,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    reservation = get_reservation(db, tenant.id, reservation_id)
    if not reservation:
        raise ReservationNotFound(f"Reservation {reservation_id} not found")
    return reservation


# ---------------------------------------------------------------------------
# POST /reservations/{id}/cancel: idempotent
# ---------------------------------------------------------------------------


@router.post("/{reservation_id}/cancel", response_model=ReservationSchema)
def cancel_reservation(
    reservation_id: UUID,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_current_tenant),
    admission: AdmissionController = Depends(get_admission),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """Cancelling twice returns the same cancelled reservation and frees nothing more."""
    reservation, changed = admission.cancel(tenant.id, reservation_id)
    if changed:
        background_tasks.add_task(notifier.dispatch, "reservation_cancelled", [reservation.id])
    return reservation


# ---------------------------------------------------------------------------
# POST /reservations/{id}/cancel-group: whole logical booking
# ---------------------------------------------------------------------------


@router.post("/{reservation_id}/cancel-group", response_model=GroupCancelResponse)
def cancel_reservation_group(
    reservation_id: UUID,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_current_tenant),
    admission: AdmissionController = Depends(get_admission),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    members, changed = admission.cancel_group(tenant.id, reservation_id)
    if changed:
        background_tasks.add_task(notifier.dispatch, "reservation_cancelled", changed)
    return GroupCancelResponse(
        cancelled=changed,
        members=[ReservationSchema.model_validate(m) for m in members],
    )


# ---------------------------------------------------------------------------
# POST /reservations/{id}/quantity
# ---------------------------------------------------------------------------


@router.post("/{reservation_id}/quantity", response_model=ReservationSchema)
def change_quantity(
    reservation_id: UUID,
    payload: QuantityUpdate,
    tenant: Tenant = Depends(get_current_tenant),
    admission: AdmissionController = Depends(get_admission),
):
    """Only an increase is checked against the remaining seats."""
    return admission.update_quantity(tenant.id, reservation_id, payload.quantity)


# ---------------------------------------------------------------------------
# POST /reservations/{id}/status
# ---------------------------------------------------------------------------


@router.post("/{reservation_id}/status", response_model=ReservationSchema)
def change_status(
    reservation_id: UUID,
    payload: StatusUpdate,
    background_tasks: BackgroundTasks,
    tenant: Tenant = Depends(get_current_tenant),
    admission: AdmissionController = Depends(get_admission),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """pending -> confirmed | cancelled, confirmed -> completed | cancelled."""
    reservation, changed = admission.update_status(tenant.id, reservation_id, payload.status)
    if changed and reservation.status == ReservationStatus.cancelled:
        background_tasks.add_task(notifier.dispatch, "reservation_cancelled", [reservation.id])
    return reservation
