from uuid import UUID
from typing import List

from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_tenant
from app.models.package_tour import PackageTour
from app.models.tenant import Tenant
from app.schemas.package_tour import PackageTour as PackageTourSchema, PackageReservationCreate
from app.schemas.reservation import Reservation as ReservationSchema
from app.services.notifications import NotificationDispatcher, get_notifier
from app.services.packages import get_package_tour, reserve_package

router = APIRouter(prefix="/package-tours", tags=["Package Tours"])


@router.get("/", response_model=List[PackageTourSchema])
def list_package_tours(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return (
        db.query(PackageTour)
        .filter(PackageTour.tenant_id == tenant.id, PackageTour.is_active == True)
        .order_by(PackageTour.name)
        .all()
    )


@router.get("/{package_tour_id}", response_model=PackageTourSchema)
def get_package_tour_detail(
    package_tour_id: UUID,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    return get_package_tour(db, tenant.id, package_tour_id)


# ---------------------------------------------------------------------------
# POST /package-tours/{id}/reserve: every member activity, all or nothing
# ---------------------------------------------------------------------------


@router.post(
    "/{package_tour_id}/reserve",
    response_model=List[ReservationSchema],
    status_code=status.HTTP_201_CREATED,
)
def reserve_package_tour(
    package_tour_id: UUID,
    payload: PackageReservationCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """
    Book each activity of the package at start date + its day offset and its
    default time. If any member slot is full nothing is booked and the response
    is a 409 `group_partial_failure` naming the member that failed.
    """
    reservations = reserve_package(
        db,
        tenant.id,
        package_tour_id,
        start_date=payload.start_date,
        quantity=payload.quantity,
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        customer_email=payload.customer_email,
        order_number=payload.order_number or None,
        status=payload.status,
        notes=payload.notes,
    )
    background_tasks.add_task(notifier.dispatch, "reservation_confirmed", [r.id for r in reservations])
    return reservations
