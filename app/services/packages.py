from datetime import date, timedelta
from typing import List, Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import PackageTourNotFound
from app.models.package_tour import PackageTour
from app.models.reservation import Reservation, ReservationStatus
from app.services.admission import AdmissionController, ReservationDetails, SlotRequest


def get_package_tour(db: Session, tenant_id: UUID, package_tour_id: UUID) -> PackageTour:
    tour = (
        db.query(PackageTour)
        .options(joinedload(PackageTour.members))
        .filter(
            PackageTour.id == package_tour_id,
            PackageTour.tenant_id == tenant_id,
            PackageTour.is_active == True,
        )
        .first()
    )
    if not tour:
        raise PackageTourNotFound(f"Package tour {package_tour_id} not found")
    return tour


def package_requests(tour: PackageTour, start_date: date, quantity: int) -> List[SlotRequest]:
    """One slot request per package member, at start date + day offset and the member's default time."""
    return [
        SlotRequest(
            activity_id=member.activity_id,
            slot_date=start_date + timedelta(days=member.day_offset or 0),
            start_time=member.default_time,
            quantity=quantity,
        )
        for member in tour.members
    ]


def reserve_package(
    db: Session,
    tenant_id: UUID,
    package_tour_id: UUID,
    start_date: date,
    quantity: int,
    customer_name: str,
    customer_phone: str,
    customer_email: Optional[str] = None,
    order_number: Optional[str] = None,
    status: ReservationStatus = ReservationStatus.pending,
    notes: Optional[str] = None,
) -> List[Reservation]:
    tour = get_package_tour(db, tenant_id, package_tour_id)
    if not tour.members:
        raise ValueError(f"Package tour {tour.name} has no activities")
    requests = package_requests(tour, start_date, quantity)
    details = ReservationDetails(
        customer_name=customer_name,
        customer_phone=customer_phone,
        customer_email=customer_email,
        order_number=order_number,
        package_tour_id=tour.id,
        status=status,
        source="package",
        notes=notes,
    )
    return AdmissionController(db).reserve_group(tenant_id, requests, details)
