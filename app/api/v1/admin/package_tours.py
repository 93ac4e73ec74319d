from uuid import UUID
from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_tenant, load_activity
from app.models.package_tour import PackageTour, PackageTourActivity
from app.models.tenant import Tenant
from app.schemas.package_tour import PackageTourCreate, PackageTour as PackageTourSchema
from app.services.packages import get_package_tour

router = APIRouter(prefix="/admin/package-tours", tags=["Admin - Package Tours"])


def _build_members(db: Session, tenant_id: UUID, payload: PackageTourCreate) -> List[PackageTourActivity]:
    members = []
    for index, m in enumerate(payload.members):
        load_activity(db, tenant_id, m.activity_id)
        members.append(PackageTourActivity(
            activity_id=m.activity_id,
            day_offset=m.day_offset,
            default_time=m.default_time,
            sort_order=m.sort_order or index,
        ))
    return members


@router.post("/", response_model=PackageTourSchema, status_code=status.HTTP_201_CREATED)
def create_package_tour(
    payload: PackageTourCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    tour = PackageTour(
        tenant_id=tenant.id,
        name=payload.name,
        description=payload.description,
        members=_build_members(db, tenant.id, payload),
    )
    db.add(tour)
    db.commit()
    db.refresh(tour)
    return tour


@router.put("/{package_tour_id}", response_model=PackageTourSchema)
def update_package_tour(
    package_tour_id: UUID,
    payload: PackageTourCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """Replace name, description and the member list. Existing reservations are untouched."""
    tour = get_package_tour(db, tenant.id, package_tour_id)
    tour.name = payload.name
    tour.description = payload.description
    tour.members = _build_members(db, tenant.id, payload)
    db.commit()
    db.refresh(tour)
    return tour


@router.delete("/{package_tour_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_package_tour(
    package_tour_id: UUID,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    tour = get_package_tour(db, tenant.id, package_tour_id)
    tour.is_active = False
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
