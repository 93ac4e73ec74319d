from uuid import UUID
from typing import List, Optional
from datetime import date, time

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_admission, get_current_tenant, load_activity
from app.models.activity import Activity, CapacityTemplateEntry
from app.models.capacity import CapacityOverride
from app.models.tenant import Tenant
from app.schemas.activity import (
    ActivityCreate,
    Activity as ActivitySchema,
    TemplateEntryCreate,
    TemplateEntry as TemplateEntrySchema,
    OverrideUpsert,
    Override as OverrideSchema,
)
from app.services.admission import AdmissionController

router = APIRouter(prefix="/admin/activities", tags=["Admin - Activities"])


# ---------------------------------------------------------------------------
# Activities
# ---------------------------------------------------------------------------


@router.get("/", response_model=List[ActivitySchema])
def list_activities(
    include_inactive: bool = Query(False),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    query = db.query(Activity).filter(Activity.tenant_id == tenant.id)
    if not include_inactive:
        query = query.filter(Activity.is_active == True)
    return query.order_by(Activity.name).all()


@router.post("/", response_model=ActivitySchema, status_code=status.HTTP_201_CREATED)
def create_activity(
    payload: ActivityCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    activity = Activity(tenant_id=tenant.id, **payload.model_dump())
    db.add(activity)
    db.commit()
    db.refresh(activity)
    return activity


@router.put("/{activity_id}", response_model=ActivitySchema)
def update_activity(
    activity_id: UUID,
    payload: ActivityCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    activity = load_activity(db, tenant.id, activity_id)
    for field, value in payload.model_dump().items():
        setattr(activity, field, value)
    db.commit()
    db.refresh(activity)
    return activity


@router.delete("/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
def deactivate_activity(
    activity_id: UUID,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """Soft delete: existing reservations keep pointing at the activity."""
    activity = load_activity(db, tenant.id, activity_id)
    activity.is_active = False
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Weekly capacity template
# ---------------------------------------------------------------------------


@router.get("/{activity_id}/templates", response_model=List[TemplateEntrySchema])
def list_template_entries(
    activity_id: UUID,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    load_activity(db, tenant.id, activity_id)
    return (
        db.query(CapacityTemplateEntry)
        .filter(CapacityTemplateEntry.activity_id == activity_id)
        .order_by(CapacityTemplateEntry.start_time)
        .all()
    )


@router.post(
    "/{activity_id}/templates",
    response_model=TemplateEntrySchema,
    status_code=status.HTTP_201_CREATED,
)
def create_template_entry(
    activity_id: UUID,
    payload: TemplateEntryCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """
    Add a recurring slot. Dates that already have bookings keep their pinned
    capacity; the entry applies to every virtual slot from now on.
    """
    load_activity(db, tenant.id, activity_id)
    entry = CapacityTemplateEntry(
        activity_id=activity_id,
        weekdays=",".join(str(d) for d in payload.weekdays),
        start_time=payload.start_time,
        seats=payload.seats,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


@router.delete("/{activity_id}/templates/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template_entry(
    activity_id: UUID,
    entry_id: UUID,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    load_activity(db, tenant.id, activity_id)
    entry = (
        db.query(CapacityTemplateEntry)
        .filter(CapacityTemplateEntry.id == entry_id, CapacityTemplateEntry.activity_id == activity_id)
        .first()
    )
    if not entry:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Template entry not found")
    db.delete(entry)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# Date-specific capacity overrides
# ---------------------------------------------------------------------------


@router.get("/{activity_id}/overrides", response_model=List[OverrideSchema])
def list_overrides(
    activity_id: UUID,
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    load_activity(db, tenant.id, activity_id)
    query = db.query(CapacityOverride).filter(CapacityOverride.activity_id == activity_id)
    if date_from:
        query = query.filter(CapacityOverride.slot_date >= date_from)
    if date_to:
        query = query.filter(CapacityOverride.slot_date <= date_to)
    return query.order_by(CapacityOverride.slot_date, CapacityOverride.start_time).all()


@router.put("/{activity_id}/overrides", response_model=OverrideSchema)
def upsert_override(
    activity_id: UUID,
    payload: OverrideUpsert,
    tenant: Tenant = Depends(get_current_tenant),
    admission: AdmissionController = Depends(get_admission),
):
    """Set the capacity of one date/time. Refused with 409 below the seats already booked."""
    return admission.set_override(
        tenant.id, activity_id, payload.slot_date, payload.start_time, payload.seats
    )


@router.delete("/{activity_id}/overrides", status_code=status.HTTP_204_NO_CONTENT)
def clear_override(
    activity_id: UUID,
    slot_date: date = Query(...),
    start_time: time = Query(...),
    tenant: Tenant = Depends(get_current_tenant),
    admission: AdmissionController = Depends(get_admission),
):
    """Revert a date/time to the weekly template."""
    admission.clear_override(tenant.id, activity_id, slot_date, start_time)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
