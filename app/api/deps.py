from uuid import UUID

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from app.core.exceptions import ActivityNotFound
from app.db.session import get_db
from app.models.activity import Activity
from app.models.tenant import Tenant
from app.services.admission import AdmissionController


def load_tenant(db: Session, tenant_id: UUID) -> Tenant:
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id, Tenant.is_active == True).first()
    if not tenant:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Tenant not found")
    return tenant


def get_current_tenant(
    x_tenant_id: UUID = Header(..., alias="X-Tenant-ID"),
    db: Session = Depends(get_db),
) -> Tenant:
    """Every call is tenant-scoped; the hosting gateway sets ``X-Tenant-ID``."""
    return load_tenant(db, x_tenant_id)


def get_admission(db: Session = Depends(get_db)) -> AdmissionController:
    return AdmissionController(db)


def load_activity(db: Session, tenant_id: UUID, activity_id: UUID) -> Activity:
    activity = (
        db.query(Activity)
        .filter(Activity.id == activity_id, Activity.tenant_id == tenant_id)
        .first()
    )
    if not activity:
        raise ActivityNotFound(f"Activity {activity_id} not found")
    return activity
