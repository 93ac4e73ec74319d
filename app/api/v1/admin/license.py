from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import get_current_tenant
from app.models.license import License
from app.models.tenant import Tenant
from app.schemas.license import LicenseUpdate, License as LicenseSchema

router = APIRouter(prefix="/admin/license", tags=["Admin - License"])


@router.get("/", response_model=LicenseSchema)
def get_license(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    """Without a license row the tenant runs in trial mode (no quota)."""
    license = db.query(License).filter(License.tenant_id == tenant.id).first()
    if not license:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No license; tenant is in trial mode")
    return license


@router.put("/", response_model=LicenseSchema)
def upsert_license(
    payload: LicenseUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(get_current_tenant),
):
    license = db.query(License).filter(License.tenant_id == tenant.id).first()
    if license is None:
        license = License(tenant_id=tenant.id)
        db.add(license)
    for field, value in payload.model_dump().items():
        setattr(license, field, value)
    db.commit()
    db.refresh(license)
    return license
