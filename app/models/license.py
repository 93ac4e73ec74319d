import uuid
from sqlalchemy import Column, Boolean, Date, DateTime, func, Integer, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base

class License(Base):
    __tablename__ = "licenses"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, unique=True)
    is_active = Column(Boolean, default=True)
    expires_on = Column(Date, nullable=True)
    max_reservations_per_day = Column(Integer, nullable=True)    # NULL = unlimited
    max_reservations_per_month = Column(Integer, nullable=True)  # NULL = unlimited
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    tenant = relationship("Tenant", back_populates="license")
