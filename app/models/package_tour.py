import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Integer, Time, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base

class PackageTour(Base):
    __tablename__ = "package_tours"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    members = relationship(
        "PackageTourActivity",
        back_populates="package_tour",
        cascade="all, delete-orphan",
        order_by="PackageTourActivity.sort_order",
    )

class PackageTourActivity(Base):
    __tablename__ = "package_tour_activities"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    package_tour_id = Column(UUID(as_uuid=True), ForeignKey("package_tours.id"), nullable=False, index=True)
    activity_id = Column(UUID(as_uuid=True), ForeignKey("activities.id"), nullable=False)
    day_offset = Column(Integer, default=0)  # days after the package start date
    default_time = Column(Time, nullable=False)
    sort_order = Column(Integer, default=0)

    package_tour = relationship("PackageTour", back_populates="members")
    activity = relationship("Activity")
