import uuid
from sqlalchemy import Column, String, Boolean, DateTime, func, Text, Integer, Time, ForeignKey, JSON
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base

ALL_WEEKDAYS = "0,1,2,3,4,5,6"


class Activity(Base):
    __tablename__ = "activities"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    name_aliases = Column(JSON, default=list)  # alternate names used by storefront matching
    description = Column(Text, nullable=True)
    duration_minutes = Column(Integer, default=60)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    tenant = relationship("Tenant", back_populates="activities")
    capacity_templates = relationship(
        "CapacityTemplateEntry", back_populates="activity", cascade="all, delete-orphan"
    )
    capacity_overrides = relationship(
        "CapacityOverride", back_populates="activity", cascade="all, delete-orphan"
    )
    reservations = relationship("Reservation", back_populates="activity")


class CapacityTemplateEntry(Base):
    __tablename__ = "capacity_templates"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    activity_id = Column(UUID(as_uuid=True), ForeignKey("activities.id"), nullable=False, index=True)
    # comma-separated weekdays: 0=Mon..6=Sun
    weekdays = Column(String(20), nullable=False, default=ALL_WEEKDAYS)
    start_time = Column(Time, nullable=False)
    seats = Column(Integer, nullable=False)

    activity = relationship("Activity", back_populates="capacity_templates")

    @property
    def weekday_set(self) -> frozenset:
        return frozenset(int(d) for d in self.weekdays.split(",") if d.strip())
