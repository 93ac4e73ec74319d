import uuid
import enum
from sqlalchemy import Column, Date, Time, Integer, Enum, ForeignKey, DateTime, func, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base


class OverrideSource(str, enum.Enum):
    operator = "operator"  # explicit capacity exception set by staff
    booking = "booking"    # template value pinned by the first reservation on the slot


class CapacityOverride(Base):
    """Date-specific capacity row. Absence of a row means the slot is virtual."""

    __tablename__ = "capacity_overrides"
    __table_args__ = (
        UniqueConstraint("activity_id", "slot_date", "start_time", name="uq_capacity_override_slot"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    activity_id = Column(UUID(as_uuid=True), ForeignKey("activities.id"), nullable=False, index=True)
    slot_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    seats = Column(Integer, nullable=False)
    source = Column(Enum(OverrideSource, name="override_source"), nullable=False, default=OverrideSource.operator)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    activity = relationship("Activity", back_populates="capacity_overrides")
