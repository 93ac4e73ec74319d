import uuid
import enum
from sqlalchemy import Column, String, DateTime, func, Integer, ForeignKey, Text, Date, Time, Enum, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.db.session import Base


class ReservationStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    completed = "completed"


# Only these statuses consume seats
ACTIVE_STATUSES = (ReservationStatus.pending, ReservationStatus.confirmed)


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        Index("ix_reservations_slot_status", "activity_id", "slot_date", "start_time", "status"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    activity_id = Column(UUID(as_uuid=True), ForeignKey("activities.id"), nullable=False, index=True)
    slot_date = Column(Date, nullable=False, index=True)
    start_time = Column(Time, nullable=False)
    quantity = Column(Integer, nullable=False)
    status = Column(Enum(ReservationStatus, name="reservation_status"), nullable=False,
                    default=ReservationStatus.pending, index=True)

    # Group key parts: order_number wins, else package + customer tuple
    order_number = Column(String(64), nullable=True, index=True)
    package_tour_id = Column(UUID(as_uuid=True), ForeignKey("package_tours.id"), nullable=True, index=True)
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(50), nullable=False)
    customer_email = Column(String(255), nullable=True)

    source = Column(String(20), default="manual")  # manual, whatsapp, web, package
    notes = Column(Text, nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    activity = relationship("Activity", back_populates="reservations")
    package_tour = relationship("PackageTour")

    @property
    def slot_key(self):
        return (self.activity_id, self.slot_date, self.start_time)
