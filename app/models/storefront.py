import uuid
from sqlalchemy import Column, String, DateTime, func, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from app.db.session import Base


class StorefrontOrderReceipt(Base):
    """One row per external order admitted; written in the same transaction as its reservations."""

    __tablename__ = "storefront_orders"
    __table_args__ = (
        UniqueConstraint("tenant_id", "order_number", name="uq_storefront_order_number"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id = Column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False, index=True)
    order_number = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
