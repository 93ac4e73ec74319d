import logging
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from app.db.session import get_db
from app.api.deps import load_tenant
from app.schemas.reservation import Reservation as ReservationSchema
from app.schemas.storefront import StorefrontOrder, StorefrontIntakeResponse, SkippedItem
from app.services.notifications import NotificationDispatcher, get_notifier
from app.services.storefront import intake_order

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/storefront/{tenant_id}", response_model=StorefrontIntakeResponse)
def storefront_order(
    tenant_id: UUID,
    order: StorefrontOrder,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notifier),
):
    """
    Order-created hook of the tenant's web shop.

    The shop retries deliveries, so an order number that is already booked
    returns the stored reservations with `duplicate: true`.
    """
    tenant = load_tenant(db, tenant_id)
    logger.info("Storefront order %s received for tenant %s", order.id, tenant.id)
    result = intake_order(db, tenant.id, order)
    if result.reservations and not result.duplicate:
        background_tasks.add_task(
            notifier.dispatch, "reservation_confirmed", [r.id for r in result.reservations]
        )
    return StorefrontIntakeResponse(
        order_number=result.order_number,
        duplicate=result.duplicate,
        reservations=[ReservationSchema.model_validate(r) for r in result.reservations],
        skipped=[SkippedItem(**s) for s in result.skipped],
    )
