"""Tenant license and reservation quota check used by admission."""

import logging
from datetime import date, datetime, timezone
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.exceptions import LicenseLimitExceeded
from app.models.license import License
from app.services.ledger import count_created_between, day_bounds

logger = logging.getLogger(__name__)


def _month_bounds(day: date):
    start = datetime(day.year, day.month, 1, tzinfo=timezone.utc)
    if day.month == 12:
        end = datetime(day.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(day.year, day.month + 1, 1, tzinfo=timezone.utc)
    return start, end


def check_reservation_quota(db: Session, tenant_id: UUID, requested: int, today: date = None) -> None:
    """
    Raise ``LicenseLimitExceeded`` if admitting ``requested`` more reservation
    rows would push the tenant past its license.

    A tenant without a license row runs in trial mode and is not limited.
    Counters include every row created in the period, cancelled ones too.
    """
    lic = db.query(License).filter(License.tenant_id == tenant_id).first()
    if lic is None:
        return

    today = today or datetime.now(timezone.utc).date()

    if not lic.is_active:
        raise LicenseLimitExceeded("License is suspended; reservations are read-only")
    if lic.expires_on and lic.expires_on < today:
        raise LicenseLimitExceeded(f"License expired on {lic.expires_on.isoformat()}")

    if lic.max_reservations_per_day is not None:
        used = count_created_between(db, tenant_id, *day_bounds(today))
        if used + requested > lic.max_reservations_per_day:
            logger.info("Tenant %s hit daily quota (%d/%d)", tenant_id, used, lic.max_reservations_per_day)
            raise LicenseLimitExceeded(
                f"Daily reservation limit reached ({used}/{lic.max_reservations_per_day})"
            )

    if lic.max_reservations_per_month is not None:
        used = count_created_between(db, tenant_id, *_month_bounds(today))
        if used + requested > lic.max_reservations_per_month:
            logger.info("Tenant %s hit monthly quota (%d/%d)", tenant_id, used, lic.max_reservations_per_month)
            raise LicenseLimitExceeded(
                f"Monthly reservation limit reached ({used}/{lic.max_reservations_per_month})"
            )
