"""Fire-and-forget notification recording.

Runs after the admission transaction has committed (FastAPI background task).
Failures are logged and swallowed: a reservation is never undone because a
notification could not be written.
"""

import logging
from typing import Callable, Iterable
from uuid import UUID

from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.models.notification import Notification
from app.models.reservation import Reservation

logger = logging.getLogger(__name__)

MESSAGES = {
    "reservation_confirmed": ("Reservation received", "Reservation {ref} for {qty} guest(s) on {date} at {time}."),
    "reservation_cancelled": ("Reservation cancelled", "Reservation {ref} on {date} at {time} was cancelled."),
}


class NotificationDispatcher:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def dispatch(self, kind: str, reservation_ids: Iterable[UUID]) -> None:
        title, template = MESSAGES[kind]
        db = self.session_factory()
        try:
            rows = db.query(Reservation).filter(Reservation.id.in_(list(reservation_ids))).all()
            for r in rows:
                db.add(Notification(
                    tenant_id=r.tenant_id,
                    reservation_id=r.id,
                    title=title,
                    type=kind,
                    message=template.format(
                        ref=r.order_number or str(r.id)[:8],
                        qty=r.quantity,
                        date=r.slot_date.isoformat(),
                        time=r.start_time.strftime("%H:%M"),
                    ),
                ))
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to record %s notification(s)", kind)
        finally:
            db.close()


dispatcher = NotificationDispatcher()


def get_notifier() -> NotificationDispatcher:
    return dispatcher
