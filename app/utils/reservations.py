from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.models.reservation import Reservation, ReservationStatus


def complete_past_reservations(db: Session, today: Optional[date] = None) -> int:
    """
    Mark confirmed reservations whose slot date has passed as completed.

    Pending reservations are left alone; staff decide whether those happened.
    Returns the number of reservations completed.
    """
    # slot_date is stored as a timezone-naive local date
    today = today or date.today()

    count = (
        db.query(Reservation)
        .filter(
            Reservation.status == ReservationStatus.confirmed,
            Reservation.slot_date < today,
        )
        .update({"status": ReservationStatus.completed}, synchronize_session="fetch")
    )
    db.commit()
    return count
