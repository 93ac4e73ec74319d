"""Fold raw reservation rows into logical bookings.

Group key precedence:

1. ``order_number`` - explicit, authoritative;
2. ``(package_tour_id, customer_name, customer_phone)`` - fallback for manually
   entered package bookings without an order number;
3. otherwise the row stands alone.

The fallback cannot tell apart two separate same-day bookings of the same
package by the same customer; those rows merge into one group.
"""

import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from app.models.reservation import Reservation, ReservationStatus


@dataclass
class ReservationGroup:
    key: Tuple
    members: List[Reservation] = field(default_factory=list)

    @property
    def is_group(self) -> bool:
        return len(self.members) > 1

    @property
    def kind(self) -> str:
        return self.key[0]

    @property
    def total_quantity(self) -> int:
        """Combined headcount of members that are not cancelled."""
        return sum(m.quantity for m in self.members if m.status != ReservationStatus.cancelled)

    @property
    def status(self) -> str:
        statuses = {m.status.value for m in self.members}
        return statuses.pop() if len(statuses) == 1 else "mixed"

    @property
    def first_time(self):
        return min(m.start_time for m in self.members)


def normalize_name(name: Optional[str]) -> str:
    return " ".join((name or "").split()).casefold()


def normalize_phone(phone: Optional[str]) -> str:
    return re.sub(r"\D", "", phone or "")


def group_key(reservation: Reservation) -> Tuple:
    if reservation.order_number:
        return ("order", reservation.order_number.strip())
    if reservation.package_tour_id:
        return (
            "package",
            str(reservation.package_tour_id),
            normalize_name(reservation.customer_name),
            normalize_phone(reservation.customer_phone),
        )
    return ("single", str(reservation.id))


def group_reservations(rows: Iterable[Reservation]) -> List[ReservationGroup]:
    """Group rows (usually one date's worth), ordered by earliest member time."""
    groups = {}
    for row in rows:
        key = group_key(row)
        if key not in groups:
            groups[key] = ReservationGroup(key=key)
        groups[key].members.append(row)

    for group in groups.values():
        group.members.sort(key=lambda m: (m.start_time, str(m.activity_id)))
    return sorted(groups.values(), key=lambda g: (g.first_time, g.key))


def find_group(rows: Iterable[Reservation], reservation_id) -> ReservationGroup:
    for group in group_reservations(rows):
        if any(m.id == reservation_id for m in group.members):
            return group
    raise LookupError(f"Reservation {reservation_id} is not among the given rows")
