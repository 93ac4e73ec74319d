"""
Intake of external storefront orders (WooCommerce-shaped webhook payloads).

Each line item is resolved to an activity and a slot; the resolved items are
admitted as one group keyed by the order number. Re-delivered orders return
the reservations already on file instead of booking twice, including a
delivery that overlaps the one still being admitted.
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date, time
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.activity import Activity
from app.models.reservation import Reservation, ReservationStatus
from app.schemas.storefront import StorefrontOrder, StorefrontLineItem
from app.services.admission import AdmissionController, ReservationDetails, SlotRequest
from app.services.ledger import reservations_for_order

logger = logging.getLogger(__name__)

MATCH_THRESHOLD = 0.5

# Turkish letters that NFD decomposition leaves alone
_TRANSLITERATE = str.maketrans({"ı": "i", "İ": "i", "ğ": "g", "Ğ": "g", "ş": "s", "Ş": "s"})


@dataclass
class IntakeResult:
    order_number: str
    reservations: List[Reservation] = field(default_factory=list)
    skipped: List[dict] = field(default_factory=list)
    duplicate: bool = False


def normalize_text(text: str) -> str:
    text = (text or "").translate(_TRANSLITERATE).lower()
    text = unicodedata.normalize("NFD", text)
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^a-z0-9\s]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def tokens(text: str) -> List[str]:
    return [t for t in normalize_text(text).split(" ") if len(t) > 2]


def overlap_score(a: List[str], b: List[str]) -> float:
    """Share of the smaller token set found in the other one."""
    if not a or not b:
        return 0.0
    set_a, set_b = set(a), set(b)
    return len(set_a & set_b) / min(len(set_a), len(set_b))


def match_activity(name: str, activities: List[Activity]) -> Optional[Activity]:
    product = tokens(name)
    best, best_score = None, 0.0
    for activity in activities:
        for candidate in [activity.name] + list(activity.name_aliases or []):
            score = overlap_score(product, tokens(candidate))
            if score >= MATCH_THRESHOLD and score > best_score:
                best, best_score = activity, score
    return best


def _meta(entries, key: str) -> Optional[str]:
    for entry in entries or []:
        if entry.key == key and entry.value not in (None, ""):
            return str(entry.value)
    return None


def _resolve_item(
    item: StorefrontLineItem,
    order: StorefrontOrder,
    activities: List[Activity],
    by_id: Dict[str, Activity],
) -> SlotRequest:
    activity_ref = _meta(item.meta_data, "activity_id")
    activity = by_id.get(activity_ref) if activity_ref else match_activity(item.name, activities)
    if activity is None:
        raise LookupError(f"No activity matches product '{item.name}'")

    raw_date = _meta(item.meta_data, "booking_date") or _meta(order.meta_data, "booking_date")
    raw_time = _meta(item.meta_data, "booking_time") or _meta(order.meta_data, "booking_time")
    if not raw_date or not raw_time:
        raise LookupError(f"Product '{item.name}' has no booking_date/booking_time")
    try:
        slot_date = date.fromisoformat(raw_date)
        start_time = time.fromisoformat(raw_time)
    except ValueError:
        raise LookupError(f"Unreadable booking date/time '{raw_date} {raw_time}'")

    return SlotRequest(activity.id, slot_date, start_time, item.quantity)


def intake_order(db: Session, tenant_id: UUID, order: StorefrontOrder) -> IntakeResult:
    order_number = str(order.id)
    result = IntakeResult(order_number=order_number)

    existing = reservations_for_order(db, tenant_id, order_number)
    if existing:
        logger.info("Storefront order %s already booked; returning %d reservation(s)", order_number, len(existing))
        result.reservations = existing
        result.duplicate = True
        return result

    activities = (
        db.query(Activity)
        .filter(Activity.tenant_id == tenant_id, Activity.is_active == True)
        .all()
    )
    by_id = {str(a.id): a for a in activities}

    requests = []
    for item in order.line_items:
        try:
            requests.append(_resolve_item(item, order, activities, by_id))
        except LookupError as exc:
            logger.warning("Storefront order %s: skipping item: %s", order_number, exc)
            result.skipped.append({"name": item.name, "reason": str(exc)})

    if not requests:
        return result

    billing = order.billing
    details = ReservationDetails(
        customer_name=f"{billing.first_name} {billing.last_name}".strip() or "Storefront customer",
        customer_phone=billing.phone or "",
        customer_email=billing.email or None,
        order_number=order_number,
        status=ReservationStatus.confirmed,
        source="web",
    )
    result.reservations, result.duplicate = AdmissionController(db).reserve_order(tenant_id, requests, details)
    if result.duplicate:
        logger.info("Storefront order %s was booked by an overlapping delivery", order_number)
    return result
