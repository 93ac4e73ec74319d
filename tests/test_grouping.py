from datetime import date, time
from uuid import uuid4

import pytest

from app.models import Reservation, ReservationStatus
from app.services.grouping import find_group, group_key, group_reservations

DAY = date(2024, 6, 10)
PACKAGE_ID = uuid4()


def row(hour, quantity=1, status=ReservationStatus.confirmed, **kwargs):
    kwargs.setdefault("customer_name", "Ayse Yilmaz")
    kwargs.setdefault("customer_phone", "0532 111 22 33")
    return Reservation(
        id=uuid4(),
        activity_id=uuid4(),
        slot_date=DAY,
        start_time=time(hour, 0),
        quantity=quantity,
        status=status,
        **kwargs,
    )


def test_order_number_wins_over_package_tuple():
    a = row(9, order_number="WEB-1", package_tour_id=PACKAGE_ID)
    b = row(14, order_number="WEB-1", package_tour_id=PACKAGE_ID, customer_name="Someone Else")

    groups = group_reservations([a, b])

    assert len(groups) == 1
    assert groups[0].kind == "order"
    assert groups[0].is_group


def test_package_tuple_groups_when_order_number_missing():
    a = row(9, package_tour_id=PACKAGE_ID)
    b = row(13, package_tour_id=PACKAGE_ID, customer_name="  ayse   YILMAZ ", customer_phone="(0532) 111-22-33")

    assert group_key(a) == group_key(b)
    groups = group_reservations([b, a])
    assert len(groups) == 1
    assert groups[0].kind == "package"
    assert [m.start_time for m in groups[0].members] == [time(9), time(13)]


def test_different_customer_splits_package_group():
    a = row(9, package_tour_id=PACKAGE_ID)
    b = row(13, package_tour_id=PACKAGE_ID, customer_phone="0555 999 88 77")

    assert len(group_reservations([a, b])) == 2


def test_rows_without_keys_stand_alone():
    a, b = row(9), row(9)

    groups = group_reservations([a, b])

    assert [g.kind for g in groups] == ["single", "single"]
    assert not any(g.is_group for g in groups)


def test_headcount_and_status_summary():
    a = row(9, quantity=2, order_number="WEB-2")
    b = row(11, quantity=3, order_number="WEB-2", status=ReservationStatus.cancelled)

    group = group_reservations([a, b])[0]

    assert group.total_quantity == 2
    assert group.status == "mixed"


def test_groups_ordered_by_earliest_member():
    late = row(16, order_number="WEB-3")
    early = row(8)

    assert [g.members[0] for g in group_reservations([late, early])] == [early, late]


def test_find_group_locates_member():
    a = row(9, order_number="WEB-4")
    b = row(10, order_number="WEB-4")
    c = row(10)

    assert {m.id for m in find_group([a, b, c], b.id).members} == {a.id, b.id}
    with pytest.raises(LookupError):
        find_group([a, b, c], uuid4())
