from datetime import date, time, timedelta

import pytest

from app.core.exceptions import GroupPartialFailure, Overbooked
from app.models import PackageTour, PackageTourActivity, Reservation, ReservationStatus
from app.services.admission import AdmissionController, ReservationDetails, SlotRequest
from app.services.availability import availability
from app.services.packages import reserve_package

MONDAY = date(2024, 6, 10)
TEN = time(10, 0)


@pytest.fixture
def two_tight_activities(make_activity):
    first = make_activity("ATV Safari", entries=(("0,1", TEN, 1),))
    second = make_activity("Paragliding", entries=(("0,1", TEN, 1),))
    return first, second


def remaining(db, activity, day=MONDAY):
    return availability(db, activity.id, day)[0].remaining


def test_group_failure_rolls_back_every_member(db, tenant, two_tight_activities):
    first, second = two_tight_activities
    controller = AdmissionController(db)

    with pytest.raises(GroupPartialFailure) as exc_info:
        controller.reserve_group(
            tenant.id,
            [SlotRequest(first.id, MONDAY, TEN, 1), SlotRequest(second.id, MONDAY, TEN, 2)],
            ReservationDetails(customer_name="Mehmet Kaya", customer_phone="05321112233", order_number="A-100"),
        )

    error = exc_info.value
    assert error.member["activity_id"] == str(second.id)
    assert error.member["quantity"] == 2
    assert isinstance(error.cause, Overbooked)
    assert error.to_dict()["cause"]["error"] == "overbooked"

    assert db.query(Reservation).count() == 0
    assert remaining(db, first) == 1
    assert remaining(db, second) == 1


def test_group_success_books_all_members_under_one_order(db, tenant, two_tight_activities):
    first, second = two_tight_activities

    reservations = AdmissionController(db).reserve_group(
        tenant.id,
        [SlotRequest(second.id, MONDAY, TEN, 1), SlotRequest(first.id, MONDAY, TEN, 1)],
        ReservationDetails(customer_name="Mehmet Kaya", customer_phone="05321112233", order_number="A-101"),
    )

    # returned in request order
    assert [r.activity_id for r in reservations] == [second.id, first.id]
    assert {r.order_number for r in reservations} == {"A-101"}
    assert remaining(db, first) == 0
    assert remaining(db, second) == 0


def test_group_with_missing_slot_names_failing_member(db, tenant, two_tight_activities):
    first, second = two_tight_activities

    with pytest.raises(GroupPartialFailure) as exc_info:
        AdmissionController(db).reserve_group(
            tenant.id,
            [SlotRequest(first.id, MONDAY, TEN, 1), SlotRequest(second.id, MONDAY, time(18, 0), 1)],
            ReservationDetails(customer_name="Mehmet Kaya", customer_phone="05321112233"),
        )

    assert exc_info.value.member["time"] == "18:00"
    assert exc_info.value.to_dict()["cause"]["error"] == "slot_not_found"
    assert db.query(Reservation).count() == 0


def test_single_item_group_raises_plain_error(db, tenant, two_tight_activities):
    first, _ = two_tight_activities

    with pytest.raises(Overbooked):
        AdmissionController(db).reserve_group(
            tenant.id,
            [SlotRequest(first.id, MONDAY, TEN, 2)],
            ReservationDetails(customer_name="Mehmet Kaya", customer_phone="05321112233"),
        )


def _package(db, tenant, first, second):
    tour = PackageTour(
        tenant_id=tenant.id,
        name="Adventure Weekend",
        members=[
            PackageTourActivity(activity_id=first.id, day_offset=0, default_time=TEN, sort_order=0),
            PackageTourActivity(activity_id=second.id, day_offset=1, default_time=TEN, sort_order=1),
        ],
    )
    db.add(tour)
    db.commit()
    return tour


def test_package_reservation_spans_day_offsets(db, tenant, two_tight_activities):
    first, second = two_tight_activities
    tour = _package(db, tenant, first, second)

    reservations = reserve_package(
        db, tenant.id, tour.id, start_date=MONDAY, quantity=1,
        customer_name="Elif Demir", customer_phone="05550001122",
    )

    assert [(r.activity_id, r.slot_date) for r in reservations] == [
        (first.id, MONDAY),
        (second.id, MONDAY + timedelta(days=1)),
    ]
    assert all(r.package_tour_id == tour.id and r.source == "package" for r in reservations)


def test_package_reservation_is_all_or_nothing(db, tenant, two_tight_activities):
    first, second = two_tight_activities
    tour = _package(db, tenant, first, second)

    with pytest.raises(GroupPartialFailure):
        reserve_package(
            db, tenant.id, tour.id, start_date=MONDAY, quantity=2,
            customer_name="Elif Demir", customer_phone="05550001122",
        )

    assert db.query(Reservation).count() == 0
    assert remaining(db, first) == 1
    assert remaining(db, second, MONDAY + timedelta(days=1)) == 1


def test_cancel_group_covers_every_day_of_an_ordered_package(db, tenant, two_tight_activities):
    first, second = two_tight_activities
    tour = _package(db, tenant, first, second)
    reservations = reserve_package(
        db, tenant.id, tour.id, start_date=MONDAY, quantity=1,
        customer_name="Elif Demir", customer_phone="05550001122", order_number="WEB-9",
    )

    members, changed = AdmissionController(db).cancel_group(tenant.id, reservations[0].id)

    assert sorted(changed, key=str) == sorted((r.id for r in reservations), key=str)
    assert {m.status for m in members} == {ReservationStatus.cancelled}
    assert remaining(db, first) == 1
    assert remaining(db, second, MONDAY + timedelta(days=1)) == 1


def test_cancel_group_from_second_day_of_package_without_order(db, tenant, two_tight_activities):
    first, second = two_tight_activities
    tour = _package(db, tenant, first, second)
    reservations = reserve_package(
        db, tenant.id, tour.id, start_date=MONDAY, quantity=1,
        customer_name="Elif Demir", customer_phone="0555 000 11 22",
    )

    members, changed = AdmissionController(db).cancel_group(tenant.id, reservations[1].id)

    assert len(changed) == 2
    assert {m.slot_date for m in members} == {MONDAY, MONDAY + timedelta(days=1)}
    assert db.query(Reservation).filter(Reservation.status == ReservationStatus.cancelled).count() == 2
