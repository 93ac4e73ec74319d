import logging
from datetime import date, time

from sqlalchemy.exc import OperationalError

from app.db.seed import seed_demo_data
from app.db.session import SessionLocal
from app.models import Notification, PackageTour, ReservationStatus, Tenant
from app.services.admission import AdmissionController, ReservationDetails, SlotRequest
from app.services.notifications import NotificationDispatcher
from app.utils.reservations import complete_past_reservations

TEN = time(10, 0)


def _reserve(db, tenant, activity, day, status=ReservationStatus.confirmed):
    return AdmissionController(db).reserve(
        tenant.id,
        SlotRequest(activity.id, day, TEN, 1),
        ReservationDetails(customer_name="Guest", customer_phone="1", status=status),
    )


def test_sweep_completes_only_past_confirmed(db, tenant, make_activity):
    activity = make_activity()
    past_confirmed = _reserve(db, tenant, activity, date(2024, 6, 10))
    past_pending = _reserve(db, tenant, activity, date(2024, 6, 10), ReservationStatus.pending)
    future = _reserve(db, tenant, activity, date(2024, 6, 20))

    count = complete_past_reservations(db, today=date(2024, 6, 15))

    assert count == 1
    db.expire_all()
    assert past_confirmed.status == ReservationStatus.completed
    assert past_pending.status == ReservationStatus.pending
    assert future.status == ReservationStatus.confirmed


def test_dispatcher_records_notifications(db, tenant, make_activity):
    activity = make_activity()
    reservation = _reserve(db, tenant, activity, date(2024, 6, 10))

    NotificationDispatcher(SessionLocal).dispatch("reservation_confirmed", [reservation.id])

    note = db.query(Notification).one()
    assert note.reservation_id == reservation.id
    assert note.type == "reservation_confirmed"
    assert "2024-06-10 at 10:00" in note.message


class _UnavailableSession:
    def query(self, *args):
        raise OperationalError("SELECT", {}, Exception("database is down"))

    def rollback(self):
        pass

    def close(self):
        pass


def test_dispatcher_logs_and_swallows_failures(caplog):
    with caplog.at_level(logging.ERROR, logger="app.services.notifications"):
        NotificationDispatcher(_UnavailableSession).dispatch("reservation_cancelled", ["x"])

    assert "Failed to record reservation_cancelled" in caplog.text


def _catalogue(activities):
    return [
        (a.name, sorted((e.weekdays, e.start_time, e.seats) for e in a.capacity_templates))
        for a in activities
    ]


def test_seed_is_deterministic(db):
    first_tenant, second_tenant, third_tenant = Tenant(name="A"), Tenant(name="B"), Tenant(name="C")
    db.add_all([first_tenant, second_tenant, third_tenant])
    db.commit()

    first = _catalogue(seed_demo_data(db, first_tenant, seed=7))
    second = _catalogue(seed_demo_data(db, second_tenant, seed=7))
    other = _catalogue(seed_demo_data(db, third_tenant, seed=8))

    assert first == second
    assert first != other
    assert db.query(PackageTour).filter(PackageTour.tenant_id == first_tenant.id).count() == 1
