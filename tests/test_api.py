from datetime import time
from uuid import uuid4

import pytest

from app.models import Notification

MONDAY = "2024-06-10"


@pytest.fixture
def city_tour(make_activity):
    return make_activity("City Tour", entries=(("0", time(10, 0), 20),))


def reservation_body(activity, quantity=2, **extra):
    body = {
        "activity_id": str(activity.id),
        "date": MONDAY,
        "time": "10:00:00",
        "quantity": quantity,
        "customer_name": "Ayse Yilmaz",
        "customer_phone": "05321112233",
    }
    body.update(extra)
    return body


def test_missing_or_unknown_tenant(client, city_tour):
    assert client.get(f"/api/v1/activities/{city_tour.id}/availability", params={"date": MONDAY}).status_code == 422

    response = client.get(
        f"/api/v1/activities/{city_tour.id}/availability",
        params={"date": MONDAY},
        headers={"X-Tenant-ID": str(uuid4())},
    )
    assert response.status_code == 404


def test_availability_endpoint(client, headers, city_tour):
    response = client.get(f"/api/v1/activities/{city_tour.id}/availability", params={"date": MONDAY}, headers=headers)

    assert response.status_code == 200
    data = response.json()
    assert data["is_closed"] is False
    assert data["slots"] == [
        {"time": "10:00:00", "total_seats": 20, "booked_seats": 0, "remaining": 20, "is_virtual": True}
    ]

    closed = client.get(
        f"/api/v1/activities/{city_tour.id}/availability", params={"date": "2024-06-11"}, headers=headers
    ).json()
    assert closed["is_closed"] is True
    assert closed["slots"] == []


def test_reserve_then_overbooked_response(client, headers, city_tour, db):
    created = client.post("/api/v1/reservations/", json=reservation_body(city_tour, 18), headers=headers)
    assert created.status_code == 201
    assert created.json()["status"] == "pending"

    rejected = client.post("/api/v1/reservations/", json=reservation_body(city_tour, 3), headers=headers)
    assert rejected.status_code == 409
    assert rejected.json() == {
        "error": "overbooked",
        "message": rejected.json()["message"],
        "available": 2,
        "requested": 3,
    }

    # background task ran after the response
    assert db.query(Notification).count() == 1


def test_reserve_unknown_slot_is_404(client, headers, city_tour):
    response = client.post(
        "/api/v1/reservations/", json=reservation_body(city_tour, time="11:00:00"), headers=headers
    )

    assert response.status_code == 404
    assert response.json()["error"] == "slot_not_found"


def test_create_with_completed_status_is_rejected(client, headers, city_tour):
    response = client.post(
        "/api/v1/reservations/", json=reservation_body(city_tour, status="completed"), headers=headers
    )
    assert response.status_code == 422


def test_cancel_quantity_and_status_endpoints(client, headers, city_tour):
    reservation_id = client.post(
        "/api/v1/reservations/", json=reservation_body(city_tour, 4), headers=headers
    ).json()["id"]

    bumped = client.post(f"/api/v1/reservations/{reservation_id}/quantity", json={"quantity": 6}, headers=headers)
    assert bumped.json()["quantity"] == 6

    confirmed = client.post(
        f"/api/v1/reservations/{reservation_id}/status", json={"status": "confirmed"}, headers=headers
    )
    assert confirmed.json()["status"] == "confirmed"

    back = client.post(f"/api/v1/reservations/{reservation_id}/status", json={"status": "pending"}, headers=headers)
    assert back.status_code == 409
    assert back.json()["error"] == "invalid_status_transition"

    for _ in range(2):
        cancelled = client.post(f"/api/v1/reservations/{reservation_id}/cancel", headers=headers)
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"

    slot = client.get(
        f"/api/v1/activities/{city_tour.id}/availability", params={"date": MONDAY}, headers=headers
    ).json()["slots"][0]
    assert slot["remaining"] == 20


def test_unknown_reservation_is_404(client, headers):
    response = client.post(f"/api/v1/reservations/{uuid4()}/cancel", headers=headers)

    assert response.status_code == 404
    assert response.json()["error"] == "reservation_not_found"


def test_group_booking_grouped_view_and_group_cancel(client, headers, make_activity):
    safari = make_activity("ATV Safari", entries=(("0", time(9, 0), 10),))
    boat = make_activity("Boat Tour", entries=(("0", time(13, 0), 10),))
    body = {
        "customer_name": "Mehmet Kaya",
        "customer_phone": "05550001122",
        "order_number": "WEB-500",
        "items": [
            {"activity_id": str(safari.id), "date": MONDAY, "time": "09:00:00", "quantity": 2},
            {"activity_id": str(boat.id), "date": MONDAY, "time": "13:00:00", "quantity": 2},
        ],
    }
    created = client.post("/api/v1/reservations/group", json=body, headers=headers)
    assert created.status_code == 201
    assert len(created.json()) == 2

    single = client.post(
        "/api/v1/reservations/",
        json={**reservation_body(boat, 1), "time": "13:00:00"},
        headers=headers,
    )
    assert single.status_code == 201

    grouped = client.get("/api/v1/reservations/grouped", params={"date": MONDAY}, headers=headers).json()
    assert [g["group_type"] for g in grouped["groups"]] == ["order", "single"]
    order = grouped["groups"][0]
    assert order["is_group"] is True
    assert order["total_quantity"] == 4
    assert [m["activity_name"] for m in order["members"]] == ["ATV Safari", "Boat Tour"]

    anchor = created.json()[1]["id"]
    cancelled = client.post(f"/api/v1/reservations/{anchor}/cancel-group", headers=headers)
    assert cancelled.status_code == 200
    assert len(cancelled.json()["cancelled"]) == 2
    assert {m["status"] for m in cancelled.json()["members"]} == {"cancelled"}

    remaining = client.get(
        f"/api/v1/activities/{boat.id}/availability", params={"date": MONDAY}, headers=headers
    ).json()["slots"][0]["remaining"]
    assert remaining == 9


def test_group_partial_failure_response(client, headers, make_activity):
    first = make_activity("ATV Safari", entries=(("0", time(10, 0), 1),))
    second = make_activity("Paragliding", entries=(("0", time(10, 0), 1),))
    body = {
        "customer_name": "Mehmet Kaya",
        "customer_phone": "05550001122",
        "items": [
            {"activity_id": str(first.id), "date": MONDAY, "time": "10:00:00", "quantity": 1},
            {"activity_id": str(second.id), "date": MONDAY, "time": "10:00:00", "quantity": 2},
        ],
    }

    response = client.post("/api/v1/reservations/group", json=body, headers=headers)

    assert response.status_code == 409
    data = response.json()
    assert data["error"] == "group_partial_failure"
    assert data["member"]["activity_id"] == str(second.id)
    assert data["cause"]["error"] == "overbooked"
    assert client.get("/api/v1/reservations/", headers=headers).json()["total"] == 0


def test_list_reservations_paginates(client, headers, city_tour):
    for _ in range(3):
        client.post("/api/v1/reservations/", json=reservation_body(city_tour, 1), headers=headers)

    page = client.get("/api/v1/reservations/", params={"limit": 2, "page": 2}, headers=headers).json()

    assert page["total"] == 3
    assert page["total_pages"] == 2
    assert len(page["data"]) == 1


def test_monthly_stats_endpoint(client, headers, city_tour):
    client.post("/api/v1/reservations/", json=reservation_body(city_tour, 5), headers=headers)

    data = client.get("/api/v1/stats/monthly", params={"month": 6, "year": 2024}, headers=headers).json()

    assert data["days"][MONDAY] == {"total_slots": 20, "booked_slots": 5, "occupancy": 25.0}
    assert data["days"]["2024-06-11"]["occupancy"] is None

    bad = client.get("/api/v1/stats/monthly", params={"month": 13, "year": 2024}, headers=headers)
    assert bad.status_code == 422


def test_admin_activity_template_and_override_flow(client, headers):
    activity = client.post(
        "/api/v1/admin/activities/", json={"name": "Jeep Safari", "name_aliases": ["jeep tour"]}, headers=headers
    ).json()
    activity_id = activity["id"]

    entry = client.post(
        f"/api/v1/admin/activities/{activity_id}/templates",
        json={"weekdays": [0, 2], "start_time": "09:30:00", "seats": 12},
        headers=headers,
    )
    assert entry.status_code == 201
    assert entry.json()["weekdays"] == [0, 2]

    override = client.put(
        f"/api/v1/admin/activities/{activity_id}/overrides",
        json={"slot_date": MONDAY, "start_time": "09:30:00", "seats": 3},
        headers=headers,
    )
    assert override.status_code == 200
    assert override.json()["source"] == "operator"

    client.post(
        "/api/v1/reservations/",
        json={
            "activity_id": activity_id, "date": MONDAY, "time": "09:30:00", "quantity": 3,
            "customer_name": "Guest", "customer_phone": "1",
        },
        headers=headers,
    )
    too_low = client.put(
        f"/api/v1/admin/activities/{activity_id}/overrides",
        json={"slot_date": MONDAY, "start_time": "09:30:00", "seats": 2},
        headers=headers,
    )
    assert too_low.status_code == 409
    assert too_low.json()["error"] == "invalid_override"

    reverted = client.delete(
        f"/api/v1/admin/activities/{activity_id}/overrides",
        params={"slot_date": MONDAY, "start_time": "09:30:00"},
        headers=headers,
    )
    assert reverted.status_code == 204
    slot = client.get(
        f"/api/v1/activities/{activity_id}/availability", params={"date": MONDAY}, headers=headers
    ).json()["slots"][0]
    assert (slot["total_seats"], slot["booked_seats"]) == (12, 3)


def test_admin_license_quota(client, headers, city_tour):
    assert client.get("/api/v1/admin/license/", headers=headers).status_code == 404

    client.put("/api/v1/admin/license/", json={"max_reservations_per_day": 1}, headers=headers)
    client.post("/api/v1/reservations/", json=reservation_body(city_tour, 1), headers=headers)
    blocked = client.post("/api/v1/reservations/", json=reservation_body(city_tour, 1), headers=headers)

    assert blocked.status_code == 402
    assert blocked.json()["error"] == "license_limit_exceeded"


def test_package_tour_admin_and_reserve(client, headers, make_activity):
    first = make_activity("ATV Safari", entries=(("0,1", time(9, 0), 6),))
    second = make_activity("Paragliding", entries=(("0,1", time(11, 0), 6),))
    tour = client.post(
        "/api/v1/admin/package-tours/",
        json={
            "name": "Adventure Weekend",
            "members": [
                {"activity_id": str(first.id), "day_offset": 0, "default_time": "09:00:00"},
                {"activity_id": str(second.id), "day_offset": 1, "default_time": "11:00:00"},
            ],
        },
        headers=headers,
    )
    assert tour.status_code == 201
    tour_id = tour.json()["id"]

    booked = client.post(
        f"/api/v1/package-tours/{tour_id}/reserve",
        json={"start_date": MONDAY, "quantity": 2, "customer_name": "Elif Demir", "customer_phone": "0555"},
        headers=headers,
    )
    assert booked.status_code == 201
    assert [r["slot_date"] for r in booked.json()] == [MONDAY, "2024-06-11"]
    assert {r["package_tour_id"] for r in booked.json()} == {tour_id}

    missing = client.post(
        f"/api/v1/package-tours/{uuid4()}/reserve",
        json={"start_date": MONDAY, "quantity": 1, "customer_name": "X", "customer_phone": "1"},
        headers=headers,
    )
    assert missing.status_code == 404
    assert missing.json()["error"] == "package_tour_not_found"


def test_storefront_webhook_is_idempotent(client, tenant, city_tour):
    order = {
        "id": 9001,
        "billing": {"first_name": "Can", "last_name": "Ozturk", "phone": "0532"},
        "line_items": [{"name": "City Tour Old Town", "quantity": 2}],
        "meta_data": [{"key": "booking_date", "value": MONDAY}, {"key": "booking_time", "value": "10:00"}],
    }

    first = client.post(f"/api/v1/webhooks/storefront/{tenant.id}", json=order)
    second = client.post(f"/api/v1/webhooks/storefront/{tenant.id}", json=order)

    assert first.status_code == 200
    assert first.json()["duplicate"] is False
    assert first.json()["reservations"][0]["status"] == "confirmed"
    assert second.json()["duplicate"] is True
    assert second.json()["reservations"][0]["id"] == first.json()["reservations"][0]["id"]
