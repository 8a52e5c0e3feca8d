"""Client booking: services, barbers, open slots and creating appointments."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from unittest.mock import patch

import pytest
from sqlalchemy.exc import OperationalError

from barbershop.extensions import db
from barbershop.models import AdminNotification, Appointment, BarberNotification, Service, UserNotification

BOOKING = {"serviceId": 1, "barberId": 2, "date": "2030-03-06", "timeSlot": "10:00 AM"}


def _counts(app) -> tuple[int, int, int, int]:
    with app.app_context():
        return (
            Appointment.query.count(),
            UserNotification.query.count(),
            BarberNotification.query.count(),
            AdminNotification.query.count(),
        )


@pytest.fixture
def client_headers(shop, auth_headers):
    return auth_headers(shop.client_id, "client")


def test_services_lists_only_active(app, client, shop, client_headers):
    with app.app_context():
        db.session.add(Service(id=2, name="Retired Perm", duration=90, price=Decimal("80.00"), is_active=False))
        db.session.commit()

    response = client.get("/booking/services", headers=client_headers)

    assert response.status_code == 200
    assert response.get_json() == [
        {"id": 1, "name": "Classic Haircut", "description": None, "duration": 30, "price": 50.0}
    ]


def test_barbers_sorted_by_name(client, shop, client_headers):
    response = client.get("/booking/barbers", headers=client_headers)
    data = response.get_json()

    assert response.status_code == 200
    assert [b["name"] for b in data] == ["Ivy Shears", "Tom Fade"]
    assert data[1]["role"] == "Barber"
    assert data[1]["rating"] == 0.0
    assert data[1]["experience"] == 0


def test_availability_skips_booked_slot(client, shop, client_headers):
    response = client.get(
        "/booking/availability?date=2030-03-05&serviceId=1&barberId=2", headers=client_headers
    )
    slots = response.get_json()

    assert response.status_code == 200
    assert slots[0] == "9:00 AM"
    assert slots[-1] == "4:30 PM"
    assert "2:30 PM" not in slots
    assert "2:00 PM" in slots and "3:00 PM" in slots
    assert len(slots) == 15


def test_availability_longer_service_blocks_overlapping_starts(app, client, shop, client_headers):
    with app.app_context():
        db.session.add(Service(id=3, name="Cut and Beard", duration=60, price=Decimal("70.00")))
        db.session.commit()

    slots = client.get(
        "/booking/availability?date=2030-03-05&serviceId=3&barberId=2", headers=client_headers
    ).get_json()

    assert "1:30 PM" in slots
    assert "2:00 PM" not in slots
    assert "3:00 PM" in slots
    assert slots[-1] == "4:00 PM"


def test_availability_ignores_canceled_appointments(app, client, shop, client_headers):
    with app.app_context():
        db.session.get(Appointment, 5).status = "canceled"
        db.session.commit()

    slots = client.get(
        "/booking/availability?date=2030-03-05&serviceId=1&barberId=2", headers=client_headers
    ).get_json()

    assert "2:30 PM" in slots


@pytest.mark.parametrize(
    "query, status",
    [
        ("?serviceId=1&barberId=2", 400),
        ("?date=05-03-2030&serviceId=1&barberId=2", 400),
        ("?date=2030-03-05&serviceId=abc&barberId=2", 400),
        ("?date=2030-03-05&serviceId=99&barberId=2", 404),
        ("?date=2030-03-05&serviceId=1&barberId=99", 404),
    ],
)
def test_availability_rejects_bad_queries(client, shop, client_headers, query, status):
    response = client.get(f"/booking/availability{query}", headers=client_headers)

    assert response.status_code == status


def test_create_booking_returns_pending_appointment(client, shop, client_headers):
    response = client.post("/booking/create", json={**BOOKING, "notes": "  Short back and sides "}, headers=client_headers)
    data = response.get_json()

    assert response.status_code == 201
    assert data["status"] == "pending"
    assert data["client_id"] == shop.client_id
    assert data["barber_id"] == shop.barber_id
    assert data["appointment_time"] == "2030-03-06T10:00:00"
    assert data["service_name"] == "Classic Haircut"
    assert data["barber_name"] == "Tom Fade"
    assert data["notes"] == "Short back and sides"


def test_create_booking_notifies_client_barber_and_admins(app, client, shop, client_headers):
    response = client.post("/booking/create", json=BOOKING, headers=client_headers)
    appointment_id = response.get_json()["id"]

    with app.app_context():
        client_notification = UserNotification.query.one()
        assert client_notification.user_id == shop.client_id
        assert client_notification.type == "booking_pending"
        assert "Mar 6, 2030 at 10:00 AM UTC" in client_notification.message

        barber_notification = BarberNotification.query.one()
        assert barber_notification.barber_id == shop.barber_id
        assert barber_notification.recipient_user_id == shop.barber_user_id
        assert barber_notification.type == "new_booking_barber"
        assert f"(Appt ID: {appointment_id})" in barber_notification.message

        admin_notifications = AdminNotification.query.all()
        assert sorted(n.admin_user_id for n in admin_notifications) == shop.admin_ids
        assert {n.type for n in admin_notifications} == {"new_appointment_booked"}
        assert {n.related_appointment_id for n in admin_notifications} == {appointment_id}
        assert {n.related_client_id for n in admin_notifications} == {shop.client_id}


def test_create_booking_accepts_24_hour_slot_and_iso_date(client, shop, client_headers):
    response = client.post(
        "/booking/create",
        json={**BOOKING, "date": "2030-03-06T00:00:00.000Z", "timeSlot": "15:30"},
        headers=client_headers,
    )

    assert response.status_code == 201
    assert response.get_json()["appointment_time"] == "2030-03-06T15:30:00"


@pytest.mark.parametrize(
    "body",
    [
        {"barberId": 2, "date": "2030-03-06", "timeSlot": "10:00 AM"},
        {**BOOKING, "timeSlot": "25:99"},
        {**BOOKING, "date": "next tuesday"},
        {**BOOKING, "barberId": "two"},
        [BOOKING],
    ],
)
def test_create_booking_rejects_malformed_input(app, client, shop, client_headers, body):
    response = client.post("/booking/create", json=body, headers=client_headers)

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_booking"
    assert _counts(app) == (1, 0, 0, 0)


@pytest.mark.parametrize(
    "override, code",
    [({"serviceId": 99}, "service_not_found"), ({"barberId": 99}, "barber_not_found")],
)
def test_create_booking_unknown_service_or_barber(app, client, shop, client_headers, override, code):
    response = client.post("/booking/create", json={**BOOKING, **override}, headers=client_headers)

    assert response.status_code == 404
    assert response.get_json()["error"] == code
    assert _counts(app) == (1, 0, 0, 0)


def test_create_booking_in_taken_slot_conflicts(app, client, shop, client_headers):
    response = client.post(
        "/booking/create",
        json={**BOOKING, "date": "2030-03-05", "timeSlot": "2:30 PM"},
        headers=client_headers,
    )

    assert response.status_code == 409
    assert response.get_json()["error"] == "slot_unavailable"
    assert _counts(app) == (1, 0, 0, 0)


def test_failed_notification_rolls_back_booking(app, client, shop, client_headers):
    datastore = app.extensions["datastore"]
    before = datastore.checked_out()
    boom = OperationalError("INSERT INTO admin_notifications", {}, Exception("disk I/O error"))

    with patch("barbershop.notifications.insert_admin_notification", side_effect=boom):
        response = client.post("/booking/create", json=BOOKING, headers=client_headers)

    assert response.status_code == 500
    assert response.get_json()["error"] == "database_error"
    assert _counts(app) == (1, 0, 0, 0)
    assert datastore.checked_out() == before


def test_booking_requires_client_role(client, shop, auth_headers):
    response = client.post("/booking/create", json=BOOKING, headers=auth_headers(shop.barber_user_id, "barber"))

    assert response.status_code == 403


def test_booked_time_is_stored_in_utc(app, client, shop, client_headers):
    app.config["SHOP_TIMEZONE"] = "America/New_York"

    response = client.post("/booking/create", json=BOOKING, headers=client_headers)

    assert response.status_code == 201
    with app.app_context():
        stored = db.session.get(Appointment, response.get_json()["id"]).appointment_time
    assert stored == datetime(2030, 3, 6, 15, 0)
