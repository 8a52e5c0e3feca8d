"""Admin-driven appointment status transitions."""
from __future__ import annotations

from barbershop.extensions import db
from barbershop.models import AdminNotification, Appointment, BarberNotification, UserNotification


def test_admin_confirm_notifies_client_barber_and_other_admins(app, client, shop, auth_headers):
    response = client.put(
        "/admin/appointments/5/status",
        json={"status": "confirmed"},
        headers=auth_headers(1, "admin"),
    )

    assert response.status_code == 200
    assert response.get_json()["status"] == "confirmed"

    with app.app_context():
        client_notification = UserNotification.query.one()
        assert client_notification.user_id == shop.client_id
        assert client_notification.type == "appointment_confirmed_by_admin"

        barber_notification = BarberNotification.query.one()
        assert barber_notification.barber_id == shop.barber_id
        assert barber_notification.recipient_user_id == shop.barber_user_id
        assert barber_notification.type == "appointment_confirmed_by_admin_staff"
        assert "Ada Admin" in barber_notification.message
        assert "(Appt ID: 5)" in barber_notification.message

        admin_notifications = AdminNotification.query.all()
        assert sorted(n.admin_user_id for n in admin_notifications) == [2, 3]
        assert {n.type for n in admin_notifications} == {"appointment_confirmed_log"}
        assert {n.related_appointment_id for n in admin_notifications} == {5}


def test_admin_can_change_any_barbers_appointment(app, client, shop, auth_headers, make_appointment):
    make_appointment(6, barber_id=3)

    response = client.put(
        "/admin/appointments/6/status",
        json={"status": "canceled"},
        headers=auth_headers(2, "admin"),
    )

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(Appointment, 6).status == "canceled"
        assert UserNotification.query.count() == 0
        assert AdminNotification.query.count() == 0


def test_admin_missing_appointment_404(client, shop, auth_headers):
    response = client.put(
        "/admin/appointments/999/status",
        json={"status": "confirmed"},
        headers=auth_headers(1, "admin"),
    )

    assert response.status_code == 404
    assert response.get_json()["error"] == "appointment_not_found"


def test_admin_token_for_non_admin_user_404(app, client, shop, auth_headers):
    response = client.put(
        "/admin/appointments/5/status",
        json={"status": "confirmed"},
        headers=auth_headers(shop.client_id, "admin"),
    )

    assert response.status_code == 404
    assert response.get_json()["error"] == "admin_not_found"
    with app.app_context():
        assert db.session.get(Appointment, 5).status == "pending"


def test_admin_invalid_status_400(client, shop, auth_headers):
    response = client.put(
        "/admin/appointments/5/status",
        json={"status": "done"},
        headers=auth_headers(1, "admin"),
    )

    assert response.status_code == 400
