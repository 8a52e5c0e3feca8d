"""Notification inboxes for clients and barbers, plus the barber portfolio."""
from __future__ import annotations

import pytest

from barbershop.extensions import db
from barbershop.models import BarberNotification, PortfolioImage, UserNotification


@pytest.fixture
def inbox(app, shop):
    with app.app_context():
        db.session.add_all([
            UserNotification(id=1, user_id=20, type="appointment_confirmed", title="Confirmed",
                             message="See you soon", link="/user-dashboard/appointments"),
            UserNotification(id=2, user_id=20, type="appointment_confirmed", title="Confirmed",
                             message="Another one"),
            UserNotification(id=3, user_id=1, type="other", title="Not yours", message="..."),
            BarberNotification(id=1, barber_id=2, recipient_user_id=10, type="new_booking",
                               title="New booking", message="Carl booked a cut"),
            BarberNotification(id=2, barber_id=3, recipient_user_id=11, type="new_booking",
                               title="New booking", message="For Ivy"),
        ])
        db.session.commit()
    return shop


def test_client_lists_only_own_notifications(client, inbox, auth_headers):
    response = client.get("/user/notifications", headers=auth_headers(inbox.client_id, "client"))
    data = response.get_json()

    assert response.status_code == 200
    assert sorted(n["id"] for n in data) == [1, 2]
    assert all(n["is_read"] is False for n in data)


def test_client_marks_one_read(app, client, inbox, auth_headers):
    response = client.put("/user/notifications/1/read", headers=auth_headers(inbox.client_id, "client"))

    assert response.status_code == 200
    assert response.get_json()["notification"]["is_read"] is True
    with app.app_context():
        assert db.session.get(UserNotification, 1).is_read is True
        assert db.session.get(UserNotification, 2).is_read is False


def test_client_cannot_touch_someone_elses_notification(app, client, inbox, auth_headers):
    headers = auth_headers(inbox.client_id, "client")

    assert client.put("/user/notifications/3/read", headers=headers).status_code == 404
    assert client.delete("/user/notifications/3", headers=headers).status_code == 404
    with app.app_context():
        assert db.session.get(UserNotification, 3) is not None


def test_client_marks_all_read(app, client, inbox, auth_headers):
    response = client.put("/user/notifications/read-all", headers=auth_headers(inbox.client_id, "client"))

    assert response.status_code == 200
    assert response.get_json()["updated_count"] == 2
    with app.app_context():
        assert UserNotification.query.filter_by(is_read=False).count() == 1


def test_client_deletes_notification(app, client, inbox, auth_headers):
    response = client.delete("/user/notifications/2", headers=auth_headers(inbox.client_id, "client"))

    assert response.status_code == 200
    with app.app_context():
        assert db.session.get(UserNotification, 2) is None


def test_barber_inbox_is_scoped_to_profile(client, inbox, auth_headers):
    response = client.get("/barber/notifications", headers=auth_headers(inbox.barber_user_id, "barber"))

    assert response.status_code == 200
    assert [n["id"] for n in response.get_json()] == [1]


def test_barber_notification_owned_by_other_barber_404(client, inbox, auth_headers):
    response = client.put("/barber/notifications/2/read", headers=auth_headers(inbox.barber_user_id, "barber"))

    assert response.status_code == 404
    assert response.get_json()["error"] == "notification_not_found"


def test_barber_read_all_and_delete(app, client, inbox, auth_headers):
    headers = auth_headers(inbox.barber_user_id, "barber")

    read_all = client.put("/barber/notifications/read-all", headers=headers)
    deleted = client.delete("/barber/notifications/1", headers=headers)

    assert read_all.get_json()["updated_count"] == 1
    assert deleted.status_code == 200
    with app.app_context():
        assert db.session.get(BarberNotification, 1) is None
        assert db.session.get(BarberNotification, 2).is_read is False


def test_portfolio_add_list_delete(app, client, shop, auth_headers):
    headers = auth_headers(shop.barber_user_id, "barber")

    created = client.post(
        "/barber/portfolio",
        json={"image_url": " https://cdn.example.com/fade.jpg ", "title": "Skin fade"},
        headers=headers,
    )
    assert created.status_code == 201
    image = created.get_json()
    assert image["image_url"] == "https://cdn.example.com/fade.jpg"
    assert image["barber_id"] == shop.barber_id

    listed = client.get("/barber/portfolio", headers=headers).get_json()
    assert [item["id"] for item in listed] == [image["id"]]

    other = client.delete(f"/barber/portfolio/{image['id']}", headers=auth_headers(shop.other_barber_user_id, "barber"))
    assert other.status_code == 404

    removed = client.delete(f"/barber/portfolio/{image['id']}", headers=headers)
    assert removed.status_code == 200
    with app.app_context():
        assert PortfolioImage.query.count() == 0


def test_portfolio_requires_image_url(client, shop, auth_headers):
    response = client.post("/barber/portfolio", json={"title": "No image"}, headers=auth_headers(shop.barber_user_id, "barber"))

    assert response.status_code == 400


@pytest.mark.parametrize("body", [{"image_url": 42}, ["https://cdn.example.com/a.jpg"], "x"])
def test_portfolio_rejects_malformed_body(client, shop, auth_headers, body):
    response = client.post("/barber/portfolio", json=body, headers=auth_headers(shop.barber_user_id, "barber"))

    assert response.status_code == 400
