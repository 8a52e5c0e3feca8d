"""Shared fixtures: an app bound to a throwaway SQLite file and a seeded shop."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from types import SimpleNamespace

import pytest

from barbershop import create_app
from barbershop.auth import build_token
from barbershop.extensions import db
from barbershop.models import Appointment, Barber, Service, User

APPOINTMENT_TIME = datetime(2030, 3, 5, 14, 30)


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SECRET_KEY": "test-secret",
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'barbershop.db'}",
    })
    with app.app_context():
        db.create_all()

    yield app

    with app.app_context():
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers(app):
    def _headers(user_id: int, role: str) -> dict[str, str]:
        with app.app_context():
            return {"Authorization": f"Bearer {build_token(user_id, role)}"}

    return _headers


@pytest.fixture
def shop(app):
    """Three admins, two barbers, one client and appointment 5 owned by barber 2."""
    with app.app_context():
        db.session.add_all([
            User(id=1, first_name="Ada", last_name="Admin", email="ada@example.com", role="admin"),
            User(id=2, first_name="Bob", last_name="Admin", email="bob@example.com", role="admin"),
            User(id=3, first_name="Cy", last_name="Admin", email="cy@example.com", role="admin"),
            User(id=10, first_name="Tom", last_name="Fade", email="tom@example.com", role="barber",
                 phone="555-0100"),
            User(id=11, first_name="Ivy", last_name="Shears", email="ivy@example.com", role="barber"),
            User(id=12, first_name="No", last_name="Profile", email="noprofile@example.com", role="barber"),
            User(id=20, first_name="Carl", last_name="Client", email="carl@example.com", role="client",
                 phone="555-0200"),
        ])
        db.session.flush()
        db.session.add_all([
            Barber(id=2, user_id=10, specialties=["Fade", "Beard"], working_hours="09:00-17:00"),
            Barber(id=3, user_id=11, specialties=[]),
            Service(id=1, name="Classic Haircut", duration=30, price=Decimal("50.00")),
        ])
        db.session.flush()
        db.session.add(
            Appointment(id=5, client_id=20, barber_id=2, service_id=1,
                        appointment_time=APPOINTMENT_TIME, status="pending")
        )
        db.session.commit()

    return SimpleNamespace(
        appointment_id=5,
        barber_id=2,
        barber_user_id=10,
        other_barber_user_id=11,
        unprofiled_barber_user_id=12,
        client_id=20,
        admin_ids=[1, 2, 3],
        appointment_time=APPOINTMENT_TIME,
    )


@pytest.fixture
def make_appointment(app, shop):
    def _make(appointment_id: int, *, barber_id: int = 2, status: str = "pending",
              when: datetime = APPOINTMENT_TIME, client_id: int = 20) -> int:
        with app.app_context():
            db.session.add(
                Appointment(id=appointment_id, client_id=client_id, barber_id=barber_id,
                            service_id=1, appointment_time=when, status=status)
            )
            db.session.commit()
        return appointment_id

    return _make
