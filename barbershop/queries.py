"""Read views backing the dashboards.

Each function returns plain dicts ready for ``jsonify``: names are joined in
instead of foreign keys, and numeric columns are coerced right after the read.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.orm import aliased

from .extensions import db
from .models import Appointment, Barber, Review, Service, User, isoformat
from .normalize import normalize_specialties, to_float, to_int

INACTIVE_STATUSES = ("canceled", "completed", "no-show")


def _now() -> datetime:
    # appointment_time is stored as naive UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _client_name():
    return (User.first_name + " " + User.last_name).label("client_name")


def _barber_schedule_rows(*criteria):
    stmt = (
        select(
            Appointment.id,
            _client_name(),
            User.phone.label("client_phone"),
            Service.name.label("service_name"),
            Service.price,
            Appointment.appointment_time,
            Appointment.status,
        )
        .select_from(Appointment)
        .join(User, User.id == Appointment.client_id)
        .join(Service, Service.id == Appointment.service_id)
        .where(*criteria)
        .order_by(Appointment.appointment_time.asc())
    )
    return [
        {
            "id": row["id"],
            "client_name": row["client_name"],
            "client_phone": row["client_phone"],
            "service_name": row["service_name"],
            "price": to_float(row["price"]),
            "appointment_time": isoformat(row["appointment_time"]),
            "status": row["status"],
        }
        for row in db.session.execute(stmt).mappings()
    ]


def barber_profile(user_id: int) -> dict[str, object] | None:
    ratings = (
        select(
            Review.barber_id,
            func.round(func.avg(Review.rating), 1).label("rating"),
            func.count(Review.id).label("total_reviews"),
        )
        .group_by(Review.barber_id)
        .subquery()
    )
    stmt = (
        select(
            User.first_name,
            User.last_name,
            User.email.label("user_email"),
            User.phone.label("user_phone"),
            Barber.id.label("barber_table_id"),
            Barber.bio,
            Barber.address,
            Barber.working_hours,
            Barber.instagram,
            Barber.facebook,
            Barber.specialties,
            Barber.experience,
            ratings.c.rating,
            ratings.c.total_reviews,
        )
        .select_from(User)
        .join(Barber, Barber.user_id == User.id)
        .outerjoin(ratings, ratings.c.barber_id == Barber.id)
        .where(User.id == user_id)
    )
    row = db.session.execute(stmt).mappings().first()
    if row is None:
        return None

    profile = dict(row)
    profile["specialties"] = normalize_specialties(row["specialties"])
    profile["rating"] = to_float(row["rating"])
    profile["total_reviews"] = to_int(row["total_reviews"])
    return profile


def barber_schedule(barber_id: int, day: date) -> list[dict[str, object]]:
    start = datetime.combine(day, time.min)
    return _barber_schedule_rows(
        Appointment.barber_id == barber_id,
        Appointment.appointment_time >= start,
        Appointment.appointment_time < start + timedelta(days=1),
    )


def barber_appointments(barber_id: int, upcoming: bool | None = None) -> list[dict[str, object]]:
    criteria = [Appointment.barber_id == barber_id]
    if upcoming is True:
        criteria.append(Appointment.appointment_time >= _now())
    elif upcoming is False:
        criteria.append(Appointment.appointment_time < _now())
    return _barber_schedule_rows(*criteria)


def barber_stats(barber_id: int, start: datetime, end: datetime) -> dict[str, object]:
    stmt = (
        select(func.count(Appointment.id), func.sum(Service.price))
        .select_from(Appointment)
        .join(Service, Service.id == Appointment.service_id)
        .where(
            Appointment.barber_id == barber_id,
            Appointment.status == "completed",
            Appointment.appointment_time.between(start, end),
        )
    )
    completed, revenue = db.session.execute(stmt).one()
    return {"completedAppointments": to_int(completed), "totalRevenue": to_float(revenue)}


def client_appointments(client_id: int) -> list[dict[str, object]]:
    barber_user = aliased(User)
    stmt = (
        select(
            Appointment.id,
            Appointment.appointment_time,
            Appointment.status,
            Appointment.notes,
            Service.name.label("service_name"),
            Service.price,
            (barber_user.first_name + " " + barber_user.last_name).label("barber_name"),
        )
        .select_from(Appointment)
        .join(Service, Service.id == Appointment.service_id)
        .join(Barber, Barber.id == Appointment.barber_id)
        .join(barber_user, barber_user.id == Barber.user_id)
        .where(Appointment.client_id == client_id)
        .order_by(Appointment.appointment_time.desc())
    )
    return [
        {
            "id": row["id"],
            "appointment_time": isoformat(row["appointment_time"]),
            "status": row["status"],
            "notes": row["notes"],
            "service_name": row["service_name"],
            "price": to_float(row["price"]),
            "barber_name": row["barber_name"],
        }
        for row in db.session.execute(stmt).mappings()
    ]


def admin_appointments() -> list[dict[str, object]]:
    client = aliased(User)
    barber_user = aliased(User)
    stmt = (
        select(
            Appointment.id,
            Appointment.appointment_time,
            Appointment.status,
            Appointment.client_id,
            client.first_name.label("client_first_name"),
            client.last_name.label("client_last_name"),
            Appointment.barber_id,
            barber_user.first_name.label("barber_first_name"),
            barber_user.last_name.label("barber_last_name"),
            Appointment.service_id,
            Service.name.label("service_name"),
            Service.price.label("service_price"),
            Appointment.created_at,
        )
        .select_from(Appointment)
        .join(client, client.id == Appointment.client_id)
        .join(Barber, Barber.id == Appointment.barber_id)
        .join(barber_user, barber_user.id == Barber.user_id)
        .join(Service, Service.id == Appointment.service_id)
        .order_by(Appointment.appointment_time.desc())
    )
    appointments = []
    for row in db.session.execute(stmt).mappings():
        item = dict(row)
        item["appointment_time"] = isoformat(row["appointment_time"])
        item["created_at"] = isoformat(row["created_at"])
        item["service_price"] = to_float(row["service_price"])
        appointments.append(item)
    return appointments


def admin_stats() -> dict[str, object]:
    now = _now()
    month_start = datetime(now.year, now.month, 1)
    next_month = datetime(now.year + 1, 1, 1) if now.month == 12 else datetime(now.year, now.month + 1, 1)

    users = db.session.scalar(select(func.count(User.id)))
    active = db.session.scalar(
        select(func.count(Appointment.id)).where(Appointment.status.not_in(INACTIVE_STATUSES))
    )
    services = db.session.scalar(select(func.count(Service.id)).where(Service.is_active.is_(True)))
    revenue = db.session.scalar(
        select(func.sum(Service.price))
        .select_from(Appointment)
        .join(Service, Service.id == Appointment.service_id)
        .where(
            Appointment.status == "completed",
            Appointment.appointment_time >= month_start,
            Appointment.appointment_time < next_month,
        )
    )
    return {
        "users": to_int(users),
        "activeAppointments": to_int(active),
        "services": to_int(services),
        "revenue": to_float(revenue),
    }


def booking_services() -> list[dict[str, object]]:
    services = Service.query.filter_by(is_active=True).order_by(Service.name).all()
    return [
        {
            "id": service.id,
            "name": service.name,
            "description": service.description,
            "duration": service.duration,
            "price": to_float(service.price),
        }
        for service in services
    ]


def booking_barbers() -> list[dict[str, object]]:
    """Every barber a client can pick, with the average rating rounded to 1 dp."""
    ratings = (
        select(Review.barber_id, func.round(func.avg(Review.rating), 1).label("rating"))
        .group_by(Review.barber_id)
        .subquery()
    )
    stmt = (
        select(
            Barber.id,
            User.first_name,
            User.last_name,
            Barber.job_title,
            Barber.profile_image_url,
            Barber.experience,
            ratings.c.rating,
        )
        .select_from(Barber)
        .join(User, User.id == Barber.user_id)
        .outerjoin(ratings, ratings.c.barber_id == Barber.id)
        .order_by(User.first_name, User.last_name)
    )
    return [
        {
            "id": row["id"],
            "name": f"{row['first_name']} {row['last_name']}",
            "role": row["job_title"] or "Barber",
            "rating": to_float(row["rating"]),
            "experience": to_int(row["experience"]),
            "image": row["profile_image_url"],
        }
        for row in db.session.execute(stmt).mappings()
    ]
