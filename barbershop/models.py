"""Database models for the barbershop backend."""
from __future__ import annotations

from datetime import datetime, timezone

from .extensions import db

APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "canceled", "no-show")
USER_ROLES = ("client", "barber", "admin")


def utc_now() -> datetime:
    """Return a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False)
    phone = db.Column(db.String(30))
    role = db.Column(
        db.Enum(*USER_ROLES, name="user_role", native_enum=False, validate_strings=True),
        nullable=False,
        server_default="client",
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    auth_account = db.relationship("AuthAccount", back_populates="user", uselist=False)
    barber = db.relationship("Barber", back_populates="user", uselist=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def to_dict_basic(self) -> dict[str, object]:
        return {
            "id": self.id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "role": self.role,
            "created_at": isoformat(self.created_at),
        }


class AuthAccount(db.Model):
    __tablename__ = "auth_accounts"

    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), primary_key=True)
    password_hash = db.Column(db.String(255), nullable=False)
    last_login_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)
    updated_at = db.Column(db.DateTime, nullable=False, default=utc_now, onupdate=utc_now)

    user = db.relationship("User", back_populates="auth_account")


class Barber(db.Model):
    """Profile extension of a user with the barber role."""

    __tablename__ = "barbers"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), unique=True, nullable=False)
    bio = db.Column(db.Text)
    address = db.Column(db.String(255))
    working_hours = db.Column(db.String(50))  # "HH:MM-HH:MM"
    instagram = db.Column(db.String(255))
    facebook = db.Column(db.String(255))
    specialties = db.Column(db.JSON, nullable=True, default=list)
    experience = db.Column(db.Integer)
    job_title = db.Column(db.String(100))
    profile_image_url = db.Column(db.String(500))

    user = db.relationship("User", back_populates="barber")


class Service(db.Model):
    __tablename__ = "services"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text)
    duration = db.Column(db.Integer, nullable=False)  # minutes
    price = db.Column(db.Numeric(10, 2), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)


class Appointment(db.Model):
    __tablename__ = "appointments"

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    barber_id = db.Column(db.Integer, db.ForeignKey("barbers.id"), nullable=False)
    service_id = db.Column(db.Integer, db.ForeignKey("services.id"), nullable=False)
    appointment_time = db.Column(db.DateTime, nullable=False)
    status = db.Column(
        db.Enum(
            *APPOINTMENT_STATUSES,
            name="appointment_status",
            native_enum=False,
            validate_strings=True,
        ),
        nullable=False,
        server_default="pending",
    )
    notes = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    client = db.relationship("User")
    barber = db.relationship("Barber")
    service = db.relationship("Service")

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "client_id": self.client_id,
            "barber_id": self.barber_id,
            "service_id": self.service_id,
            "appointment_time": isoformat(self.appointment_time),
            "status": self.status,
            "notes": self.notes,
            "service_name": self.service.name if self.service else None,
            "barber_name": self.barber.user.full_name if self.barber and self.barber.user else None,
            "created_at": isoformat(self.created_at),
        }


class Review(db.Model):
    __tablename__ = "reviews"

    id = db.Column(db.Integer, primary_key=True)
    appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id"), nullable=True)
    client_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    barber_id = db.Column(db.Integer, db.ForeignKey("barbers.id"), nullable=False)
    rating = db.Column(db.Integer, nullable=False)  # 1-5 stars
    comment = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)


class PortfolioImage(db.Model):
    __tablename__ = "portfolio_images"

    id = db.Column(db.Integer, primary_key=True)
    barber_id = db.Column(db.Integer, db.ForeignKey("barbers.id"), nullable=False)
    image_url = db.Column(db.String(500), nullable=False)
    title = db.Column(db.String(200))
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "barber_id": self.barber_id,
            "image_url": self.image_url,
            "title": self.title,
            "description": self.description,
            "created_at": isoformat(self.created_at),
        }


# Notifications live in three tables, one per audience. Rows are written by
# the appointment workflows and only ever flipped to read or deleted later.
class UserNotification(db.Model):
    __tablename__ = "user_notifications"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    type = db.Column(db.String(64), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    link = db.Column(db.String(255))
    is_read = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "link": self.link,
            "is_read": bool(self.is_read),
            "created_at": isoformat(self.created_at),
        }


class BarberNotification(db.Model):
    __tablename__ = "notifications"

    id = db.Column(db.Integer, primary_key=True)
    barber_id = db.Column(db.Integer, db.ForeignKey("barbers.id"), nullable=False)
    recipient_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    type = db.Column(db.String(64), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    link = db.Column(db.String(255))
    is_read = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "barber_id": self.barber_id,
            "recipient_user_id": self.recipient_user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "link": self.link,
            "is_read": bool(self.is_read),
            "created_at": isoformat(self.created_at),
        }


class AdminNotification(db.Model):
    __tablename__ = "admin_notifications"

    id = db.Column(db.Integer, primary_key=True)
    admin_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    type = db.Column(db.String(64), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    link = db.Column(db.String(255))
    related_appointment_id = db.Column(db.Integer, db.ForeignKey("appointments.id"), nullable=True)
    related_client_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    related_barber_id = db.Column(db.Integer, db.ForeignKey("barbers.id"), nullable=True)
    is_read = db.Column(db.Boolean, nullable=False, default=False, server_default="0")
    created_at = db.Column(db.DateTime, nullable=False, default=utc_now)

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "admin_user_id": self.admin_user_id,
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "link": self.link,
            "related_appointment_id": self.related_appointment_id,
            "related_client_id": self.related_client_id,
            "related_barber_id": self.related_barber_id,
            "is_read": bool(self.is_read),
            "created_at": isoformat(self.created_at),
        }
