"""Barber dashboard routes: appointment status, schedule, profile and inbox."""
from __future__ import annotations

import re
from datetime import date, datetime, time

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .appointment_status import AppointmentStatusHandler
from .auth import role_required
from .errors import InvalidInput, ServiceError
from .extensions import db
from .identity import ActingBarber, resolve_barber
from .models import Barber, BarberNotification, PortfolioImage
from .normalize import normalize_specialties
from .queries import barber_appointments, barber_profile, barber_schedule, barber_stats
from .routes import get_datastore, json_body, text_field

bp_barber = Blueprint("barber", __name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

PROFILE_FIELDS = ("bio", "address", "working_hours", "instagram", "facebook")


def _current_barber() -> ActingBarber:
    return resolve_barber(db.session.connection(), g.current_user["id"])


def _parse_day(value: str | None) -> date:
    if not value:
        raise InvalidInput("Date parameter is required", code="invalid_request")
    if not _DATE_RE.match(value):
        raise InvalidInput("Invalid date format. Please use YYYY-MM-DD", code="invalid_request")
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidInput("Invalid date format. Please use YYYY-MM-DD", code="invalid_request") from exc


def _parse_bound(value: str | None, end: bool = False) -> datetime:
    """Parse a stats range bound; a bare date as upper bound covers the whole day."""
    if not value:
        raise InvalidInput("startDate and endDate are required for stats", code="invalid_request")
    try:
        if _DATE_RE.match(value):
            return datetime.combine(date.fromisoformat(value), time.max if end else time.min)
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise InvalidInput(f"Invalid date: {value}", code="invalid_request") from exc


@bp_barber.put("/appointments/<int:appointment_id>/status")
@role_required("barber")
def update_appointment_status(appointment_id: int) -> tuple[dict[str, object], int]:
    """Change the status of one of the barber's own appointments.

    Confirming an appointment notifies its client and every admin in the same
    transaction as the status change.
    ---
    tags:
      - Appointments
    parameters:
      - in: path
        name: appointment_id
        required: true
        schema:
          type: integer
      - in: body
        name: body
        required: true
        schema:
          properties:
            status:
              type: string
              enum: [pending, confirmed, completed, canceled, no-show]
    responses:
      200:
        description: Appointment status updated successfully
      400:
        description: Invalid or missing status
      404:
        description: Barber or appointment not found (or not owned)
      500:
        description: Database error
    """
    payload = json_body()
    handler = AppointmentStatusHandler(get_datastore(), current_app.config["SHOP_TIMEZONE"])

    try:
        appointment = handler.transition(appointment_id, payload.get("status"), g.current_user)
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to update appointment status", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Server error"}), 500

    return jsonify(appointment), 200


@bp_barber.get("/barber/profile")
@role_required("barber")
def get_profile() -> tuple[dict[str, object], int]:
    try:
        profile = barber_profile(g.current_user["id"])
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch barber profile", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    if profile is None:
        return jsonify({"error": "not_found", "message": "Profile not found"}), 404
    return jsonify(profile), 200


@bp_barber.put("/barber/profile")
@role_required("barber")
def update_profile() -> tuple[dict[str, object], int]:
    """Update the barber's own profile and return the refreshed version.

    ``specialties`` may be sent as ``"Fade, Beard"`` or as a list; it is stored
    as a list with blank entries dropped.
    """
    payload = json_body()

    for field in PROFILE_FIELDS:
        if payload.get(field) is not None and not isinstance(payload[field], str):
            return jsonify({"error": "invalid_input", "message": f"{field} must be a string"}), 400

    experience = payload.get("experience")
    if experience in (None, ""):
        experience = None
    else:
        try:
            experience = int(experience)
        except (TypeError, ValueError):
            return jsonify({"error": "invalid_input", "message": "experience must be a number"}), 400

    try:
        barber = Barber.query.filter_by(user_id=g.current_user["id"]).first()
        if barber is None:
            return jsonify({"error": "barber_not_found", "message": "Barber not found to update"}), 404

        for field in PROFILE_FIELDS:
            setattr(barber, field, payload.get(field))
        barber.specialties = normalize_specialties(payload.get("specialties"))
        barber.experience = experience
        db.session.commit()

        profile = barber_profile(g.current_user["id"])
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update barber profile", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify(profile), 200


@bp_barber.get("/barber/schedule")
@role_required("barber")
def get_schedule() -> tuple[dict[str, object], int]:
    """Appointments of the authenticated barber on ``date`` (YYYY-MM-DD)."""
    try:
        day = _parse_day(request.args.get("date"))
        barber = _current_barber()
        return jsonify(barber_schedule(barber.barber_id, day)), 200
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch barber schedule", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_barber.get("/barber/appointments")
@role_required("barber")
def get_appointments() -> tuple[dict[str, object], int]:
    upcoming_arg = request.args.get("upcoming")
    upcoming = {"true": True, "false": False}.get(upcoming_arg) if upcoming_arg else None

    try:
        barber = _current_barber()
        return jsonify(barber_appointments(barber.barber_id, upcoming)), 200
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch barber appointments", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_barber.get("/barber/stats")
@role_required("barber")
def get_stats() -> tuple[dict[str, object], int]:
    try:
        barber = _current_barber()
        start = _parse_bound(request.args.get("startDate"))
        end = _parse_bound(request.args.get("endDate"), end=True)
        return jsonify(barber_stats(barber.barber_id, start, end)), 200
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to compute barber stats", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


# --- Notifications ---

@bp_barber.get("/barber/notifications")
@role_required("barber")
def get_notifications() -> tuple[dict[str, object], int]:
    try:
        barber = _current_barber()
        notifications = (
            BarberNotification.query.filter_by(barber_id=barber.barber_id)
            .order_by(BarberNotification.created_at.desc(), BarberNotification.id.desc())
            .all()
        )
        return jsonify([n.to_dict() for n in notifications]), 200
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch barber notifications", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_barber.put("/barber/notifications/read-all")
@role_required("barber")
def mark_all_notifications_read() -> tuple[dict[str, object], int]:
    try:
        barber = _current_barber()
        updated = BarberNotification.query.filter_by(
            barber_id=barber.barber_id, is_read=False
        ).update({"is_read": True})
        db.session.commit()
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to mark barber notifications as read", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "All notifications marked as read", "updated_count": updated}), 200


@bp_barber.put("/barber/notifications/<int:notification_id>/read")
@role_required("barber")
def mark_notification_read(notification_id: int) -> tuple[dict[str, object], int]:
    try:
        barber = _current_barber()
        notification = BarberNotification.query.filter_by(
            id=notification_id, barber_id=barber.barber_id
        ).first()
        if notification is None:
            return (
                jsonify({"error": "notification_not_found", "message": "Notification not found or not owned by barber"}),
                404,
            )
        notification.is_read = True
        db.session.commit()
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to mark barber notification as read", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify(notification.to_dict()), 200


@bp_barber.delete("/barber/notifications/<int:notification_id>")
@role_required("barber")
def delete_notification(notification_id: int) -> tuple[dict[str, object], int]:
    try:
        barber = _current_barber()
        notification = BarberNotification.query.filter_by(
            id=notification_id, barber_id=barber.barber_id
        ).first()
        if notification is None:
            return (
                jsonify({"error": "notification_not_found", "message": "Notification not found or not owned by barber"}),
                404,
            )
        db.session.delete(notification)
        db.session.commit()
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete barber notification", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Notification deleted"}), 200


# --- Portfolio ---

@bp_barber.get("/barber/portfolio")
@role_required("barber")
def get_portfolio() -> tuple[dict[str, object], int]:
    try:
        barber = _current_barber()
        images = (
            PortfolioImage.query.filter_by(barber_id=barber.barber_id)
            .order_by(PortfolioImage.created_at.desc(), PortfolioImage.id.desc())
            .all()
        )
        return jsonify([image.to_dict() for image in images]), 200
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch portfolio", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_barber.post("/barber/portfolio")
@role_required("barber")
def add_portfolio_image() -> tuple[dict[str, object], int]:
    payload = json_body()
    image_url = text_field(payload, "image_url")
    if not image_url:
        return jsonify({"error": "invalid_input", "message": "image_url is required"}), 400

    try:
        barber = _current_barber()
        image = PortfolioImage(
            barber_id=barber.barber_id,
            image_url=image_url,
            title=payload.get("title"),
            description=payload.get("description"),
        )
        db.session.add(image)
        db.session.commit()
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to add portfolio image", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify(image.to_dict()), 201


@bp_barber.delete("/barber/portfolio/<int:image_id>")
@role_required("barber")
def delete_portfolio_image(image_id: int) -> tuple[dict[str, object], int]:
    try:
        barber = _current_barber()
        image = PortfolioImage.query.filter_by(id=image_id, barber_id=barber.barber_id).first()
        if image is None:
            return jsonify({"error": "not_found", "message": "Image not found"}), 404
        db.session.delete(image)
        db.session.commit()
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete portfolio image", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "Image deleted"}), 200
