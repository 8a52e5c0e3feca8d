"""Admin dashboard routes."""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from .appointment_status import AppointmentStatusHandler
from .auth import role_required
from .errors import ServiceError
from .extensions import db
from .models import AdminNotification
from .queries import admin_appointments, admin_stats
from .routes import get_datastore, json_body

bp_admin = Blueprint("admin", __name__, url_prefix="/admin")

ADMIN_NOTIFICATION_LIMIT = 20


@bp_admin.put("/appointments/<int:appointment_id>/status")
@role_required("admin")
def update_appointment_status(appointment_id: int) -> tuple[dict[str, object], int]:
    """Change the status of any appointment.
    ---
    tags:
      - Admin
    responses:
      200:
        description: Appointment status updated successfully
      400:
        description: Invalid or missing status
      404:
        description: Appointment (or acting admin) not found
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
        current_app.logger.exception("Failed to update appointment status by admin", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Server error"}), 500

    return jsonify(appointment), 200


@bp_admin.get("/appointments")
@role_required("admin")
def list_appointments() -> tuple[dict[str, object], int]:
    try:
        return jsonify(admin_appointments()), 200
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch appointments for admin", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_admin.get("/stats")
@role_required("admin")
def get_stats() -> tuple[dict[str, object], int]:
    try:
        return jsonify(admin_stats()), 200
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to compute admin stats", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_admin.get("/notifications")
@role_required("admin")
def get_notifications() -> tuple[dict[str, object], int]:
    """Latest notifications addressed to this admin or broadcast to all admins."""
    try:
        notifications = (
            AdminNotification.query.filter(
                or_(
                    AdminNotification.admin_user_id == g.current_user["id"],
                    AdminNotification.admin_user_id.is_(None),
                )
            )
            .order_by(AdminNotification.created_at.desc(), AdminNotification.id.desc())
            .limit(ADMIN_NOTIFICATION_LIMIT)
            .all()
        )
        return jsonify([n.to_dict() for n in notifications]), 200
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch admin notifications", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_admin.put("/notifications/<int:notification_id>/read")
@role_required("admin")
def mark_notification_read(notification_id: int) -> tuple[dict[str, object], int]:
    try:
        notification = AdminNotification.query.filter(
            AdminNotification.id == notification_id,
            or_(
                AdminNotification.admin_user_id == g.current_user["id"],
                AdminNotification.admin_user_id.is_(None),
            ),
        ).first()
        if notification is None:
            return jsonify({"error": "notification_not_found"}), 404
        notification.is_read = True
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to mark admin notification as read", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify(notification.to_dict()), 200
