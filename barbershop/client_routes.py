"""Client dashboard routes: own appointments and notification inbox."""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify
from sqlalchemy.exc import SQLAlchemyError

from .auth import role_required
from .extensions import db
from .models import UserNotification
from .queries import client_appointments

bp_client = Blueprint("client", __name__, url_prefix="/user")


@bp_client.get("/appointments")
@role_required("client")
def list_appointments() -> tuple[dict[str, object], int]:
    try:
        return jsonify(client_appointments(g.current_user["id"])), 200
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch client appointments", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_client.get("/notifications")
@role_required("client")
def get_notifications() -> tuple[dict[str, object], int]:
    try:
        notifications = (
            UserNotification.query.filter_by(user_id=g.current_user["id"])
            .order_by(UserNotification.created_at.desc(), UserNotification.id.desc())
            .all()
        )
        return jsonify([n.to_dict() for n in notifications]), 200
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch notifications", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_client.put("/notifications/read-all")
@role_required("client")
def mark_all_notifications_read() -> tuple[dict[str, object], int]:
    try:
        updated = UserNotification.query.filter_by(
            user_id=g.current_user["id"], is_read=False
        ).update({"is_read": True})
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to mark all notifications as read", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "all_notifications_marked_as_read", "updated_count": updated}), 200


@bp_client.put("/notifications/<int:notification_id>/read")
@role_required("client")
def mark_notification_read(notification_id: int) -> tuple[dict[str, object], int]:
    try:
        notification = UserNotification.query.filter_by(
            id=notification_id, user_id=g.current_user["id"]
        ).first()
        if notification is None:
            return jsonify({"error": "notification_not_found"}), 404
        notification.is_read = True
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to mark notification as read", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "notification_marked_as_read", "notification": notification.to_dict()}), 200


@bp_client.delete("/notifications/<int:notification_id>")
@role_required("client")
def delete_notification(notification_id: int) -> tuple[dict[str, object], int]:
    try:
        notification = UserNotification.query.filter_by(
            id=notification_id, user_id=g.current_user["id"]
        ).first()
        if notification is None:
            return jsonify({"error": "notification_not_found"}), 404
        db.session.delete(notification)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to delete notification", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "notification_deleted"}), 200
