"""Notification fan-out for appointment confirmations.

Every writer here takes the caller's open connection, so the rows are staged
in the same transaction as the status change they describe and disappear with
it on rollback.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import text
from sqlalchemy.engine import Connection

from .identity import ActingAdmin, ActingBarber

logger = logging.getLogger(__name__)

CLIENT_APPOINTMENTS_LINK = "/user-dashboard/appointments"
BARBER_SCHEDULE_LINK = "/barber-dashboard/schedule"
ADMIN_APPOINTMENT_LINK = "/admin-dashboard/appointments?appointmentId={appointment_id}"

_INSERT_USER_NOTIFICATION = text(
    """
    INSERT INTO user_notifications (user_id, type, title, message, link, is_read, created_at)
    VALUES (:user_id, :type, :title, :message, :link, FALSE, CURRENT_TIMESTAMP)
    """
)

_INSERT_BARBER_NOTIFICATION = text(
    """
    INSERT INTO notifications (barber_id, recipient_user_id, type, title, message, link, is_read, created_at)
    VALUES (:barber_id, :recipient_user_id, :type, :title, :message, :link, FALSE, CURRENT_TIMESTAMP)
    """
)

_INSERT_ADMIN_NOTIFICATION = text(
    """
    INSERT INTO admin_notifications (
        admin_user_id, type, title, message, link,
        related_appointment_id, related_client_id, related_barber_id,
        is_read, created_at
    )
    VALUES (
        :admin_user_id, :type, :title, :message, :link,
        :related_appointment_id, :related_client_id, :related_barber_id,
        FALSE, CURRENT_TIMESTAMP
    )
    """
)

_ADMIN_IDS = text("SELECT id FROM users WHERE role = 'admin'")


def format_appointment_time(value: datetime, tz: str = "UTC") -> str:
    """Render a stored (naive UTC) time in the shop zone, e.g. ``Mar 5, 2025 at 2:30 PM EST``."""
    local = value.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz))
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{local:%b} {local.day}, {local.year} at {hour}:{local:%M} {meridiem} {local:%Z}"


def insert_user_notification(
    conn: Connection, user_id: int, type_: str, title: str, message: str, link: str | None
) -> None:
    conn.execute(
        _INSERT_USER_NOTIFICATION,
        {"user_id": user_id, "type": type_, "title": title, "message": message, "link": link},
    )


def insert_barber_notification(
    conn: Connection,
    barber_id: int,
    recipient_user_id: int | None,
    type_: str,
    title: str,
    message: str,
    link: str | None,
) -> None:
    conn.execute(
        _INSERT_BARBER_NOTIFICATION,
        {
            "barber_id": barber_id,
            "recipient_user_id": recipient_user_id,
            "type": type_,
            "title": title,
            "message": message,
            "link": link,
        },
    )


def insert_admin_notification(
    conn: Connection,
    admin_user_id: int,
    type_: str,
    title: str,
    message: str,
    link: str | None,
    appointment: Mapping[str, object],
) -> None:
    conn.execute(
        _INSERT_ADMIN_NOTIFICATION,
        {
            "admin_user_id": admin_user_id,
            "type": type_,
            "title": title,
            "message": message,
            "link": link,
            "related_appointment_id": appointment["id"],
            "related_client_id": appointment["client_id"],
            "related_barber_id": appointment["barber_id"],
        },
    )


def admin_user_ids(conn: Connection) -> list[int]:
    """Every admin identity at call time, in whatever order the datastore returns."""
    return list(conn.execute(_ADMIN_IDS).scalars())


def notify_confirmed_by_barber(
    conn: Connection, appointment: Mapping[str, object], barber: ActingBarber,
    tz: str = "UTC",
) -> int:
    """Notify the client and every admin that ``barber`` confirmed ``appointment``.

    Returns the number of notification rows written.
    """
    when = format_appointment_time(appointment["appointment_time"], tz)
    insert_user_notification(
        conn,
        appointment["client_id"],
        "appointment_confirmed",
        "Appointment Confirmed!",
        f"Your appointment for {appointment['service_name']} with {barber.name} "
        f"on {when} has been confirmed.",
        CLIENT_APPOINTMENTS_LINK,
    )
    written = 1

    message = (
        f"Barber {barber.name} changed the status of appointment {appointment['id']} "
        f"(Client: {appointment['client_name']}, {appointment['service_name']} on {when}) "
        f"to confirmed."
    )
    link = ADMIN_APPOINTMENT_LINK.format(appointment_id=appointment["id"])
    # N sequential inserts in the caller's transaction; admin headcount is small.
    for admin_id in admin_user_ids(conn):
        insert_admin_notification(
            conn,
            admin_id,
            "appointment_status_changed_by_barber",
            "Appointment Confirmed by Barber",
            message,
            link,
            appointment,
        )
        written += 1
    return written


def notify_confirmed_by_admin(
    conn: Connection, appointment: Mapping[str, object], admin: ActingAdmin,
    tz: str = "UTC",
) -> int:
    """Notify the client, the assigned barber and the other admins of an admin confirmation."""
    when = format_appointment_time(appointment["appointment_time"], tz)
    service_name = appointment["service_name"]
    client_name = appointment["client_name"]
    barber_name = appointment["barber_name"]

    insert_user_notification(
        conn,
        appointment["client_id"],
        "appointment_confirmed_by_admin",
        "Appointment Confirmed by Admin!",
        f"Your appointment for {service_name} with {barber_name} on {when} "
        f"has been confirmed by the administration.",
        CLIENT_APPOINTMENTS_LINK,
    )
    written = 1

    if appointment["barber_user_id"]:
        insert_barber_notification(
            conn,
            appointment["barber_id"],
            appointment["barber_user_id"],
            "appointment_confirmed_by_admin_staff",
            "Appointment Confirmed by Admin",
            f"The appointment for {client_name} ({service_name}) on {when} has been "
            f"confirmed by admin {admin.name}. (Appt ID: {appointment['id']})",
            BARBER_SCHEDULE_LINK,
        )
        written += 1
    else:
        logger.warning("Appointment %s has no barber user to notify", appointment["id"])

    message = (
        f"Appointment ID {appointment['id']} (Client: {client_name}, Barber: {barber_name}) "
        f"has been confirmed by admin {admin.name}."
    )
    link = ADMIN_APPOINTMENT_LINK.format(appointment_id=appointment["id"])
    for admin_id in admin_user_ids(conn):
        if admin_id == admin.user_id:
            continue
        insert_admin_notification(
            conn,
            admin_id,
            "appointment_confirmed_log",
            "Appointment Confirmed (Admin Action)",
            message,
            link,
            appointment,
        )
        written += 1
    return written


def notify_booking_created(conn: Connection, appointment: Mapping[str, object], tz: str = "UTC") -> int:
    """Tell the client their booking is pending, and alert the barber and every admin."""
    when = format_appointment_time(appointment["appointment_time"], tz)
    service_name = appointment["service_name"]
    client_name = appointment["client_name"]
    barber_name = appointment["barber_name"]

    insert_user_notification(
        conn,
        appointment["client_id"],
        "booking_pending",
        "Booking Pending Confirmation",
        f"Your booking for {service_name} with {barber_name} on {when} is pending. "
        f"We will notify you upon confirmation.",
        CLIENT_APPOINTMENTS_LINK,
    )
    insert_barber_notification(
        conn,
        appointment["barber_id"],
        appointment["barber_user_id"],
        "new_booking_barber",
        "New Booking Received",
        f"New booking from {client_name} for {service_name} on {when} (Appt ID: {appointment['id']}).",
        BARBER_SCHEDULE_LINK,
    )
    written = 2

    message = (
        f"A new appointment (ID: {appointment['id']}) has been booked by {client_name} "
        f"with {barber_name} for {service_name} on {when}."
    )
    link = ADMIN_APPOINTMENT_LINK.format(appointment_id=appointment["id"])
    for admin_id in admin_user_ids(conn):
        insert_admin_notification(
            conn,
            admin_id,
            "new_appointment_booked",
            "New Appointment Booked",
            message,
            link,
            appointment,
        )
        written += 1
    return written
