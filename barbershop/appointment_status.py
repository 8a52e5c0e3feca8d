"""Appointment status transitions and the notifications they trigger."""
from __future__ import annotations

import logging
from collections.abc import Mapping

from sqlalchemy import DateTime, text
from sqlalchemy.engine import Connection

from .datastore import Datastore
from .errors import Forbidden, InvalidInput, NotFound
from .identity import resolve_admin, resolve_barber
from .models import APPOINTMENT_STATUSES
from .notifications import notify_confirmed_by_admin, notify_confirmed_by_barber

logger = logging.getLogger(__name__)

# Denormalized fields are read through correlated subqueries in the same
# statement as the write, so they always describe the just-written row.
APPOINTMENT_COLUMNS = """
    id, client_id, barber_id, service_id, appointment_time, status,
    (SELECT s.name FROM services s WHERE s.id = appointments.service_id) AS service_name,
    (SELECT c.first_name || ' ' || c.last_name FROM users c
        WHERE c.id = appointments.client_id) AS client_name,
    (SELECT b.user_id FROM barbers b WHERE b.id = appointments.barber_id) AS barber_user_id,
    (SELECT bu.first_name || ' ' || bu.last_name FROM barbers b
        JOIN users bu ON bu.id = b.user_id
        WHERE b.id = appointments.barber_id) AS barber_name
"""

# ``status <> :status`` makes a repeated request match nothing, so a retried
# confirmation never fans out twice.
_UPDATE_OWNED = text(
    f"""
    UPDATE appointments SET status = :status
    WHERE id = :appointment_id AND barber_id = :barber_id AND status <> :status
    RETURNING {APPOINTMENT_COLUMNS}
    """
).columns(appointment_time=DateTime)

_UPDATE_ANY = text(
    f"""
    UPDATE appointments SET status = :status
    WHERE id = :appointment_id AND status <> :status
    RETURNING {APPOINTMENT_COLUMNS}
    """
).columns(appointment_time=DateTime)

_SELECT_OWNED = text(
    f"""
    SELECT {APPOINTMENT_COLUMNS} FROM appointments
    WHERE id = :appointment_id AND barber_id = :barber_id
    """
).columns(appointment_time=DateTime)

_SELECT_ANY = text(
    f"""
    SELECT {APPOINTMENT_COLUMNS} FROM appointments
    WHERE id = :appointment_id
    """
).columns(appointment_time=DateTime)


def validate_status(status: object) -> str:
    if not isinstance(status, str) or status not in APPOINTMENT_STATUSES:
        raise InvalidInput(
            f"Invalid or missing status. Must be one of: {', '.join(APPOINTMENT_STATUSES)}",
            code="invalid_status",
        )
    return status


def serialize_appointment(row: Mapping[str, object]) -> dict[str, object]:
    appointment_time = row["appointment_time"]
    return {
        "id": row["id"],
        "client_id": row["client_id"],
        "barber_id": row["barber_id"],
        "service_id": row["service_id"],
        "appointment_time": appointment_time.isoformat() if appointment_time else None,
        "status": row["status"],
        "service_name": row["service_name"],
        "client_name": row["client_name"],
    }


class AppointmentStatusHandler:
    """Moves an appointment to a new status on behalf of a barber or an admin.

    The status write, the identity lookups and any notifications run in one
    transaction from ``datastore``: either all of them are committed or none.
    Only a transition into ``confirmed`` produces notifications.
    """

    def __init__(self, datastore: Datastore, timezone: str = "UTC") -> None:
        self.datastore = datastore
        self.timezone = timezone

    def transition(
        self, appointment_id: int, status: object, actor: Mapping[str, object]
    ) -> dict[str, object]:
        target = validate_status(status)
        role = actor.get("role")
        if role not in ("barber", "admin"):
            raise Forbidden("Only barbers and admins can change appointment status")

        with self.datastore.transaction() as conn:
            if role == "barber":
                barber = resolve_barber(conn, actor["id"])
                row, changed = self._apply(
                    conn, _UPDATE_OWNED, _SELECT_OWNED,
                    {"appointment_id": appointment_id, "barber_id": barber.barber_id, "status": target},
                )
                written = 0
                if changed and target == "confirmed":
                    written = notify_confirmed_by_barber(conn, row, barber, self.timezone)
            else:
                admin = resolve_admin(conn, actor["id"])
                row, changed = self._apply(
                    conn, _UPDATE_ANY, _SELECT_ANY,
                    {"appointment_id": appointment_id, "status": target},
                )
                written = 0
                if changed and target == "confirmed":
                    written = notify_confirmed_by_admin(conn, row, admin, self.timezone)

        logger.info(
            "Appointment %s set to %s by %s %s (changed=%s, notifications=%d)",
            appointment_id, target, role, actor["id"], changed, written,
        )
        return serialize_appointment(row)

    @staticmethod
    def _apply(conn: Connection, update, snapshot, params: dict[str, object]):
        row = conn.execute(update, params).mappings().first()
        if row is not None:
            return row, True

        # Nothing updated: either the row already holds the target status or it
        # is missing / owned by someone else. Both of the latter read as 404.
        lookup = {key: value for key, value in params.items() if key != "status"}
        row = conn.execute(snapshot, lookup).mappings().first()
        if row is None:
            raise NotFound("Appointment not found", code="appointment_not_found")
        return row, False
