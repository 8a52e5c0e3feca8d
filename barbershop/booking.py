"""Client bookings: open slots for a barber and creating a pending appointment."""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from sqlalchemy import DateTime, bindparam, text
from sqlalchemy.engine import Connection

from .appointment_status import APPOINTMENT_COLUMNS
from .datastore import Datastore
from .errors import Conflict, InvalidInput, NotFound
from .notifications import notify_booking_created

logger = logging.getLogger(__name__)

SLOT_INTERVAL_MINUTES = 30
DEFAULT_WORKING_HOURS = (time(9, 0), time(17, 0))

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_HOURS_RE = re.compile(r"^(\d{2}):(\d{2})-(\d{2}):(\d{2})$")

_ACTIVE_SERVICE = text("SELECT id, duration FROM services WHERE id = :service_id AND is_active = TRUE")

_BARBER = text("SELECT id, working_hours FROM barbers WHERE id = :barber_id")

_BOOKED = (
    text(
        """
        SELECT a.appointment_time, s.duration
        FROM appointments a
        JOIN services s ON s.id = a.service_id
        WHERE a.barber_id = :barber_id
          AND a.status NOT IN ('canceled', 'no-show')
          AND a.appointment_time >= :start AND a.appointment_time < :end
        """
    )
    .bindparams(bindparam("start", type_=DateTime), bindparam("end", type_=DateTime))
    .columns(appointment_time=DateTime)
)

_INSERT_APPOINTMENT = text(
    """
    INSERT INTO appointments (client_id, barber_id, service_id, appointment_time, status, notes, created_at)
    VALUES (:client_id, :barber_id, :service_id, :appointment_time, 'pending', :notes, CURRENT_TIMESTAMP)
    RETURNING id
    """
).bindparams(bindparam("appointment_time", type_=DateTime))

_SELECT_APPOINTMENT = text(
    f"SELECT {APPOINTMENT_COLUMNS} FROM appointments WHERE id = :appointment_id"
).columns(appointment_time=DateTime)


def to_utc(local: datetime, tz: str) -> datetime:
    """Shop wall-clock time to the naive UTC value stored in ``appointments``."""
    return local.replace(tzinfo=ZoneInfo(tz)).astimezone(timezone.utc).replace(tzinfo=None)


def to_local(stored: datetime, tz: str) -> datetime:
    return stored.replace(tzinfo=timezone.utc).astimezone(ZoneInfo(tz)).replace(tzinfo=None)


def parse_working_hours(value: str | None) -> tuple[time, time]:
    """``"09:00-17:00"`` to a pair of times; unset or malformed falls back to 9 to 5."""
    match = _HOURS_RE.match((value or "").strip())
    if not match:
        return DEFAULT_WORKING_HOURS
    start_h, start_m, end_h, end_m = (int(part) for part in match.groups())
    try:
        return time(start_h, start_m), time(end_h, end_m)
    except ValueError:
        return DEFAULT_WORKING_HOURS


def format_slot(value: time) -> str:
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {meridiem}"


def parse_slot(value: object) -> time:
    """Accept ``"2:30 PM"`` as rendered by the availability view, or ``"14:30"``."""
    if isinstance(value, str):
        for pattern in ("%I:%M %p", "%H:%M"):
            try:
                return datetime.strptime(value.strip().upper(), pattern).time()
            except ValueError:
                continue
    raise InvalidInput("Invalid time slot. Use e.g. 2:30 PM", code="invalid_booking")


def parse_day(value: object) -> date:
    if isinstance(value, str):
        day = value.split("T")[0]
        if _DATE_RE.match(day):
            try:
                return date.fromisoformat(day)
            except ValueError:
                pass
    raise InvalidInput("Invalid date format. Use YYYY-MM-DD", code="invalid_booking")


def parse_id(value: object, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidInput(f"{name} must be an integer", code="invalid_booking")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInput(f"{name} must be an integer", code="invalid_booking") from exc


def _overlaps(start: datetime, minutes: int, booked: list[tuple[datetime, datetime]]) -> bool:
    end = start + timedelta(minutes=minutes)
    return any(start < booked_end and end > booked_start for booked_start, booked_end in booked)


def _service_duration(conn: Connection, service_id: int) -> int:
    row = conn.execute(_ACTIVE_SERVICE, {"service_id": service_id}).mappings().first()
    if row is None:
        raise NotFound("Service not found or is not active", code="service_not_found")
    return int(row["duration"])


def _barber(conn: Connection, barber_id: int):
    row = conn.execute(_BARBER, {"barber_id": barber_id}).mappings().first()
    if row is None:
        raise NotFound("Barber not found", code="barber_not_found")
    return row


def _booked_intervals(conn: Connection, barber_id: int, day: date, tz: str) -> list[tuple[datetime, datetime]]:
    """Held slots of ``barber_id`` on the shop-local ``day``, in shop-local time."""
    start = to_utc(datetime.combine(day, time.min), tz)
    end = to_utc(datetime.combine(day + timedelta(days=1), time.min), tz)
    rows = conn.execute(_BOOKED, {"barber_id": barber_id, "start": start, "end": end}).mappings()
    booked = []
    for row in rows:
        local = to_local(row["appointment_time"], tz)
        booked.append((local, local + timedelta(minutes=int(row["duration"]))))
    return booked


def available_slots(conn: Connection, service_id: int, barber_id: int, day: date, tz: str = "UTC") -> list[str]:
    """Start times on ``day`` where the service fits the barber's hours and overlaps nothing."""
    duration = _service_duration(conn, service_id)
    opens, closes = parse_working_hours(_barber(conn, barber_id)["working_hours"])
    booked = _booked_intervals(conn, barber_id, day, tz)

    slots = []
    current = datetime.combine(day, opens)
    closing = datetime.combine(day, closes)
    while current + timedelta(minutes=duration) <= closing:
        if not _overlaps(current, duration, booked):
            slots.append(format_slot(current.time()))
        current += timedelta(minutes=SLOT_INTERVAL_MINUTES)
    return slots


class BookingHandler:
    """Creates a pending appointment for a client.

    The insert and the notifications to the client, the barber and every
    admin share one transaction from ``datastore``.
    """

    def __init__(self, datastore: Datastore, timezone: str = "UTC") -> None:
        self.datastore = datastore
        self.timezone = timezone

    def create(self, client_id: int, payload: Mapping[str, object]) -> int:
        required = ("serviceId", "barberId", "date", "timeSlot")
        if any(payload.get(field) in (None, "") for field in required):
            raise InvalidInput("serviceId, barberId, date and timeSlot are required", code="invalid_booking")

        service_id = parse_id(payload["serviceId"], "serviceId")
        barber_id = parse_id(payload["barberId"], "barberId")
        day = parse_day(payload["date"])
        starts_local = datetime.combine(day, parse_slot(payload["timeSlot"]))
        notes = payload.get("notes")
        notes = (notes.strip() or None) if isinstance(notes, str) else None

        with self.datastore.transaction() as conn:
            duration = _service_duration(conn, service_id)
            _barber(conn, barber_id)
            if _overlaps(starts_local, duration, _booked_intervals(conn, barber_id, day, self.timezone)):
                raise Conflict("The selected time slot is no longer available", code="slot_unavailable")

            appointment_id = conn.execute(
                _INSERT_APPOINTMENT,
                {
                    "client_id": client_id,
                    "barber_id": barber_id,
                    "service_id": service_id,
                    "appointment_time": to_utc(starts_local, self.timezone),
                    "notes": notes,
                },
            ).scalar_one()
            row = conn.execute(_SELECT_APPOINTMENT, {"appointment_id": appointment_id}).mappings().one()
            written = notify_booking_created(conn, row, self.timezone)

        logger.info(
            "Appointment %s booked by client %s with barber %s (notifications=%d)",
            appointment_id, client_id, barber_id, written,
        )
        return appointment_id
