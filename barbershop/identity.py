"""Resolve an authenticated user id to the entity that acts on its behalf."""
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.engine import Connection

from .errors import NotFound

_BARBER_BY_USER = text(
    """
    SELECT b.id AS barber_id, u.first_name || ' ' || u.last_name AS name
    FROM barbers b
    JOIN users u ON u.id = b.user_id
    WHERE b.user_id = :user_id
    """
)

_ADMIN_BY_USER = text(
    """
    SELECT u.first_name || ' ' || u.last_name AS name
    FROM users u
    WHERE u.id = :user_id AND u.role = 'admin'
    """
)


@dataclass(frozen=True)
class ActingBarber:
    user_id: int
    barber_id: int
    name: str


@dataclass(frozen=True)
class ActingAdmin:
    user_id: int
    name: str


def resolve_barber(conn: Connection, user_id: int) -> ActingBarber:
    """Return the barber profile owned by ``user_id`` or raise NotFound."""
    row = conn.execute(_BARBER_BY_USER, {"user_id": user_id}).mappings().first()
    if row is None:
        raise NotFound("Barber not found", code="barber_not_found")
    return ActingBarber(user_id=user_id, barber_id=row["barber_id"], name=row["name"])


def resolve_admin(conn: Connection, user_id: int) -> ActingAdmin:
    row = conn.execute(_ADMIN_BY_USER, {"user_id": user_id}).mappings().first()
    if row is None:
        raise NotFound("Admin not found", code="admin_not_found")
    return ActingAdmin(user_id=user_id, name=row["name"])
