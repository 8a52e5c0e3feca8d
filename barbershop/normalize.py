"""Coercions applied once, right after rows are read from the datastore."""
from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal, InvalidOperation


def normalize_specialties(value: object) -> list[str]:
    """Return specialties as an ordered list of non-empty, stripped strings.

    Stored values arrive either as a comma separated string or as a native
    array (JSON / TEXT[]); anything else collapses to an empty list.
    """
    if value is None:
        return []
    if isinstance(value, str):
        items: Iterable[object] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = value
    else:
        return []
    return [item.strip() for item in items if isinstance(item, str) and item.strip()]


def to_float(value: object, default: float = 0.0) -> float:
    if value is None:
        return default
    try:
        return float(Decimal(str(value)))
    except (InvalidOperation, ValueError):
        return default


def to_int(value: object, default: int = 0) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
