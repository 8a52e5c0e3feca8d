"""Environment driven configuration for the barbershop backend."""
from __future__ import annotations

import os


def _split_origins(raw: str) -> list[str]:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-only-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///barbershop.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # FRONTEND_URL may hold a single origin or a comma separated list.
    CORS_ORIGINS = _split_origins(os.environ.get("FRONTEND_URL", "http://localhost:5173"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Appointment times are stored as naive UTC; notification text is rendered in this zone.
    SHOP_TIMEZONE = os.environ.get("SHOP_TIMEZONE", "UTC")
    TOKEN_MAX_AGE = int(os.environ.get("TOKEN_MAX_AGE", 86400))
