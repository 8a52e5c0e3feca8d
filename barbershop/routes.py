"""HTTP routes shared by every role: health checks and authentication."""
from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, Flask, current_app, jsonify, request
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.security import check_password_hash, generate_password_hash

from .auth import build_token
from .datastore import Datastore
from .extensions import db
from .models import AuthAccount, User

bp = Blueprint("api", __name__)


def get_datastore() -> Datastore:
    return current_app.extensions["datastore"]


def json_body() -> dict[str, object]:
    """The request body when it is a JSON object, otherwise an empty dict."""
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def text_field(payload: dict[str, object], key: str) -> str:
    value = payload.get(key)
    return value.strip() if isinstance(value, str) else ""


@bp.get("/health")
def health_check() -> tuple[dict[str, str], int]:
    """
    Expose a simple uptime check endpoint.
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is healthy and running.
    """
    return jsonify({"status": "ok"}), 200


@bp.get("/db-health")
def database_health() -> tuple[dict[str, str], int]:
    """Check connectivity to the configured database.
    ---
    tags:
      - Health
    responses:
      200:
        description: Database connection is ok.
      500:
        description: Database connection failed.
    """
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        current_app.logger.exception("Database connectivity check failed", exc_info=exc)
        return jsonify({"database": "unavailable"}), 500

    return jsonify({"database": "ok"}), 200


@bp.post("/auth/register")
def register_user() -> tuple[dict[str, object], int]:
    """Register a new client account.
    ---
    tags:
      - Authentication
    parameters:
      - name: body
        in: body
        required: true
        schema:
          type: object
          properties:
            first_name:
              type: string
            last_name:
              type: string
            email:
              type: string
            phone:
              type: string
            password:
              type: string
    responses:
      201:
        description: User registered successfully
      400:
        description: Missing fields
      409:
        description: Email already in use
      500:
        description: Server error
    """
    payload = json_body()

    first_name = text_field(payload, "first_name")
    last_name = text_field(payload, "last_name")
    email = text_field(payload, "email").lower()
    phone = text_field(payload, "phone")
    password = payload.get("password")
    password = password if isinstance(password, str) else ""

    if not first_name or not last_name or not email or not phone or not password:
        return (
            jsonify({
                "error": "invalid_payload",
                "message": "first_name, last_name, email, phone and password are required",
            }),
            400,
        )

    if User.query.filter_by(email=email).first():
        return jsonify({"error": "conflict", "message": "email address is already in use"}), 409

    try:
        # Public registration only ever creates clients
        new_user = User(first_name=first_name, last_name=last_name, email=email, phone=phone, role="client")
        db.session.add(new_user)
        db.session.flush()  # Get the new id before creating the AuthAccount

        db.session.add(AuthAccount(user_id=new_user.id, password_hash=generate_password_hash(password)))
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to register new user", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify({"message": "user_registered", "user": new_user.to_dict_basic()}), 201


@bp.post("/auth/login")
def login() -> tuple[dict[str, object], int]:
    """Authenticate a user by email/password and return an access token.
    ---
    tags:
      - Authentication
    responses:
      200:
        description: Login successful, returns access token
      400:
        description: Missing email or password
      401:
        description: Invalid credentials
      500:
        description: Server error
    """
    payload = json_body()

    email = text_field(payload, "email").lower()
    password = payload.get("password")
    password = password if isinstance(password, str) else ""

    if not email or not password:
        return jsonify({"error": "invalid_payload", "message": "email and password are required"}), 400

    record = (
        db.session.query(User, AuthAccount)
        .join(AuthAccount, AuthAccount.user_id == User.id)
        .filter(User.email == email)
        .first()
    )
    if not record:
        return jsonify({"error": "unauthorized", "message": "invalid email or password"}), 401

    user, auth_account = record
    if not check_password_hash(auth_account.password_hash, password):
        return jsonify({"error": "unauthorized", "message": "invalid email or password"}), 401

    auth_account.last_login_at = datetime.now(timezone.utc)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Failed to update last login timestamp", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    token = build_token(user.id, user.role)
    return jsonify({"token": token, "user": user.to_dict_basic()}), 200


def register_routes(app: Flask) -> None:
    from .admin_routes import bp_admin
    from .barber_routes import bp_barber
    from .booking_routes import bp_booking
    from .client_routes import bp_client

    app.register_blueprint(bp)
    app.register_blueprint(bp_barber)
    app.register_blueprint(bp_admin)
    app.register_blueprint(bp_client)
    app.register_blueprint(bp_booking)
