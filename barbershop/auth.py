"""Bearer tokens and role checks for the dashboards."""
from __future__ import annotations

from functools import wraps

from flask import current_app, g, jsonify, request
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

_SALT = "auth-token"


def _serializer() -> URLSafeTimedSerializer:
    return URLSafeTimedSerializer(current_app.config["SECRET_KEY"], salt=_SALT)


def build_token(user_id: int, role: str) -> str:
    return _serializer().dumps({"user_id": user_id, "role": role})


def role_required(*roles: str):
    """Reject requests without a valid bearer token for one of ``roles``.

    On success the acting identity is available as ``g.current_user``
    (``{"id": ..., "role": ...}``).
    """

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            auth_header = request.headers.get("Authorization", "")
            if not auth_header.startswith("Bearer "):
                return jsonify({"error": "unauthorized", "message": "Invalid or missing token"}), 401

            token = auth_header[7:]  # Remove "Bearer " prefix
            try:
                payload = _serializer().loads(token, max_age=current_app.config["TOKEN_MAX_AGE"])
            except SignatureExpired:
                return jsonify({"error": "token_expired", "message": "Token has expired"}), 401
            except BadSignature:
                return jsonify({"error": "unauthorized", "message": "Invalid or missing token"}), 401

            if payload.get("role") not in roles:
                return (
                    jsonify({"error": "forbidden", "message": f"Requires role: {', '.join(roles)}"}),
                    403,
                )

            g.current_user = {"id": payload.get("user_id"), "role": payload.get("role")}
            return view(*args, **kwargs)

        return wrapper

    return decorator
