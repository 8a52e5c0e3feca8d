"""Domain errors raised by the workflows and rendered by the routes."""
from __future__ import annotations

from flask import jsonify


class ServiceError(Exception):
    status = 500
    code = "server_error"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_response(self):
        return jsonify({"error": self.code, "message": self.message}), self.status


class InvalidInput(ServiceError):
    status = 400
    code = "invalid_input"


class Forbidden(ServiceError):
    status = 403
    code = "forbidden"


class NotFound(ServiceError):
    status = 404
    code = "not_found"


class Conflict(ServiceError):
    status = 409
    code = "conflict"
