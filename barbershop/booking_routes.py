"""Client booking routes: what can be booked, open slots and the booking itself."""
from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .auth import role_required
from .booking import BookingHandler, available_slots, parse_day, parse_id
from .errors import InvalidInput, ServiceError
from .extensions import db
from .models import Appointment
from .queries import booking_barbers, booking_services
from .routes import get_datastore, json_body

bp_booking = Blueprint("booking", __name__, url_prefix="/booking")


@bp_booking.get("/services")
@role_required("client")
def list_services() -> tuple[dict[str, object], int]:
    try:
        return jsonify(booking_services()), 200
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch services for booking", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_booking.get("/barbers")
@role_required("client")
def list_barbers() -> tuple[dict[str, object], int]:
    try:
        return jsonify(booking_barbers()), 200
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to fetch barbers for booking", exc_info=exc)
        return jsonify({"error": "database_error"}), 500


@bp_booking.get("/availability")
@role_required("client")
def get_availability() -> tuple[dict[str, object], int]:
    """Open start times for a service with a barber on a day.
    ---
    tags:
      - Booking
    parameters:
      - in: query
        name: date
        required: true
        schema:
          type: string
          format: date
      - in: query
        name: serviceId
        required: true
        schema:
          type: integer
      - in: query
        name: barberId
        required: true
        schema:
          type: integer
    responses:
      200:
        description: List of slots such as "9:30 AM"
      400:
        description: Missing or malformed parameters
      404:
        description: Service inactive or barber not found
    """
    args = request.args
    try:
        if not args.get("date") or not args.get("serviceId") or not args.get("barberId"):
            raise InvalidInput("date, serviceId and barberId are required", code="invalid_request")
        day = parse_day(args["date"])
        service_id = parse_id(args["serviceId"], "serviceId")
        barber_id = parse_id(args["barberId"], "barberId")
        slots = available_slots(
            db.session.connection(), service_id, barber_id, day, current_app.config["SHOP_TIMEZONE"]
        )
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to compute availability", exc_info=exc)
        return jsonify({"error": "database_error"}), 500

    return jsonify(slots), 200


@bp_booking.post("/create")
@role_required("client")
def create_booking() -> tuple[dict[str, object], int]:
    """Book a pending appointment for the authenticated client.

    The client, the barber and every admin are notified in the same
    transaction as the insert.
    ---
    tags:
      - Booking
    parameters:
      - in: body
        name: body
        required: true
        schema:
          properties:
            serviceId:
              type: integer
            barberId:
              type: integer
            date:
              type: string
              format: date
            timeSlot:
              type: string
              example: "2:30 PM"
            notes:
              type: string
    responses:
      201:
        description: Appointment booked with status pending
      400:
        description: Missing or malformed fields
      404:
        description: Service inactive or barber not found
      409:
        description: Slot already taken
      500:
        description: Database error
    """
    handler = BookingHandler(get_datastore(), current_app.config["SHOP_TIMEZONE"])

    try:
        appointment_id = handler.create(g.current_user["id"], json_body())
        appointment = db.session.get(Appointment, appointment_id)
    except ServiceError as exc:
        return exc.to_response()
    except SQLAlchemyError as exc:
        current_app.logger.exception("Failed to create booking", exc_info=exc)
        return jsonify({"error": "database_error", "message": "Server error"}), 500

    return jsonify(appointment.to_dict()), 201
