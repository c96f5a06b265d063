from flask import Blueprint, jsonify, request

from schemas import booking_request_schema, booking_schema, bookings_schema
from services.booking_ledger import BookingLedger

booking_bp = Blueprint("booking_api", __name__)


@booking_bp.route("/bookings", methods=["POST"])
def book_ticket():
    payload = booking_request_schema.load(request.get_json(silent=True) or {})
    booking = BookingLedger().book(
        payload["showtime_id"],
        payload["seat_number"],
        payload["user_id"],
    )
    return jsonify({"message": "Booking stored successfully", "booking": booking_schema.dump(booking)}), 201


@booking_bp.route("/bookings/<booking_id>", methods=["GET"])
def get_booking(booking_id):
    booking = BookingLedger().get(booking_id)
    return jsonify(booking_schema.dump(booking))


@booking_bp.route("/bookings/user/<user_id>", methods=["GET"])
def list_user_bookings(user_id):
    bookings = BookingLedger().list_by_user(user_id)
    return jsonify({"bookings": bookings_schema.dump(bookings)})


@booking_bp.route("/bookings/<booking_id>", methods=["DELETE"])
def cancel_booking(booking_id):
    # Hard delete: the seat is free as soon as this returns
    BookingLedger().cancel(booking_id)
    return jsonify({"message": "Booking cancelled successfully", "booking_id": booking_id})
