from flask import Blueprint, jsonify, request

from schemas import showtime_schema, showtimes_schema
from services.schedule_registry import ScheduleRegistry

showtime_bp = Blueprint("showtime_api", __name__)


@showtime_bp.route("/showtimes", methods=["GET"])
def list_showtimes():
    return jsonify({"showtimes": showtimes_schema.dump(ScheduleRegistry().list_all())})


@showtime_bp.route("/showtimes/<int:showtime_id>", methods=["GET"])
def get_showtime(showtime_id: int):
    return jsonify(showtime_schema.dump(ScheduleRegistry().get(showtime_id)))


@showtime_bp.route("/showtimes/movie/<movie_title>/theater/<theater>", methods=["GET"])
def list_showtimes_for_movie_and_theater(movie_title, theater):
    showtimes = ScheduleRegistry().list_by_movie_and_theater(movie_title, theater)
    return jsonify({"showtimes": showtimes_schema.dump(showtimes)})


@showtime_bp.route("/showtimes", methods=["POST"])
def add_showtime():
    payload = showtime_schema.load(request.get_json(silent=True) or {})
    showtime = ScheduleRegistry().add(payload)
    return jsonify({"message": "Showtime created", "showtime": showtime_schema.dump(showtime)}), 201


@showtime_bp.route("/showtimes/update/<int:showtime_id>", methods=["POST"])
@showtime_bp.route("/showtimes/<int:showtime_id>", methods=["PUT", "PATCH"])
def update_showtime(showtime_id: int):
    payload = showtime_schema.load(request.get_json(silent=True) or {}, partial=True)
    if not payload:
        return jsonify({"message": "No valid fields provided for update", "error": "invalid_data"}), 400

    showtime = ScheduleRegistry().update(showtime_id, payload)
    return jsonify({"message": "Showtime updated", "showtime": showtime_schema.dump(showtime)})


@showtime_bp.route("/showtimes/<int:showtime_id>", methods=["DELETE"])
def delete_showtime(showtime_id: int):
    # Bookings for the showtime are cancelled along with it
    cancelled = ScheduleRegistry().delete(showtime_id)
    return jsonify(
        {
            "message": "Showtime deleted successfully",
            "showtime_id": showtime_id,
            "cancelled_bookings": cancelled,
        }
    )
