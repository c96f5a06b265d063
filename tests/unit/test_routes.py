import json

from errors import InternalError
from models import Booking, Movie, Showtime
from services.schedule_registry import ScheduleRegistry


def post_json(client, url, payload):
    return client.post(url, data=json.dumps(payload), content_type="application/json")


def showtime_payload(start="2025-03-01T18:00:00", end="2025-03-01T20:30:00", theater="T1", **extra):
    payload = {
        "movie_title": "Interstellar",
        "theater": theater,
        "start_time": start,
        "end_time": end,
        "price": 12.5,
    }
    payload.update(extra)
    return payload


def create_showtime(client, **kwargs):
    response = post_json(client, "/showtimes", showtime_payload(**kwargs))
    assert response.status_code == 201
    return response.get_json()["showtime"]["id"]


# test a successful showtime creation
def test_post_showtime_success(client):
    response = post_json(client, "/showtimes", showtime_payload())

    assert response.status_code == 201
    body = response.get_json()
    assert body["showtime"]["theater"] == "T1"
    assert body["showtime"]["price"] == "12.50"
    assert body["showtime"]["start_time"].startswith("2025-03-01T18:00:00")
    assert Showtime.query.count() == 1


def test_post_showtime_with_offset_is_stored_as_utc(client):
    showtime_id = create_showtime(client, start="2025-03-01T20:00:00+02:00", end="2025-03-01T22:00:00+02:00")
    body = client.get(f"/showtimes/{showtime_id}").get_json()
    assert body["start_time"].startswith("2025-03-01T18:00:00")


def test_post_overlapping_showtime_returns_conflict(client):
    create_showtime(client)
    response = post_json(client, "/showtimes", showtime_payload(start="2025-03-01T19:00:00", end="2025-03-01T21:00:00"))

    assert response.status_code == 409
    assert response.get_json()["error"] == "scheduling_conflict"


def test_post_back_to_back_showtime_is_accepted(client):
    create_showtime(client)
    response = post_json(client, "/showtimes", showtime_payload(start="2025-03-01T20:30:00", end="2025-03-01T22:00:00"))
    assert response.status_code == 201


def test_post_reversed_showtime_returns_invalid_interval(client):
    response = post_json(client, "/showtimes", showtime_payload(start="2025-03-01T10:00:00", end="2025-03-01T09:00:00"))

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_interval"


def test_post_showtime_missing_fields(client):
    response = post_json(client, "/showtimes", {"movie_title": "Interstellar", "price": -1})

    assert response.status_code == 400
    body = response.get_json()
    assert body["message"] == "Invalid input"
    fields = {error["field"] for error in body["errors"]}
    assert {"theater", "start_time", "end_time", "price"} <= fields
    price_errors = [error["msg"] for error in body["errors"] if error["field"] == "price"]
    assert "Price must be positive" in price_errors


def test_get_showtime_not_found(client):
    response = client.get("/showtimes/999")
    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"


def test_get_showtime_with_id_beyond_integer_range_is_not_found(client):
    response = client.get(f"/showtimes/{2**63}")
    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"


def test_post_showtime_with_overlong_names(client):
    response = post_json(client, "/showtimes", showtime_payload(theater="x" * 101, movie_title="m" * 201))

    assert response.status_code == 400
    fields = {error["field"] for error in response.get_json()["errors"]}
    assert fields == {"theater", "movie_title"}
    assert Showtime.query.count() == 0


def test_list_showtimes_by_movie_and_theater(client):
    create_showtime(client)
    create_showtime(client, theater="T2")
    create_showtime(client, start="2025-03-01T21:00:00", end="2025-03-01T23:00:00", movie_title="Heat")

    response = client.get("/showtimes/movie/Interstellar/theater/T1")
    assert response.status_code == 200
    showtimes = response.get_json()["showtimes"]
    assert len(showtimes) == 1
    assert showtimes[0]["theater"] == "T1"
    assert len(client.get("/showtimes").get_json()["showtimes"]) == 3


def test_update_showtime_via_post(client):
    showtime_id = create_showtime(client)
    response = post_json(client, f"/showtimes/update/{showtime_id}", {"price": 15, "end_time": "2025-03-01T21:00:00"})

    assert response.status_code == 200
    body = response.get_json()
    assert body["showtime"]["price"] == "15.00"
    assert body["showtime"]["end_time"].startswith("2025-03-01T21:00:00")


def test_patch_showtime_into_overlap_returns_conflict(client):
    create_showtime(client)
    other_id = create_showtime(client, start="2025-03-01T21:00:00", end="2025-03-01T23:00:00")

    response = client.patch(
        f"/showtimes/{other_id}",
        data=json.dumps({"start_time": "2025-03-01T20:00:00"}),
        content_type="application/json",
    )
    assert response.status_code == 409
    assert client.get(f"/showtimes/{other_id}").get_json()["start_time"].startswith("2025-03-01T21:00:00")


def test_patch_showtime_without_fields(client):
    showtime_id = create_showtime(client)
    response = client.patch(f"/showtimes/{showtime_id}", data=json.dumps({}), content_type="application/json")
    assert response.status_code == 400


def test_update_unknown_showtime(client):
    response = client.put("/showtimes/77", data=json.dumps({"price": 3}), content_type="application/json")
    assert response.status_code == 404


def test_delete_showtime_cancels_bookings(client):
    showtime_id = create_showtime(client)
    post_json(client, "/bookings", {"showtime_id": showtime_id, "seat_number": 1, "user_id": "alice"})

    response = client.delete(f"/showtimes/{showtime_id}")
    assert response.status_code == 200
    body = response.get_json()
    assert body["showtime_id"] == showtime_id
    assert body["cancelled_bookings"] == 1
    assert Booking.query.count() == 0
    assert client.delete(f"/showtimes/{showtime_id}").status_code == 404


# test a successful booking creation
def test_post_booking_success(client):
    showtime_id = create_showtime(client)
    response = post_json(client, "/bookings", {"showtime_id": showtime_id, "seat_number": 5, "user_id": "alice"})

    assert response.status_code == 201
    body = response.get_json()
    assert body["message"] == "Booking stored successfully"
    assert body["booking"]["seat_number"] == 5
    assert body["booking"]["user_id"] == "alice"
    assert Booking.query.filter_by(user_id="alice").count() == 1


def test_post_booking_taken_seat_returns_conflict(client):
    showtime_id = create_showtime(client)
    post_json(client, "/bookings", {"showtime_id": showtime_id, "seat_number": 5, "user_id": "u1"})
    response = post_json(client, "/bookings", {"showtime_id": showtime_id, "seat_number": 5, "user_id": "u2"})

    assert response.status_code == 409
    assert response.get_json()["error"] == "seat_conflict"


def test_post_booking_invalid_seat(client):
    showtime_id = create_showtime(client)
    response = post_json(client, "/bookings", {"showtime_id": showtime_id, "seat_number": 0, "user_id": "u1"})

    assert response.status_code == 400
    assert response.get_json()["error"] == "invalid_data"


def test_post_booking_numbers_beyond_integer_range(client):
    showtime_id = create_showtime(client)
    response = post_json(client, "/bookings", {"showtime_id": showtime_id, "seat_number": 2**63, "user_id": "u1"})
    assert response.status_code == 400
    assert [error["field"] for error in response.get_json()["errors"]] == ["seat_number"]

    response = post_json(client, "/bookings", {"showtime_id": 2**63, "seat_number": 1, "user_id": "u1"})
    assert response.status_code == 400
    assert [error["field"] for error in response.get_json()["errors"]] == ["showtime_id"]
    assert Booking.query.count() == 0


def test_post_booking_overlong_user_id(client):
    showtime_id = create_showtime(client)
    response = post_json(client, "/bookings", {"showtime_id": showtime_id, "seat_number": 1, "user_id": "u" * 101})

    assert response.status_code == 400
    assert [error["field"] for error in response.get_json()["errors"]] == ["user_id"]


def test_post_booking_missing_user(client):
    response = post_json(client, "/bookings", {"showtime_id": 1, "seat_number": 2})

    assert response.status_code == 400
    assert any(error["field"] == "user_id" for error in response.get_json()["errors"])


def test_post_booking_unknown_showtime(client):
    response = post_json(client, "/bookings", {"showtime_id": 31, "seat_number": 2, "user_id": "u1"})
    assert response.status_code == 404


def test_get_cancel_and_list_bookings(client):
    showtime_id = create_showtime(client)
    created = post_json(client, "/bookings", {"showtime_id": showtime_id, "seat_number": 3, "user_id": "carol"})
    booking_id = created.get_json()["booking"]["booking_id"]

    assert client.get(f"/bookings/{booking_id}").get_json()["seat_number"] == 3
    assert len(client.get("/bookings/user/carol").get_json()["bookings"]) == 1

    response = client.delete(f"/bookings/{booking_id}")
    assert response.status_code == 200
    assert response.get_json() == {"message": "Booking cancelled successfully", "booking_id": booking_id}

    assert client.delete(f"/bookings/{booking_id}").status_code == 404
    assert client.get(f"/bookings/{booking_id}").status_code == 404
    assert client.get("/bookings/user/carol").get_json()["bookings"] == []


def movie_payload(**extra):
    payload = {"title": "Arrival", "genre": "Sci-Fi", "duration": 116, "rating": 7.9, "release_year": 2016}
    payload.update(extra)
    return payload


def test_movie_crud(client):
    response = post_json(client, "/movies", movie_payload())
    assert response.status_code == 201
    assert response.get_json()["movie"]["title"] == "Arrival"

    assert post_json(client, "/movies", movie_payload()).status_code == 409
    assert client.get("/movies/Arrival").get_json()["genre"] == "Sci-Fi"
    assert len(client.get("/movies/all").get_json()["movies"]) == 1

    response = client.put("/movies/Arrival", data=json.dumps({"rating": 8.1}), content_type="application/json")
    assert response.status_code == 200
    assert response.get_json()["movie"]["rating"] == 8.1

    assert client.delete("/movies/Arrival").status_code == 200
    assert Movie.query.count() == 0
    assert client.get("/movies/Arrival").status_code == 404
    assert client.delete("/movies/Arrival").status_code == 404


def test_movie_validation_errors(client):
    response = post_json(client, "/movies", movie_payload(duration=0, release_year=1800))

    assert response.status_code == 400
    fields = {error["field"] for error in response.get_json()["errors"]}
    assert fields == {"duration", "release_year"}


def test_movie_overlong_text_is_rejected(client):
    response = post_json(client, "/movies", movie_payload(title="t" * 201, genre="g" * 101))

    assert response.status_code == 400
    fields = {error["field"] for error in response.get_json()["errors"]}
    assert fields == {"title", "genre"}
    assert Movie.query.count() == 0


def test_internal_error_is_opaque(client, monkeypatch):
    def broken(self):
        raise InternalError("storage failure")

    monkeypatch.setattr(ScheduleRegistry, "list_all", broken)
    response = client.get("/showtimes")

    assert response.status_code == 500
    assert response.get_json() == {"message": "Internal Server Error", "error": "internal"}
