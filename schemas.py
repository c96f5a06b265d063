from datetime import timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict

from marshmallow import EXCLUDE, Schema, fields, post_load, pre_load, validate

from models import GENRE_LENGTH, MAX_INTEGER, THEATER_LENGTH, TITLE_LENGTH, USER_ID_LENGTH

MAX_PRICE = Decimal("99999999.99")
SEAT_RANGE = validate.Range(min=1, max=MAX_INTEGER, error="Seat number must be between 1 and {max}")
ID_RANGE = validate.Range(max=MAX_INTEGER, error="Id must be at most {max}")


def _strip_strings(data: Dict[str, Any], keys):
    for key in keys:
        value = data.get(key)
        if isinstance(value, str):
            data[key] = value.strip()
    return data


class ShowtimeSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id = fields.Int(dump_only=True)
    movie_title = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, error="Movie title is required"),
            validate.Length(max=TITLE_LENGTH, error="Movie title must be at most {max} characters"),
        ],
    )
    theater = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, error="Theater name is required"),
            validate.Length(max=THEATER_LENGTH, error="Theater name must be at most {max} characters"),
        ],
    )
    start_time = fields.DateTime(required=True)
    end_time = fields.DateTime(required=True)
    price = fields.Decimal(
        required=True,
        places=2,
        rounding=ROUND_HALF_UP,
        as_string=True,
        validate=[
            validate.Range(min=0, min_inclusive=False, error="Price must be positive"),
            validate.Range(max=MAX_PRICE, error="Price must be at most {max}"),
        ],
    )

    @pre_load
    def strip_names(self, data, **kwargs):
        if isinstance(data, dict):
            data = _strip_strings(dict(data), ("movie_title", "theater"))
        return data

    @post_load
    def to_naive_utc(self, data, **kwargs):
        # Aware timestamps are stored as naive UTC so every interval compares on one clock
        for key in ("start_time", "end_time"):
            value = data.get(key)
            if value is not None and value.tzinfo is not None:
                data[key] = value.astimezone(timezone.utc).replace(tzinfo=None)
        return data


class BookingRequestSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    showtime_id = fields.Int(required=True, strict=True, validate=ID_RANGE)
    seat_number = fields.Int(required=True, strict=True, validate=SEAT_RANGE)
    user_id = fields.Str(
        required=True,
        validate=validate.Length(max=USER_ID_LENGTH, error="User ID must be at most {max} characters"),
    )

    @pre_load
    def strip_user(self, data, **kwargs):
        if isinstance(data, dict):
            data = _strip_strings(dict(data), ("user_id",))
        return data


class BookingSchema(Schema):
    booking_id = fields.Str()
    showtime_id = fields.Int()
    seat_number = fields.Int()
    user_id = fields.Str()
    created_at = fields.DateTime()


class MovieSchema(Schema):
    class Meta:
        unknown = EXCLUDE

    id = fields.Int(dump_only=True)
    title = fields.Str(required=True, validate=validate.Length(min=1, max=TITLE_LENGTH, error="Title must be 1 to {max} characters"))
    genre = fields.Str(required=True, validate=validate.Length(min=1, max=GENRE_LENGTH, error="Genre must be 1 to {max} characters"))
    duration = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, max=MAX_INTEGER, error="Duration must be a positive number"),
    )
    rating = fields.Float(required=True, validate=validate.Range(min=0, max=10, error="Rating must be between 0 and 10"))
    release_year = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1900, max=MAX_INTEGER, error="Release year must be greater than 1900"),
    )

    @pre_load
    def strip_text(self, data, **kwargs):
        if isinstance(data, dict):
            data = _strip_strings(dict(data), ("title", "genre"))
        return data


showtime_schema = ShowtimeSchema()
showtimes_schema = ShowtimeSchema(many=True)
booking_request_schema = BookingRequestSchema()
booking_schema = BookingSchema()
bookings_schema = BookingSchema(many=True)
movie_schema = MovieSchema()
movies_schema = MovieSchema(many=True)
