import sqlite3

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import DDL, CheckConstraint, UniqueConstraint, event
from sqlalchemy.engine import Engine

db = SQLAlchemy()

# Column limits, shared with request validation
MAX_INTEGER = 2**31 - 1
TITLE_LENGTH = 200
THEATER_LENGTH = 100
GENRE_LENGTH = 100
USER_ID_LENGTH = 100


class Movie(db.Model):
    __tablename__ = 'movies'
    __table_args__ = (
        UniqueConstraint('title', 'release_year', 'genre', 'duration', 'rating', name='uq_movies_identity'),
    )
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(TITLE_LENGTH), nullable=False)
    genre = db.Column(db.String(GENRE_LENGTH), nullable=False)
    duration = db.Column(db.Integer, nullable=False)
    rating = db.Column(db.Float, nullable=False)
    release_year = db.Column(db.Integer, nullable=False)


class Showtime(db.Model):
    __tablename__ = 'showtimes'
    __table_args__ = (
        CheckConstraint('end_time > start_time', name='ck_showtimes_interval'),
    )
    id = db.Column(db.Integer, primary_key=True)
    movie_title = db.Column(db.String(TITLE_LENGTH), nullable=False, index=True)
    theater = db.Column(db.String(THEATER_LENGTH), nullable=False, index=True)
    # naive UTC
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)


class Booking(db.Model):
    __tablename__ = 'bookings'
    __table_args__ = (
        UniqueConstraint('showtime_id', 'seat_number', name='uq_bookings_seat'),
    )
    booking_id = db.Column(db.String(36), primary_key=True)
    showtime_id = db.Column(
        db.Integer,
        db.ForeignKey('showtimes.id', ondelete='CASCADE'),
        nullable=False,
        index=True,
    )
    seat_number = db.Column(db.Integer, nullable=False)
    user_id = db.Column(db.String(USER_ID_LENGTH), nullable=False, index=True)
    created_at = db.Column(db.DateTime, server_default=db.func.now())


# Storage-level overlap guard. Half-open intervals: touching endpoints are allowed.
_SQLITE_OVERLAP_INSERT = DDL("""
CREATE TRIGGER showtimes_no_overlap_insert
BEFORE INSERT ON showtimes
FOR EACH ROW WHEN EXISTS (
    SELECT 1 FROM showtimes
    WHERE theater = NEW.theater
      AND start_time < NEW.end_time
      AND end_time > NEW.start_time
)
BEGIN
    SELECT RAISE(ABORT, 'overlapping showtime in theater');
END
""")

_SQLITE_OVERLAP_UPDATE = DDL("""
CREATE TRIGGER showtimes_no_overlap_update
BEFORE UPDATE OF theater, start_time, end_time ON showtimes
FOR EACH ROW WHEN EXISTS (
    SELECT 1 FROM showtimes
    WHERE theater = NEW.theater
      AND id != NEW.id
      AND start_time < NEW.end_time
      AND end_time > NEW.start_time
)
BEGIN
    SELECT RAISE(ABORT, 'overlapping showtime in theater');
END
""")

_PG_BTREE_GIST = DDL("CREATE EXTENSION IF NOT EXISTS btree_gist")

_PG_OVERLAP_EXCLUSION = DDL(
    "ALTER TABLE showtimes ADD CONSTRAINT showtimes_no_overlap "
    "EXCLUDE USING gist (theater WITH =, tsrange(start_time, end_time, '[)') WITH &&)"
)

event.listen(Showtime.__table__, "after_create", _SQLITE_OVERLAP_INSERT.execute_if(dialect="sqlite"))
event.listen(Showtime.__table__, "after_create", _SQLITE_OVERLAP_UPDATE.execute_if(dialect="sqlite"))
event.listen(Showtime.__table__, "before_create", _PG_BTREE_GIST.execute_if(dialect="postgresql"))
event.listen(Showtime.__table__, "after_create", _PG_OVERLAP_EXCLUSION.execute_if(dialect="postgresql"))


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores foreign keys (and ON DELETE CASCADE) unless asked
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
