"""Showtime scheduling: interval validation and per-theater overlap detection."""

from loguru import logger
from sqlalchemy import select

from errors import DomainError, ErrorKind
from models import Booking, Showtime
from store import TransactionalStore

SHOWTIME_FIELDS = ("movie_title", "theater", "start_time", "end_time", "price")


def intervals_overlap(start_a, end_a, start_b, end_b) -> bool:
    """Half-open overlap test. Intervals that only touch do not overlap."""
    return start_a < end_b and end_a > start_b


def overlapping_query(theater, start_time, end_time, exclude_id=None):
    query = select(Showtime.id).where(
        Showtime.theater == theater,
        Showtime.start_time < end_time,
        Showtime.end_time > start_time,
    )
    if exclude_id is not None:
        query = query.where(Showtime.id != exclude_id)
    return query


def _validate_interval(start_time, end_time):
    if start_time is None or end_time is None:
        raise DomainError(ErrorKind.INVALID_DATA, "Start time and end time are required.")
    if not end_time > start_time:
        raise DomainError(ErrorKind.INVALID_INTERVAL, "End time must be after start time.")


def _conflict_message(theater):
    return f"There is an overlapping showtime in theater: {theater}"


class ScheduleRegistry:

    def __init__(self, store=None):
        self.store = store or TransactionalStore.from_app()

    def get(self, showtime_id) -> Showtime:
        showtime = self.store.find_by_id(Showtime, showtime_id)
        if showtime is None:
            raise DomainError(ErrorKind.NOT_FOUND, f"Showtime not found with id {showtime_id}")
        return showtime

    def list_all(self):
        return self.store.list_where(Showtime, order_by=(Showtime.start_time, Showtime.id))

    def list_by_movie_and_theater(self, movie_title, theater):
        return self.store.list_where(
            Showtime,
            Showtime.movie_title == movie_title,
            Showtime.theater == theater,
            order_by=(Showtime.start_time, Showtime.id),
        )

    def add(self, candidate) -> Showtime:
        missing = [field for field in SHOWTIME_FIELDS if candidate.get(field) is None]
        if missing:
            raise DomainError(ErrorKind.INVALID_DATA, f"Missing required fields: {', '.join(missing)}")
        _validate_interval(candidate["start_time"], candidate["end_time"])

        theater = candidate["theater"]

        def work(store):
            showtime = Showtime(**{field: candidate[field] for field in SHOWTIME_FIELDS})
            conflict = overlapping_query(theater, candidate["start_time"], candidate["end_time"])
            if store.insert_if_no_conflict(showtime, conflict) is None:
                raise DomainError(ErrorKind.SCHEDULING_CONFLICT, _conflict_message(theater))
            return showtime

        try:
            showtime = self.store.atomic(work, ErrorKind.SCHEDULING_CONFLICT, _conflict_message(theater))
        except DomainError as exc:
            if exc.kind is ErrorKind.SCHEDULING_CONFLICT:
                logger.info(f"Rejected showtime in {theater}: {exc.message}")
            raise
        logger.info(f"Added showtime {showtime.id} in {showtime.theater} [{showtime.start_time}, {showtime.end_time})")
        return showtime

    def update(self, showtime_id, patch) -> Showtime:
        changes = {field: patch[field] for field in SHOWTIME_FIELDS if patch.get(field) is not None}

        def work(store):
            showtime = self.get(showtime_id)
            start_time = changes.get("start_time", showtime.start_time)
            end_time = changes.get("end_time", showtime.end_time)
            theater = changes.get("theater", showtime.theater)
            _validate_interval(start_time, end_time)

            conflict = overlapping_query(theater, start_time, end_time, exclude_id=showtime.id)
            if store.exists(conflict):
                raise DomainError(ErrorKind.SCHEDULING_CONFLICT, _conflict_message(theater))

            for field, value in changes.items():
                setattr(showtime, field, value)
            store.session.flush()
            return showtime

        showtime = self.store.atomic(
            work, ErrorKind.SCHEDULING_CONFLICT, f"Showtime {showtime_id} overlaps another showtime"
        )
        logger.info(f"Updated showtime {showtime.id}: {sorted(changes)}")
        return showtime

    def delete(self, showtime_id) -> int:
        """Delete a showtime and cancel its bookings. Returns the number cancelled."""

        def work(store):
            showtime = self.get(showtime_id)
            cancelled = store.delete_where(Booking, Booking.showtime_id == showtime.id)
            store.delete(showtime)
            return cancelled

        cancelled = self.store.atomic(work, None, f"Showtime {showtime_id} could not be deleted")
        logger.info(f"Deleted showtime {showtime_id}, cancelled {cancelled} booking(s)")
        return cancelled
