"""Seat bookings: one active booking per (showtime, seat)."""

import uuid

from loguru import logger
from sqlalchemy import select

from errors import DomainError, ErrorKind
from models import MAX_INTEGER, USER_ID_LENGTH, Booking, Showtime
from store import TransactionalStore


def _seat_taken_message(seat_number):
    return f"Seat {seat_number} is already booked for this showtime."


class BookingLedger:

    def __init__(self, store=None):
        self.store = store or TransactionalStore.from_app()

    def get(self, booking_id) -> Booking:
        booking = self.store.find_by_id(Booking, str(booking_id))
        if booking is None:
            raise DomainError(ErrorKind.NOT_FOUND, f"Booking not found with id {booking_id}")
        return booking

    def list_by_user(self, user_id):
        return self.store.list_where(
            Booking,
            Booking.user_id == user_id,
            order_by=(Booking.created_at, Booking.booking_id),
        )

    def book(self, showtime_id, seat_number, user_id) -> Booking:
        # bool is an int subclass; reject it explicitly
        if not isinstance(seat_number, int) or isinstance(seat_number, bool) or seat_number <= 0:
            raise DomainError(ErrorKind.INVALID_DATA, "Seat number must be a positive integer.")
        if seat_number > MAX_INTEGER:
            raise DomainError(ErrorKind.INVALID_DATA, f"Seat number must be at most {MAX_INTEGER}.")
        if not isinstance(user_id, str) or not user_id.strip():
            raise DomainError(ErrorKind.INVALID_DATA, "User ID is required.")
        if len(user_id) > USER_ID_LENGTH:
            raise DomainError(ErrorKind.INVALID_DATA, f"User ID must be at most {USER_ID_LENGTH} characters.")

        def work(store):
            if store.find_by_id(Showtime, showtime_id) is None:
                raise DomainError(ErrorKind.NOT_FOUND, f"Showtime not found with id {showtime_id}")
            booking = Booking(
                booking_id=str(uuid.uuid4()),
                showtime_id=showtime_id,
                seat_number=seat_number,
                user_id=user_id,
            )
            taken = select(Booking.booking_id).where(
                Booking.showtime_id == showtime_id,
                Booking.seat_number == seat_number,
            )
            if store.insert_if_no_conflict(booking, taken) is None:
                raise DomainError(ErrorKind.SEAT_CONFLICT, _seat_taken_message(seat_number))
            return booking

        def showtime_vanished(exc):
            # The showtime was deleted between the existence check and the insert
            if "FOREIGN KEY" in str(exc.orig).upper():
                return DomainError(ErrorKind.NOT_FOUND, f"Showtime not found with id {showtime_id}")
            return None

        try:
            booking = self.store.atomic(
                work,
                ErrorKind.SEAT_CONFLICT,
                _seat_taken_message(seat_number),
                on_integrity_error=showtime_vanished,
            )
        except DomainError as exc:
            if exc.kind is ErrorKind.SEAT_CONFLICT:
                logger.info(f"Seat {seat_number} of showtime {showtime_id} refused for {user_id}")
            raise
        logger.info(f"Booked seat {seat_number} of showtime {showtime_id} for {user_id} ({booking.booking_id})")
        return booking

    def cancel(self, booking_id):
        def work(store):
            store.delete(self.get(booking_id))

        self.store.atomic(work, None, f"Booking {booking_id} could not be cancelled")
        logger.info(f"Cancelled booking {booking_id}")
