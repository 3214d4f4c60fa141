"""Booking state machine."""

from enum import Enum

from app.core.exceptions import InvalidBookingStatus


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    REJECTED = "rejected"


class BookingOperation(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    COMPLETE = "complete"


BOOKING_TRANSITIONS: dict[tuple[BookingStatus, BookingOperation], BookingStatus] = {
    (BookingStatus.PENDING, BookingOperation.ACCEPT): BookingStatus.CONFIRMED,
    (BookingStatus.PENDING, BookingOperation.REJECT): BookingStatus.REJECTED,
    (BookingStatus.CONFIRMED, BookingOperation.COMPLETE): BookingStatus.COMPLETED,
}

TERMINAL_STATUSES = frozenset({BookingStatus.COMPLETED, BookingStatus.REJECTED})


def next_booking_status(current: str, operation: BookingOperation) -> BookingStatus:
    """Resolve the status reached by applying ``operation`` to ``current``."""
    try:
        status = BookingStatus(current)
    except ValueError:
        raise InvalidBookingStatus(f"Unknown booking status: {current}", current=current)

    if status in TERMINAL_STATUSES:
        raise InvalidBookingStatus(
            f"This booking is already {current} and can no longer be changed.",
            current=current,
        )

    target = BOOKING_TRANSITIONS.get((status, operation))
    if target is None:
        raise InvalidBookingStatus(
            f"Cannot {operation.value} a booking that is {current}",
            current=current,
        )
    return target


def assert_deletable(current: str, expected: BookingStatus) -> None:
    """Hard deletion is only allowed from the expected state."""
    if current != expected.value:
        raise InvalidBookingStatus(
            f"This booking is not marked as {expected.value} and cannot be deleted.",
            current=current,
        )
