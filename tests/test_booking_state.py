import pytest

from app.core.exceptions import InvalidBookingStatus
from app.domain.booking_state import (
    BOOKING_TRANSITIONS,
    TERMINAL_STATUSES,
    BookingOperation,
    BookingStatus,
    assert_deletable,
    next_booking_status,
)


@pytest.mark.parametrize(
    "current, operation, expected",
    [
        ("pending", BookingOperation.ACCEPT, BookingStatus.CONFIRMED),
        ("pending", BookingOperation.REJECT, BookingStatus.REJECTED),
        ("confirmed", BookingOperation.COMPLETE, BookingStatus.COMPLETED),
    ],
)
def test_allowed_transitions(current, operation, expected):
    assert next_booking_status(current, operation) is expected


@pytest.mark.parametrize(
    "current, operation",
    [
        ("pending", BookingOperation.COMPLETE),
        ("confirmed", BookingOperation.ACCEPT),
        ("confirmed", BookingOperation.REJECT),
        ("rejected", BookingOperation.ACCEPT),
        ("rejected", BookingOperation.COMPLETE),
        ("completed", BookingOperation.REJECT),
        ("completed", BookingOperation.ACCEPT),
    ],
)
def test_disallowed_transitions_raise(current, operation):
    with pytest.raises(InvalidBookingStatus) as exc_info:
        next_booking_status(current, operation)
    assert exc_info.value.status_code == 400
    assert exc_info.value.current == current


def test_unknown_status_raises():
    with pytest.raises(InvalidBookingStatus):
        next_booking_status("archived", BookingOperation.ACCEPT)


def test_no_transition_leads_back_to_pending():
    assert BookingStatus.PENDING not in BOOKING_TRANSITIONS.values()


def test_terminal_statuses_have_no_outgoing_edges():
    for (current, _), _target in BOOKING_TRANSITIONS.items():
        assert current not in TERMINAL_STATUSES


@pytest.mark.parametrize("current", ["completed", "rejected"])
def test_final_bookings_report_that_they_are_final(current):
    with pytest.raises(InvalidBookingStatus) as exc_info:
        next_booking_status(current, BookingOperation.ACCEPT)
    assert exc_info.value.detail == f"This booking is already {current} and can no longer be changed."


def test_assert_deletable_requires_exact_status():
    assert_deletable("completed", BookingStatus.COMPLETED)
    with pytest.raises(InvalidBookingStatus) as exc_info:
        assert_deletable("confirmed", BookingStatus.COMPLETED)
    assert "not marked as completed" in exc_info.value.detail
