from datetime import date

import pytest

from apps.bookings.domain.state_machine import (
    HOLDING_STATUSES,
    TERMINAL_STATUSES,
    BookingEvent,
    BookingStatus,
    allowed_events,
    next_status,
)

EXPECTED = {
    (BookingStatus.PENDING, BookingEvent.PAYMENT_CAPTURED): BookingStatus.CONFIRMED,
    (BookingStatus.PENDING, BookingEvent.CANCELLED): BookingStatus.CANCELLED,
    (BookingStatus.PENDING, BookingEvent.HOLD_EXPIRED): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingEvent.PICKED_UP): BookingStatus.ACTIVE,
    (BookingStatus.CONFIRMED, BookingEvent.CANCELLED): BookingStatus.CANCELLED,
    (BookingStatus.ACTIVE, BookingEvent.RETURNED): BookingStatus.COMPLETED,
}


@pytest.mark.parametrize("status", list(BookingStatus))
@pytest.mark.parametrize("event", list(BookingEvent))
def test_transition_table(status, event):
    check = next_status(status, event)

    if (status, event) in EXPECTED:
        assert check.allowed is True
        assert check.target == EXPECTED[(status, event)]
    else:
        assert check.allowed is False
        assert check.target is None


@pytest.mark.parametrize("status", [BookingStatus.ACTIVE, BookingStatus.COMPLETED, BookingStatus.CANCELLED])
def test_cannot_cancel_after_pickup_or_terminal(status):
    assert next_status(status, BookingEvent.CANCELLED).allowed is False


def test_return_before_end_date_rejected():
    check = next_status(
        BookingStatus.ACTIVE,
        BookingEvent.RETURNED,
        end_date=date(2030, 6, 10),
        today=date(2030, 6, 9),
    )

    assert check.allowed is False
    assert "2030-06-10" in check.reason


def test_return_on_end_date_allowed():
    check = next_status(
        BookingStatus.ACTIVE,
        BookingEvent.RETURNED,
        end_date=date(2030, 6, 10),
        today=date(2030, 6, 10),
    )

    assert check.allowed is True


def test_accepts_plain_strings():
    assert next_status("pending", "payment_captured").target == BookingStatus.CONFIRMED


def test_status_sets():
    assert HOLDING_STATUSES.isdisjoint(TERMINAL_STATUSES)
    assert HOLDING_STATUSES | TERMINAL_STATUSES == set(BookingStatus)
    assert allowed_events(BookingStatus.COMPLETED) == frozenset()
    assert allowed_events(BookingStatus.ACTIVE) == {BookingEvent.RETURNED}
