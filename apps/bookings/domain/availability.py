"""
Availability Checker

Determines how many units of an item are free on every day of a window.

For each calendar day ``d`` of the window:

    reserved(d)  = sum(quantity of holding bookings whose range covers d)
    remaining(d) = quantity_total - reserved(d)

The window is available for ``n`` units iff ``min(remaining) >= n``.

Ranges are inclusive at both ends: a booking returned on day X and a
booking picked up on day X both consume day X. An optional buffer widens
every existing booking by that many days on each side for turnover.

The functions here are pure; the caller supplies the item's stock and
the reservations already filtered to holding statuses.
"""

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Tuple

from shared.domain.base import ValueObject
from shared.domain.value_objects import DateRange


@dataclass(frozen=True)
class Reservation(ValueObject):
    """Units held by one existing booking"""
    start_date: date
    end_date: date
    quantity: int = 1

    @property
    def dates(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)


@dataclass(frozen=True)
class AvailabilityResult(ValueObject):
    available: bool
    remaining_on_worst_day: int
    worst_day: date | None = None


def remaining_by_day(
    quantity_total: int,
    reservations: Iterable[Reservation],
    window: DateRange,
    buffer_days: int = 0,
    rentable: bool = True,
) -> Dict[date, int]:
    """Free units for every day of ``window``, in date order."""
    reserved = {day: 0 for day in window.days()}
    if not rentable:
        return reserved

    for reservation in reservations:
        span = reservation.dates.widen(buffer_days)
        if not span.overlaps_with(window):
            continue
        overlap = DateRange(
            max(span.start_date, window.start_date),
            min(span.end_date, window.end_date),
        )
        for day in overlap.days():
            reserved[day] += reservation.quantity

    return {day: max(quantity_total - count, 0) for day, count in reserved.items()}


def check_availability(
    quantity_total: int,
    reservations: Iterable[Reservation],
    window: DateRange,
    requested_qty: int,
    buffer_days: int = 0,
    rentable: bool = True,
) -> AvailabilityResult:
    """Is ``requested_qty`` free on every day of ``window``?"""
    remaining = remaining_by_day(quantity_total, reservations, window, buffer_days, rentable)
    worst_day = min(remaining, key=lambda day: (remaining[day], day))
    worst = remaining[worst_day]
    return AvailabilityResult(
        available=worst >= requested_qty,
        remaining_on_worst_day=worst,
        worst_day=worst_day,
    )


def calendar(
    quantity_total: int,
    reservations: Iterable[Reservation],
    window: DateRange,
    buffer_days: int = 0,
    rentable: bool = True,
) -> List[Tuple[date, int]]:
    return sorted(remaining_by_day(quantity_total, reservations, window, buffer_days, rentable).items())
