"""
Booking Status Finite State Machine

    PENDING ──payment_captured──> CONFIRMED ──picked_up──> ACTIVE ──returned──> COMPLETED
       │                              │
       ├──cancelled─────────┐         │
       └──hold_expired──────┴──> CANCELLED <──cancelled──┘

- PENDING holds inventory from the moment the booking is created, paid
  or not; the hold sweep cancels it when the payment window lapses.
- CANCELLED is reachable from PENDING and CONFIRMED only.
- ACTIVE -> COMPLETED is allowed on or after the booking's end date.

Inventory is never mutated on a transition: availability is computed
live from the holding statuses, so leaving them frees the units.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, FrozenSet, Tuple


class BookingStatus(str, Enum):
    PENDING = 'pending'
    CONFIRMED = 'confirmed'
    ACTIVE = 'active'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'


class PaymentStatus(str, Enum):
    PENDING = 'pending'
    PAID = 'paid'
    REFUNDED = 'refunded'
    PARTIAL_REFUND = 'partial_refund'


class PaymentMethod(str, Enum):
    """How a booking was settled; stored at confirmation, never inferred"""
    PENDING = 'pending'
    CARD = 'card'
    WALLET = 'wallet'
    PROMO = 'promo'


class BookingEvent(str, Enum):
    PAYMENT_CAPTURED = 'payment_captured'
    PICKED_UP = 'picked_up'
    RETURNED = 'returned'
    CANCELLED = 'cancelled'
    HOLD_EXPIRED = 'hold_expired'


HOLDING_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.PENDING,
    BookingStatus.CONFIRMED,
    BookingStatus.ACTIVE,
})

TERMINAL_STATUSES: FrozenSet[BookingStatus] = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
})

TRANSITIONS: Dict[Tuple[BookingStatus, BookingEvent], BookingStatus] = {
    (BookingStatus.PENDING, BookingEvent.PAYMENT_CAPTURED): BookingStatus.CONFIRMED,
    (BookingStatus.PENDING, BookingEvent.CANCELLED): BookingStatus.CANCELLED,
    (BookingStatus.PENDING, BookingEvent.HOLD_EXPIRED): BookingStatus.CANCELLED,
    (BookingStatus.CONFIRMED, BookingEvent.PICKED_UP): BookingStatus.ACTIVE,
    (BookingStatus.CONFIRMED, BookingEvent.CANCELLED): BookingStatus.CANCELLED,
    (BookingStatus.ACTIVE, BookingEvent.RETURNED): BookingStatus.COMPLETED,
}


@dataclass(frozen=True)
class TransitionCheck:
    allowed: bool
    target: BookingStatus | None = None
    reason: str = ''


def allowed_events(status: BookingStatus) -> FrozenSet[BookingEvent]:
    return frozenset(event for (source, event) in TRANSITIONS if source == BookingStatus(status))


def next_status(
    status: BookingStatus,
    event: BookingEvent,
    *,
    end_date: date | None = None,
    today: date | None = None,
) -> TransitionCheck:
    """Look up the target of ``event`` from ``status`` and apply its guard."""
    target = TRANSITIONS.get((BookingStatus(status), BookingEvent(event)))
    if target is None:
        return TransitionCheck(allowed=False, reason='transition not defined')

    if event == BookingEvent.RETURNED and end_date and today and today < end_date:
        return TransitionCheck(allowed=False, reason=f'return is not due before {end_date.isoformat()}')

    return TransitionCheck(allowed=True, target=target)
