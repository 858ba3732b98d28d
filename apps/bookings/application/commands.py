"""
Booking Commands and Queries

Messages dispatched through the message bus. Queries never write;
commands run inside a unit of work.

Queries:
- QuoteQuery: Price a prospective booking
- CheckAvailabilityQuery: Free units over a window
- AvailabilityCalendarQuery: Free units per day
- ValidatePromoQuery: Check a promo code without consuming it

Commands:
- ConfirmBookingCommand: Create a pending booking that holds stock
- CheckoutCommand: Create several pending bookings, all or nothing
- TransitionBookingCommand: Apply a lifecycle event
- PayBookingCommand: Capture payment and confirm, or settle a balance due
- ExtendBookingCommand: Move the end date and re-price
- ExpireHoldsCommand: Cancel pending bookings whose hold lapsed
- ActivateDueBookingsCommand: Mark confirmed bookings picked up on their start date
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from shared.domain.value_objects import ZERO

from apps.bookings.domain.state_machine import BookingEvent, PaymentMethod


# ===== Queries =====

@dataclass(frozen=True)
class QuoteQuery:
    item_id: int
    start_date: date
    end_date: date
    quantity: int = 1
    promo_code: str = ''
    user_id: int | None = None
    wallet_credit: Decimal = ZERO


@dataclass(frozen=True)
class CheckAvailabilityQuery:
    item_id: int
    start_date: date
    end_date: date
    quantity: int = 1
    buffer_days: int | None = None


@dataclass(frozen=True)
class AvailabilityCalendarQuery:
    item_id: int
    start_date: date
    end_date: date


@dataclass(frozen=True)
class ValidatePromoQuery:
    code: str
    user_id: int | None
    subtotal: Decimal


# ===== Commands =====

@dataclass(frozen=True)
class ConfirmBookingCommand:
    """
    Command to book an item

    The booking is created ``pending`` and holds its units until it is
    paid or the hold sweep cancels it.
    """
    item_id: int
    renter_id: int
    start_date: date
    end_date: date
    quantity: int = 1
    promo_code: str = ''
    wallet_credit: Decimal = ZERO
    deposit_mode: str | None = None
    notes: str = ''


@dataclass(frozen=True)
class TransitionBookingCommand:
    booking_id: int
    event: BookingEvent
    actor_id: int | None = None
    source: str = ''
    reason: str = ''
    payment_method: PaymentMethod = PaymentMethod.CARD
    payment_reference: str = ''


@dataclass(frozen=True)
class PayBookingCommand:
    booking_id: int
    actor_id: int | None = None


@dataclass(frozen=True)
class ExtendBookingCommand:
    booking_id: int
    new_end_date: date
    actor_id: int | None = None
    reason: str = ''


@dataclass(frozen=True)
class ExpireHoldsCommand:
    """Run by the periodic sweep; the only cancellation without a user"""


@dataclass(frozen=True)
class ActivateDueBookingsCommand:
    pass


@dataclass(frozen=True)
class CheckoutLine:
    item_id: int
    start_date: date
    end_date: date
    quantity: int = 1
    promo_code: str = ''
    wallet_credit: Decimal = ZERO
    deposit_mode: str | None = None
    notes: str = ''


@dataclass(frozen=True)
class CheckoutCommand:
    """
    Command to book several items in one go

    Either every line becomes a pending booking or none does.
    """
    renter_id: int
    lines: tuple[CheckoutLine, ...] = ()
