"""
Booking Domain Events

Events that represent things that have happened to a booking.
They are published after the surrounding transaction commits.
"""

from dataclasses import dataclass
from decimal import Decimal

from shared.domain.base import DomainEvent
from shared.domain.value_objects import DateRange, Money


@dataclass
class BookingCreated(DomainEvent):
    """
    Event: A booking was confirmed by the renter and is awaiting payment

    Its units are held until it is paid or the hold sweep cancels it.
    """
    booking_id: int = None
    item_id: int = None
    renter_id: int = None
    dates: DateRange = None
    quantity: int = 1
    total_amount: Money = None


@dataclass
class BookingConfirmed(DomainEvent):
    """Event: Payment captured (PENDING -> CONFIRMED)"""
    booking_id: int = None
    renter_id: int = None
    payment_method: str = ''
    amount_paid: Money = None


@dataclass
class BookingActivated(DomainEvent):
    """Event: Item picked up (CONFIRMED -> ACTIVE)"""
    booking_id: int = None
    item_id: int = None


@dataclass
class BookingCompleted(DomainEvent):
    """Event: Item returned (ACTIVE -> COMPLETED); units are free again"""
    booking_id: int = None
    item_id: int = None


@dataclass
class BookingCancelled(DomainEvent):
    """
    Event: Booking cancelled by the renter, an operator or the hold sweep

    Triggers:
    - Refund through the payment gateway when ``refund_amount`` is set
    """
    booking_id: int = None
    item_id: int = None
    source: str = ''
    reason: str = ''
    old_status: str = ''
    refund_amount: Money | None = None
    payment_reference: str = ''


@dataclass
class BookingExtended(DomainEvent):
    """
    Event: Booking end date moved and its pricing snapshot recomputed

    Triggers:
    - Refund of the overpaid amount when the longer rental got cheaper
    """
    booking_id: int = None
    old_end_date: str = ''
    new_end_date: str = ''
    old_total: Decimal = None
    new_total: Decimal = None
    credit_released: Decimal = None
    refund_amount: Money | None = None
    payment_reference: str = ''


@dataclass
class BookingBalancePaid(DomainEvent):
    """Event: Outstanding balance of a confirmed or active booking captured"""
    booking_id: int = None
    amount: Money = None
    payment_reference: str = ''
