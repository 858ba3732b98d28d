"""
Booking Engine Errors

Validation outcomes are returned as typed values, never raised, so
callers branch on them deterministically:

    result = handler.handle(command)
    if isinstance(result, BookingError):
        ...

Only infrastructure failures (database unreachable, deadlock) raise,
as ``EngineFault``.
"""

from dataclasses import asdict, dataclass
from datetime import date
from typing import ClassVar

from apps.promotions.domain.validator import REJECTION_MESSAGES, PromoRejection


class EngineFault(Exception):
    """The persistence layer failed; the operation may be retried."""


@dataclass(frozen=True)
class BookingError:
    code: ClassVar[str] = 'booking_error'

    @property
    def detail(self) -> str:
        return self.code

    def to_dict(self) -> dict:
        payload = {key: _plain(value) for key, value in asdict(self).items()}
        payload.update(code=self.code, detail=self.detail)
        return payload


def _plain(value):
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, 'value'):
        return value.value
    return value


@dataclass(frozen=True)
class InsufficientInventory(BookingError):
    """Not enough free units on at least one day of the window"""
    code: ClassVar[str] = 'insufficient_inventory'
    item_id: int
    requested: int
    remaining: int

    @property
    def detail(self) -> str:
        if self.remaining > 0:
            return f"Only {self.remaining} unit(s) available for the selected dates"
        return "Item is fully booked for the selected dates"


@dataclass(frozen=True)
class InvalidDateRange(BookingError):
    code: ClassVar[str] = 'invalid_date_range'
    start_date: date
    end_date: date
    reason: str

    @property
    def detail(self) -> str:
        return self.reason


@dataclass(frozen=True)
class InvalidQuantity(BookingError):
    code: ClassVar[str] = 'invalid_quantity'
    requested: int
    maximum: int

    @property
    def detail(self) -> str:
        return f"Quantity must be between 1 and {self.maximum}, got {self.requested}"


@dataclass(frozen=True)
class PromoInvalid(BookingError):
    code: ClassVar[str] = 'promo_invalid'
    promo_code: str
    reason: PromoRejection

    @property
    def detail(self) -> str:
        return REJECTION_MESSAGES[self.reason]


@dataclass(frozen=True)
class InsufficientCredit(BookingError):
    code: ClassVar[str] = 'insufficient_credit'
    requested: str
    available: str

    @property
    def detail(self) -> str:
        return f"Wallet balance {self.available} does not cover {self.requested}"


@dataclass(frozen=True)
class InvalidTransition(BookingError):
    """A state machine violation; indicates a caller or ordering bug"""
    code: ClassVar[str] = 'invalid_transition'
    booking_id: int
    status: str
    event: str
    reason: str = ''

    @property
    def detail(self) -> str:
        message = f"Cannot apply '{self.event}' to a booking in status '{self.status}'"
        return f"{message}: {self.reason}" if self.reason else message


@dataclass(frozen=True)
class PaymentFailed(BookingError):
    code: ClassVar[str] = 'payment_failed'
    booking_id: int
    reason: str

    @property
    def detail(self) -> str:
        return f"Payment failed: {self.reason}"


@dataclass(frozen=True)
class NotFound(BookingError):
    code: ClassVar[str] = 'not_found'
    entity: str
    identifier: str

    @property
    def detail(self) -> str:
        return f"{self.entity} {self.identifier} not found"


@dataclass(frozen=True)
class EmptyCheckout(BookingError):
    code: ClassVar[str] = 'empty_checkout'

    @property
    def detail(self) -> str:
        return "Nothing to check out"
