"""
Common Value Objects

Value objects used across the catalog, bookings and promotions apps:
- Money: A non-negative monetary amount with currency
- DateRange: An inclusive range of calendar days (pickup day to return day)

All money is fixed-point: amounts are Decimal and every persisted or
displayed figure is rounded half-up to cents via ``round_money``.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterator

from shared.domain.base import ValueObject

CENT = Decimal('0.01')
ZERO = Decimal('0.00')

SUPPORTED_CURRENCIES = ('USD', 'EUR', 'GBP', 'KZT')


def to_decimal(value) -> Decimal:
    """Coerce ints, strings and Decimals to Decimal; floats are rejected."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("Money must not be built from binary floating point")
    return Decimal(str(value))


def round_money(value) -> Decimal:
    """Round to two decimal places using half-up rounding."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Money(ValueObject):
    """
    Money value object

    Represents a non-negative monetary amount with currency, always held
    at cent precision.
    """
    amount: Decimal
    currency: str = 'USD'

    def __post_init__(self):
        object.__setattr__(self, 'amount', round_money(self.amount))
        if self.amount < 0:
            raise ValueError("Amount cannot be negative")
        if self.currency not in SUPPORTED_CURRENCIES:
            raise ValueError(f"Unsupported currency: {self.currency}")

    @classmethod
    def zero(cls, currency: str = 'USD') -> 'Money':
        return cls(ZERO, currency)

    def _check(self, other: 'Money'):
        if not isinstance(other, Money):
            raise TypeError("Can only combine Money with Money")
        if self.currency != other.currency:
            raise ValueError(f"Cannot combine different currencies: {self.currency} and {other.currency}")

    def __add__(self, other: 'Money') -> 'Money':
        self._check(other)
        return Money(self.amount + other.amount, self.currency)

    def __sub__(self, other: 'Money') -> 'Money':
        self._check(other)
        return Money(self.amount - other.amount, self.currency)

    def __mul__(self, factor) -> 'Money':
        if isinstance(factor, bool) or not isinstance(factor, (int, Decimal)):
            raise TypeError("Can only multiply Money by int or Decimal")
        return Money(self.amount * factor, self.currency)

    def __lt__(self, other: 'Money') -> bool:
        self._check(other)
        return self.amount < other.amount

    def __le__(self, other: 'Money') -> bool:
        self._check(other)
        return self.amount <= other.amount

    def __bool__(self) -> bool:
        return self.amount > 0

    def __str__(self):
        return f"{self.amount:,.2f} {self.currency}"

    def __repr__(self):
        return f"Money({self.amount}, '{self.currency}')"


@dataclass(frozen=True)
class DateRange(ValueObject):
    """
    Date range value object

    Represents the days from start_date to end_date, both inclusive.
    A rental picked up and returned on the same day is a one-day range.
    """
    start_date: date
    end_date: date

    def __post_init__(self):
        if self.end_date < self.start_date:
            raise ValueError(f"End date ({self.end_date}) must not be before start date ({self.start_date})")

    def overlaps_with(self, other: 'DateRange') -> bool:
        """
        Check if this range shares at least one day with another

        Both ends are inclusive, so a range ending on day X overlaps
        a range starting on day X.
        """
        if not isinstance(other, DateRange):
            raise TypeError("Can only check overlap with another DateRange")
        return self.start_date <= other.end_date and other.start_date <= self.end_date

    def contains(self, check_date: date) -> bool:
        return self.start_date <= check_date <= self.end_date

    def widen(self, days: int) -> 'DateRange':
        """Return the range extended by ``days`` on both ends"""
        if days < 0:
            raise ValueError("Cannot widen a range by a negative number of days")
        delta = timedelta(days=days)
        return DateRange(self.start_date - delta, self.end_date + delta)

    def days(self) -> Iterator[date]:
        current = self.start_date
        while current <= self.end_date:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        """Number of billable days (inclusive)"""
        return (self.end_date - self.start_date).days + 1

    def __str__(self):
        return f"{self.start_date.isoformat()} - {self.end_date.isoformat()}"

    def __repr__(self):
        return f"DateRange({self.start_date}, {self.end_date})"
