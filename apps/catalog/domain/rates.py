"""
Rate Table

Resolves the per-day price applied to a rental of a given length.

Policy:
- Rentals of 7 days or more may use the weekly rate, expressed as an
  effective daily rate of ``weekly_rate / 7``, but only when that is
  cheaper than the daily rate.
- Billing is always "effective daily rate x total days". The weekly rate
  never rounds a rental up or down to whole weeks.

The effective rate is returned at full precision; callers round the
resulting subtotal, not the rate.
"""

from dataclasses import dataclass
from decimal import Decimal

from shared.domain.base import ValueObject
from shared.domain.value_objects import to_decimal

WEEK_LENGTH = 7

BILLING_UNIT_DAY = 'day'


@dataclass(frozen=True)
class RateCard(ValueObject):
    """Prices an item is rented out at"""
    daily_rate: Decimal
    weekly_rate: Decimal | None = None
    damage_deposit: Decimal = Decimal('0')

    def __post_init__(self):
        object.__setattr__(self, 'daily_rate', to_decimal(self.daily_rate))
        object.__setattr__(self, 'damage_deposit', to_decimal(self.damage_deposit))
        if self.weekly_rate is not None:
            object.__setattr__(self, 'weekly_rate', to_decimal(self.weekly_rate))
        if self.daily_rate < 0 or self.damage_deposit < 0:
            raise ValueError("Rates cannot be negative")
        if self.weekly_rate is not None and self.weekly_rate < 0:
            raise ValueError("Rates cannot be negative")


@dataclass(frozen=True)
class ResolvedRate(ValueObject):
    unit_rate: Decimal
    billing_unit: str = BILLING_UNIT_DAY
    weekly_applied: bool = False


def resolve_rate(card: RateCard, days: int) -> ResolvedRate:
    """Pick the effective daily rate for a rental of ``days`` days."""
    if days < 1:
        raise ValueError("A rental lasts at least one day")

    if days >= WEEK_LENGTH and card.weekly_rate is not None:
        weekly_as_daily = card.weekly_rate / WEEK_LENGTH
        if weekly_as_daily < card.daily_rate:
            return ResolvedRate(unit_rate=weekly_as_daily, weekly_applied=True)

    return ResolvedRate(unit_rate=card.daily_rate)
