"""
Pricing Calculator

Turns an item's rate card, a date window, a quantity, an optional promo
code and an optional wallet credit into an itemised price breakdown.

Steps, in order:
1. total_days   = end - start + 1 (inclusive)
2. unit_rate    = rate table effective daily rate for total_days
3. subtotal     = unit_rate x total_days x quantity
4. discount     = promo validator against subtotal (failure is an error)
5. taxable_base = subtotal - discount (tax applies after the discount)
6. tax          = taxable_base x tax_rate
7. deposit      = damage_deposit x quantity, itemised separately
8. credit       = min(requested wallet credit, taxable_base + tax)
9. total        = max(0, taxable_base + tax - credit)

Every money figure is rounded half-up to cents. The damage deposit is
never folded into ``total_amount``; ``total_with_deposit`` carries the
figure for callers that pre-authorise it.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Callable

from apps.catalog.domain.rates import RateCard, resolve_rate
from apps.promotions.domain.validator import ValidationResult
from shared.domain.base import ValueObject
from shared.domain.value_objects import ZERO, DateRange, round_money, to_decimal

from apps.bookings.domain.errors import BookingError, PromoInvalid

DEFAULT_TAX_RATE = Decimal('0.08')


class DepositMode(str, Enum):
    """Whether the damage deposit is charged upfront"""
    DEFERRED = 'deferred'
    PREAUTHORIZED = 'preauthorized'


PromoCheck = Callable[[Decimal], ValidationResult]


@dataclass(frozen=True)
class PriceBreakdown(ValueObject):
    total_days: int
    quantity: int
    daily_rate: Decimal
    daily_rate_used: Decimal
    weekly_rate_applied: bool
    subtotal: Decimal
    discount_amount: Decimal
    taxable_base: Decimal
    tax_rate: Decimal
    tax: Decimal
    damage_deposit: Decimal
    wallet_credit_applied: Decimal
    total_amount: Decimal
    total_with_deposit: Decimal
    promo_code: str = ''
    promo_credit: Decimal = ZERO
    currency: str = 'USD'

    def amount_due(self, deposit_mode: DepositMode) -> Decimal:
        if DepositMode(deposit_mode) == DepositMode.PREAUTHORIZED:
            return self.total_with_deposit
        return self.total_amount

    def to_dict(self) -> dict:
        return {
            'total_days': self.total_days,
            'quantity': self.quantity,
            'daily_rate': str(self.daily_rate),
            'daily_rate_used': str(round_money(self.daily_rate_used)),
            'weekly_rate_applied': self.weekly_rate_applied,
            'subtotal': str(self.subtotal),
            'discount_amount': str(self.discount_amount),
            'taxable_base': str(self.taxable_base),
            'tax_rate': str(self.tax_rate),
            'tax': str(self.tax),
            'damage_deposit': str(self.damage_deposit),
            'wallet_credit_applied': str(self.wallet_credit_applied),
            'total_amount': str(self.total_amount),
            'total_with_deposit': str(self.total_with_deposit),
            'promo_code': self.promo_code,
            'promo_credit': str(self.promo_credit),
            'currency': self.currency,
        }


def price_rental(
    card: RateCard,
    window: DateRange,
    quantity: int = 1,
    *,
    promo_check: PromoCheck | None = None,
    wallet_credit=ZERO,
    tax_rate=DEFAULT_TAX_RATE,
    currency: str = 'USD',
) -> PriceBreakdown | BookingError:
    """Compute the price breakdown, or the error that prevents one."""
    total_days = len(window)
    rate = resolve_rate(card, total_days)
    subtotal = round_money(rate.unit_rate * total_days * quantity)

    discount = ZERO
    promo_credit = ZERO
    promo_code = ''
    if promo_check is not None:
        outcome = promo_check(subtotal)
        if not outcome.valid:
            return PromoInvalid(promo_code=outcome.code, reason=outcome.reason)
        discount = round_money(outcome.discount_amount)
        promo_credit = round_money(outcome.credit_amount)
        promo_code = outcome.code

    taxable_base = round_money(subtotal - discount)
    tax_rate = to_decimal(tax_rate)
    tax = round_money(taxable_base * tax_rate)
    damage_deposit = round_money(card.damage_deposit * quantity)

    owed = taxable_base + tax
    credit = round_money(min(max(to_decimal(wallet_credit), ZERO), owed))
    total_amount = round_money(max(ZERO, owed - credit))

    return PriceBreakdown(
        total_days=total_days,
        quantity=quantity,
        daily_rate=round_money(card.daily_rate),
        daily_rate_used=rate.unit_rate,
        weekly_rate_applied=rate.weekly_applied,
        subtotal=subtotal,
        discount_amount=discount,
        taxable_base=taxable_base,
        tax_rate=tax_rate,
        tax=tax,
        damage_deposit=damage_deposit,
        wallet_credit_applied=credit,
        total_amount=total_amount,
        total_with_deposit=round_money(total_amount + damage_deposit),
        promo_code=promo_code,
        promo_credit=promo_credit,
        currency=currency,
    )
