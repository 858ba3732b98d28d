"""
Promo Code Validator

Pure eligibility and discount rules for promotional codes.

Checks run in a fixed order and stop at the first failure:
1. the code exists and is active
2. the validity window has started
3. the validity window has not ended
4. the order subtotal reaches the minimum
5. the global usage limit is not exhausted
6. the per-user usage limit is not exhausted

Discount by type:
- fixed_amount: min(value, subtotal)
- percentage:   min(subtotal * value / 100, max_discount)
- credit:       no discount on the order; ``value`` is credited to the
                user's wallet once the booking is paid

Nothing here writes. Redemption is a separate, atomic step performed
when a booking is confirmed.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from shared.domain.base import ValueObject
from shared.domain.value_objects import ZERO, round_money, to_decimal


class DiscountType(str, Enum):
    PERCENTAGE = 'percentage'
    FIXED_AMOUNT = 'fixed_amount'
    CREDIT = 'credit'


class PromoRejection(str, Enum):
    NOT_FOUND = 'not-found'
    INACTIVE = 'inactive'
    NOT_STARTED = 'not-started'
    EXPIRED = 'expired'
    BELOW_MINIMUM = 'below-minimum'
    USAGE_EXHAUSTED = 'usage-exhausted'
    PER_USER_EXHAUSTED = 'per-user-exhausted'


REJECTION_MESSAGES = {
    PromoRejection.NOT_FOUND: 'Invalid promo code',
    PromoRejection.INACTIVE: 'This promo code is no longer active',
    PromoRejection.NOT_STARTED: 'This promo code is not yet active',
    PromoRejection.EXPIRED: 'This promo code has expired',
    PromoRejection.BELOW_MINIMUM: 'The order total is below the minimum for this code',
    PromoRejection.USAGE_EXHAUSTED: 'This promo code has reached its usage limit',
    PromoRejection.PER_USER_EXHAUSTED: 'You have already used this promo code',
}


@dataclass(frozen=True)
class PromoTerms(ValueObject):
    """Snapshot of a promo code's rules and counters"""
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    is_active: bool = True
    starts_at: datetime | None = None
    expires_at: datetime | None = None
    min_order_amount: Decimal = ZERO
    max_discount: Decimal | None = None
    max_uses: int | None = None
    current_uses: int = 0
    max_uses_per_user: int = 1


@dataclass(frozen=True)
class ValidationResult(ValueObject):
    valid: bool
    discount_amount: Decimal = ZERO
    credit_amount: Decimal = ZERO
    reason: PromoRejection | None = None
    code: str = ''

    @property
    def message(self) -> str:
        if self.reason is None:
            return ''
        return REJECTION_MESSAGES[self.reason]


def rejected(reason: PromoRejection, code: str = '') -> ValidationResult:
    return ValidationResult(valid=False, reason=reason, code=code)


def compute_discount(terms: PromoTerms, order_subtotal) -> tuple[Decimal, Decimal]:
    """
    Return ``(discount_amount, credit_amount)`` for an eligible order

    The discount never exceeds the subtotal, and never exceeds
    ``max_discount`` for percentage codes when a cap is set.
    """
    subtotal = to_decimal(order_subtotal)
    value = to_decimal(terms.discount_value)

    if terms.discount_type == DiscountType.FIXED_AMOUNT:
        return round_money(min(value, subtotal)), ZERO

    if terms.discount_type == DiscountType.PERCENTAGE:
        discount = subtotal * value / Decimal('100')
        if terms.max_discount is not None:
            discount = min(discount, to_decimal(terms.max_discount))
        return round_money(min(discount, subtotal)), ZERO

    # Credit codes are a reward paid into the wallet, not a discount
    return ZERO, round_money(value)


def window_rejection(terms: PromoTerms, now: datetime) -> PromoRejection | None:
    """Why ``terms`` cannot be honoured at ``now``, ignoring order and usage checks"""
    if not terms.is_active:
        return PromoRejection.INACTIVE
    if terms.starts_at is not None and now < terms.starts_at:
        return PromoRejection.NOT_STARTED
    if terms.expires_at is not None and now > terms.expires_at:
        return PromoRejection.EXPIRED
    return None


def validate(
    terms: PromoTerms | None,
    order_subtotal,
    user_redemptions: int,
    now: datetime,
) -> ValidationResult:
    """Run the eligibility checks, short-circuiting on the first failure."""
    if terms is None:
        return rejected(PromoRejection.NOT_FOUND)

    code = terms.code
    subtotal = to_decimal(order_subtotal)

    reason = window_rejection(terms, now)
    if reason is not None:
        return rejected(reason, code)
    if subtotal < to_decimal(terms.min_order_amount or ZERO):
        return rejected(PromoRejection.BELOW_MINIMUM, code)
    if terms.max_uses is not None and terms.current_uses >= terms.max_uses:
        return rejected(PromoRejection.USAGE_EXHAUSTED, code)
    if user_redemptions >= terms.max_uses_per_user:
        return rejected(PromoRejection.PER_USER_EXHAUSTED, code)

    discount, credit = compute_discount(terms, subtotal)
    return ValidationResult(valid=True, discount_amount=discount, credit_amount=credit, code=code)
