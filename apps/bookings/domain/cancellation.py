"""
Cancellation refund policy

A paid booking cancelled by the renter or an operator earns a refund
that depends on how long before the pickup day it was cancelled:

- at least ``full_hours`` before: full refund
- at least ``partial_hours`` before: ``partial_percent`` of the payment
- later than that: no refund

Unpaid bookings owe nothing and are refunded nothing.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from shared.domain.base import ValueObject
from shared.domain.value_objects import ZERO, round_money, to_decimal


class RefundTier(str, Enum):
    FULL = 'full'
    PARTIAL = 'partial'
    NONE = 'none'


@dataclass(frozen=True)
class RefundDecision(ValueObject):
    tier: RefundTier
    ratio: Decimal
    amount: Decimal


@dataclass(frozen=True)
class RefundPolicy(ValueObject):
    full_hours: int = 48
    partial_hours: int = 24
    partial_percent: Decimal = Decimal('50')

    def ratio_for(self, hours_before_start: float) -> tuple[RefundTier, Decimal]:
        if hours_before_start >= self.full_hours:
            return RefundTier.FULL, Decimal('1')
        if hours_before_start >= self.partial_hours:
            return RefundTier.PARTIAL, to_decimal(self.partial_percent) / Decimal('100')
        return RefundTier.NONE, ZERO

    def decide(self, amount_paid, hours_before_start: float) -> RefundDecision:
        tier, ratio = self.ratio_for(hours_before_start)
        return RefundDecision(tier=tier, ratio=ratio, amount=round_money(to_decimal(amount_paid) * ratio))
