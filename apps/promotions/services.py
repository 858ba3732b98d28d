"""Promo code services: lookup, validation, redemption and administration."""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from decimal import Decimal

from django.db import transaction  # type: ignore
from django.db.models import F, Q  # type: ignore

from shared.infrastructure.clock import Clock, system_clock

from .domain.validator import DiscountType, PromoTerms, ValidationResult, validate
from .models import PromoCode, PromoRedemption

logger = logging.getLogger(__name__)


class PromoUsageExhausted(Exception):
    """Raised inside a transaction when the guarded usage increment matched no row."""


def normalize_code(code: str) -> str:
    return (code or "").strip().upper()


def find_promo_code(code: str, *, lock: bool = False) -> PromoCode | None:
    queryset = PromoCode.objects.filter(code=normalize_code(code))
    if lock:
        queryset = queryset.select_for_update()
    return queryset.first()


def count_user_redemptions(promo: PromoCode, user_id) -> int:
    if user_id is None:
        return 0
    return PromoRedemption.objects.filter(promo_code=promo, user_id=user_id).count()


def validate_promo(
    code: str,
    user_id,
    order_subtotal: Decimal,
    *,
    clock: Clock = system_clock,
) -> ValidationResult:
    """Check a code for a user and order subtotal without consuming it."""
    promo = find_promo_code(code)
    terms: PromoTerms | None = promo.terms() if promo else None
    redemptions = count_user_redemptions(promo, user_id) if promo else 0
    result = validate(terms, order_subtotal, redemptions, clock.now())
    if not result.valid:
        logger.info(f"Promo code {normalize_code(code)!r} rejected for user {user_id}: {result.reason.value}")
    return result


def redeem(
    promo: PromoCode,
    *,
    user,
    booking,
    discount_applied: Decimal,
    credit_awarded: Decimal,
    clock: Clock = system_clock,
) -> PromoRedemption:
    """
    Consume one use of ``promo`` for ``booking``

    Must run inside the booking's transaction. The increment is a single
    conditional UPDATE, so two concurrent redemptions at the boundary
    cannot both pass the ``max_uses`` check.
    """
    updated = (
        PromoCode.objects.filter(pk=promo.pk, is_active=True)
        .filter(Q(max_uses__isnull=True) | Q(current_uses__lt=F("max_uses")))
        .update(current_uses=F("current_uses") + 1)
    )
    if updated != 1:
        raise PromoUsageExhausted(promo.code)

    redemption = PromoRedemption.objects.create(
        promo_code=promo,
        user=user,
        booking=booking,
        discount_applied=discount_applied,
        credit_awarded=credit_awarded,
        redeemed_at=clock.now(),
    )
    logger.info(f"Promo code {promo.code} redeemed by user {user.pk} for booking {booking.pk}")
    return redemption


def generate_code(prefix: str = "GEAR") -> str:
    """Generate an unused code ``PREFIX`` + 8 hex chars."""
    prefix = normalize_code(prefix)
    while True:
        candidate = f"{prefix}{secrets.token_hex(4).upper()}"
        if not PromoCode.objects.filter(code=candidate).exists():
            return candidate


@transaction.atomic
def generate_promo_code(
    *,
    discount_value: Decimal,
    discount_type: str = DiscountType.CREDIT.value,
    prefix: str = "GEAR",
    description: str = "",
    max_uses: int | None = 1,
    max_uses_per_user: int = 1,
    expires_in_days: int = 365,
    created_by=None,
    clock: Clock = system_clock,
) -> PromoCode:
    now = clock.now()
    promo = PromoCode(
        code=generate_code(prefix),
        description=description or f"Generated {discount_type} code - {discount_value}",
        discount_type=discount_type,
        discount_value=discount_value,
        max_uses=max_uses,
        max_uses_per_user=max_uses_per_user,
        starts_at=now,
        expires_at=now + timedelta(days=expires_in_days),
        created_by=created_by,
    )
    promo.full_clean()
    promo.save()
    logger.info(f"Generated promo code {promo.code}")
    return promo


def deactivate_promo_code(promo: PromoCode) -> PromoCode:
    PromoCode.objects.filter(pk=promo.pk).update(is_active=False)
    promo.refresh_from_db()
    logger.info(f"Promo code {promo.code} deactivated")
    return promo
