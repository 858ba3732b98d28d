from datetime import date
from decimal import Decimal

from apps.bookings.domain.errors import PromoInvalid
from apps.bookings.domain.pricing import DepositMode, price_rental
from apps.catalog.domain.rates import RateCard
from apps.promotions.domain.validator import PromoRejection, ValidationResult
from shared.domain.value_objects import DateRange

CARD = RateCard(daily_rate=Decimal("50.00"), weekly_rate=Decimal("300.00"), damage_deposit=Decimal("200.00"))


def days(n):
    return DateRange(date(2030, 6, 1), date(2030, 6, n))


def discount_of(amount):
    return lambda subtotal: ValidationResult(valid=True, discount_amount=Decimal(amount), code="SAVE")


def test_basic_breakdown():
    breakdown = price_rental(CARD, days(3), 2)

    assert breakdown.total_days == 3
    assert breakdown.subtotal == Decimal("300.00")
    assert breakdown.discount_amount == Decimal("0.00")
    assert breakdown.tax == Decimal("24.00")
    assert breakdown.total_amount == Decimal("324.00")
    assert breakdown.damage_deposit == Decimal("400.00")
    assert breakdown.total_with_deposit == Decimal("724.00")


def test_weekly_rate_rental():
    breakdown = price_rental(CARD, days(10), 1, tax_rate=Decimal("0"))

    assert breakdown.weekly_rate_applied is True
    assert breakdown.subtotal == Decimal("428.57")
    assert breakdown.total_amount == Decimal("428.57")


def test_tax_applies_after_discount():
    breakdown = price_rental(CARD, days(2), 1, promo_check=discount_of("15.00"))

    assert breakdown.subtotal == Decimal("100.00")
    assert breakdown.discount_amount == Decimal("15.00")
    assert breakdown.taxable_base == Decimal("85.00")
    assert breakdown.tax == Decimal("6.80")
    assert breakdown.total_amount == Decimal("91.80")
    assert breakdown.promo_code == "SAVE"


def test_deposit_kept_out_of_total():
    breakdown = price_rental(CARD, days(1), 1)

    assert breakdown.total_amount == Decimal("54.00")
    assert breakdown.amount_due(DepositMode.DEFERRED) == Decimal("54.00")
    assert breakdown.amount_due(DepositMode.PREAUTHORIZED) == Decimal("254.00")


def test_wallet_credit_reduces_total():
    breakdown = price_rental(CARD, days(1), 1, wallet_credit=Decimal("20.00"))

    assert breakdown.wallet_credit_applied == Decimal("20.00")
    assert breakdown.total_amount == Decimal("34.00")


def test_wallet_credit_capped_at_amount_owed():
    breakdown = price_rental(CARD, days(1), 1, wallet_credit=Decimal("1000.00"))

    assert breakdown.wallet_credit_applied == Decimal("54.00")
    assert breakdown.total_amount == Decimal("0.00")
    # Credit never covers the deposit
    assert breakdown.total_with_deposit == Decimal("200.00")


def test_rejected_promo_is_an_error():
    def reject(subtotal):
        return ValidationResult(valid=False, reason=PromoRejection.EXPIRED, code="OLD")

    result = price_rental(CARD, days(2), 1, promo_check=reject)

    assert isinstance(result, PromoInvalid)
    assert result.reason == PromoRejection.EXPIRED
    assert result.to_dict()["code"] == "promo_invalid"
    assert result.to_dict()["reason"] == "expired"


def test_promo_credit_does_not_reduce_total():
    def credit(subtotal):
        return ValidationResult(valid=True, credit_amount=Decimal("25.00"), code="BONUS")

    breakdown = price_rental(CARD, days(1), 1, promo_check=credit)

    assert breakdown.discount_amount == Decimal("0.00")
    assert breakdown.promo_credit == Decimal("25.00")
    assert breakdown.total_amount == Decimal("54.00")


def test_half_up_rounding():
    card = RateCard(daily_rate=Decimal("10.125"))

    breakdown = price_rental(card, days(1), 1, tax_rate=Decimal("0"))

    assert breakdown.subtotal == Decimal("10.13")


def test_to_dict_uses_decimal_strings():
    payload = price_rental(CARD, days(1), 1).to_dict()

    assert payload["total_amount"] == "54.00"
    assert payload["damage_deposit"] == "200.00"
    assert payload["currency"] == "USD"
