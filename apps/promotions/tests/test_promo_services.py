from datetime import datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from apps.bookings.models import Booking
from apps.promotions.domain.validator import PromoRejection
from apps.promotions.models import PromoCode, PromoRedemption
from apps.promotions.services import (
    PromoUsageExhausted,
    deactivate_promo_code,
    find_promo_code,
    generate_promo_code,
    redeem,
    validate_promo,
)
from shared.infrastructure.clock import FixedClock

NOW = datetime(2030, 3, 1, 9, 0, tzinfo=dt_timezone.utc)


def make_promo(**overrides):
    values = {
        "code": "spring20",
        "discount_type": PromoCode.Type.PERCENTAGE,
        "discount_value": Decimal("20"),
        "max_discount": Decimal("15"),
        "starts_at": NOW - timedelta(days=1),
        "expires_at": NOW + timedelta(days=30),
    }
    values.update(overrides)
    return PromoCode.objects.create(**values)


@pytest.mark.django_db
def test_codes_are_stored_uppercase_and_found_case_insensitively():
    make_promo(code="  spring20 ")

    assert PromoCode.objects.filter(code="SPRING20").exists()
    assert find_promo_code("Spring20").code == "SPRING20"
    assert find_promo_code("missing") is None


@pytest.mark.django_db
def test_validate_promo_applies_cap():
    make_promo()

    result = validate_promo("spring20", None, Decimal("100"), clock=FixedClock(NOW))

    assert result.valid is True
    assert result.discount_amount == Decimal("15.00")


@pytest.mark.django_db
def test_validate_promo_counts_user_redemptions(renter, camera):
    promo = make_promo(max_uses_per_user=1)
    booking = Booking.objects.create(
        item=camera,
        renter=renter,
        start_date=NOW.date(),
        end_date=NOW.date(),
        daily_rate_used=Decimal("50"),
        subtotal=Decimal("50"),
        total_amount=Decimal("54"),
    )
    redeem(
        promo,
        user=renter,
        booking=booking,
        discount_applied=Decimal("10"),
        credit_awarded=Decimal("0"),
        clock=FixedClock(NOW),
    )

    result = validate_promo("SPRING20", renter.pk, Decimal("100"), clock=FixedClock(NOW))

    assert result.valid is False
    assert result.reason == PromoRejection.PER_USER_EXHAUSTED


@pytest.mark.django_db
def test_redeem_stops_at_max_uses(renter, camera):
    promo = make_promo(max_uses=1)

    def booking():
        return Booking.objects.create(
            item=camera,
            renter=renter,
            start_date=NOW.date(),
            end_date=NOW.date(),
            daily_rate_used=Decimal("50"),
            subtotal=Decimal("50"),
            total_amount=Decimal("54"),
        )

    redeem(promo, user=renter, booking=booking(), discount_applied=Decimal("10"), credit_awarded=Decimal("0"))

    with pytest.raises(PromoUsageExhausted):
        redeem(promo, user=renter, booking=booking(), discount_applied=Decimal("10"), credit_awarded=Decimal("0"))

    promo.refresh_from_db()
    assert promo.current_uses == 1
    assert PromoRedemption.objects.filter(promo_code=promo).count() == 1


@pytest.mark.django_db
def test_generate_promo_code(operator):
    promo = generate_promo_code(
        discount_value=Decimal("25"),
        prefix="gift",
        created_by=operator,
        clock=FixedClock(NOW),
    )

    assert promo.code.startswith("GIFT")
    assert len(promo.code) == len("GIFT") + 8
    assert promo.discount_type == PromoCode.Type.CREDIT
    assert promo.max_uses == 1
    assert promo.expires_at == NOW + timedelta(days=365)


@pytest.mark.django_db
def test_generate_rejects_percentage_over_hundred():
    with pytest.raises(ValidationError):
        generate_promo_code(discount_value=Decimal("150"), discount_type=PromoCode.Type.PERCENTAGE)


@pytest.mark.django_db
def test_deactivate():
    promo = deactivate_promo_code(make_promo())

    assert promo.is_active is False
    assert validate_promo(promo.code, None, Decimal("100"), clock=FixedClock(NOW)).reason == PromoRejection.INACTIVE
