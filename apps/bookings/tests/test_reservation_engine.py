from datetime import date, datetime, timedelta, timezone as dt_timezone
from decimal import Decimal

import pytest

from apps.bookings.application.command_handlers import build_handlers
from apps.bookings.application.commands import (
    AvailabilityCalendarQuery,
    CheckAvailabilityQuery,
    CheckoutCommand,
    CheckoutLine,
    ConfirmBookingCommand,
    QuoteQuery,
    TransitionBookingCommand,
)
from apps.bookings.conf import EngineConfig
from apps.bookings.domain.errors import (
    EmptyCheckout,
    InsufficientCredit,
    InsufficientInventory,
    InvalidDateRange,
    InvalidQuantity,
    NotFound,
    PromoInvalid,
)
from apps.bookings.domain.pricing import PriceBreakdown
from apps.bookings.domain.state_machine import BookingEvent
from apps.bookings.models import Booking
from apps.catalog.models import InventoryItem
from apps.finances.models import WalletTransaction
from apps.finances.services import credit, get_balance
from apps.promotions.domain.validator import PromoRejection
from apps.promotions.models import PromoCode, PromoRedemption

pytestmark = pytest.mark.django_db

NOW = datetime(2030, 3, 1, 9, 0, tzinfo=dt_timezone.utc)
TODAY = NOW.date()

MAR_10 = date(2030, 3, 10)
MAR_12 = date(2030, 3, 12)


def quote(handlers, item, start, end, **kwargs):
    query = QuoteQuery(item_id=item.pk, start_date=start, end_date=end, **kwargs)
    return handlers[QuoteQuery].handle(query)


def availability(handlers, item, start, end, quantity=1):
    query = CheckAvailabilityQuery(item_id=item.pk, start_date=start, end_date=end, quantity=quantity)
    return handlers[CheckAvailabilityQuery].handle(query)


# ===== Confirm =====

def test_confirm_creates_pending_booking_with_snapshot(confirm, camera, renter):
    booking = confirm(camera, renter, MAR_10, MAR_12)

    assert isinstance(booking, Booking)
    booking.refresh_from_db()
    assert booking.status == Booking.Status.PENDING
    assert booking.payment_status == Booking.PaymentStatus.PENDING
    assert booking.total_days == 3
    assert booking.daily_rate_used == Decimal("50.000000")
    assert booking.subtotal == Decimal("150.00")
    assert booking.tax == Decimal("12.00")
    assert booking.total_amount == Decimal("162.00")
    assert booking.damage_deposit == Decimal("200.00")
    assert booking.hold_expires_at == NOW + timedelta(minutes=30)
    assert len(booking.booking_code) == 8


def test_preauthorized_deposit_is_charged_upfront(confirm, camera, renter):
    booking = confirm(camera, renter, MAR_10, MAR_12, deposit_mode="preauthorized")

    assert booking.total_amount == Decimal("362.00")
    assert booking.deposit_mode == Booking.DepositMode.PREAUTHORIZED


def test_confirm_rejects_bad_dates(confirm, camera, renter):
    reversed_dates = confirm(camera, renter, MAR_12, MAR_10)
    in_the_past = confirm(camera, renter, TODAY - timedelta(days=1), MAR_10)

    assert isinstance(reversed_dates, InvalidDateRange)
    assert isinstance(in_the_past, InvalidDateRange)
    assert in_the_past.detail == "Start date cannot be in the past"
    assert Booking.objects.count() == 0


def test_same_day_booking_starting_today_is_allowed(confirm, camera, renter):
    booking = confirm(camera, renter, TODAY, TODAY)

    assert booking.total_days == 1


def test_confirm_unknown_item(handlers, renter):
    result = handlers[ConfirmBookingCommand].handle(ConfirmBookingCommand(
        item_id=999,
        renter_id=renter.pk,
        start_date=MAR_10,
        end_date=MAR_12,
    ))

    assert isinstance(result, NotFound)
    assert result.to_dict()["code"] == "not_found"


def test_confirm_rejects_quantity_above_stock(confirm, camera, renter):
    result = confirm(camera, renter, MAR_10, MAR_12, quantity=3)

    assert isinstance(result, InvalidQuantity)
    assert result.maximum == 2


def test_final_unit_goes_to_first_caller(confirm, camera, renter, other_renter):
    first = confirm(camera, renter, MAR_10, MAR_12, quantity=2)
    second = confirm(camera, other_renter, MAR_12, date(2030, 3, 14))

    assert isinstance(first, Booking)
    assert isinstance(second, InsufficientInventory)
    assert second.remaining == 0
    assert Booking.objects.count() == 1


def test_maintenance_item_cannot_be_booked(confirm, camera, renter):
    camera.condition = camera.Condition.MAINTENANCE
    camera.save()

    assert isinstance(confirm(camera, renter, MAR_10, MAR_12), InsufficientInventory)


def test_cancelled_booking_frees_inventory(handlers, confirm, camera, renter, other_renter):
    booking = confirm(camera, renter, MAR_10, MAR_12, quantity=2)
    assert availability(handlers, camera, MAR_10, MAR_12).available is False

    handlers[TransitionBookingCommand].handle(TransitionBookingCommand(
        booking_id=booking.pk,
        event=BookingEvent.CANCELLED,
        actor_id=renter.pk,
    ))

    assert availability(handlers, camera, MAR_10, MAR_12, quantity=2).available is True
    assert isinstance(confirm(camera, other_renter, MAR_10, MAR_12, quantity=2), Booking)


def test_buffer_days_block_turnover(clock, gateway, handlers, confirm, camera, renter):
    confirm(camera, renter, MAR_10, MAR_12, quantity=2)
    buffered = build_handlers(clock=clock, gateway=gateway, config=EngineConfig(buffer_days=1))

    assert isinstance(quote(handlers, camera, date(2030, 3, 13), date(2030, 3, 15)), PriceBreakdown)
    assert isinstance(quote(buffered, camera, date(2030, 3, 13), date(2030, 3, 15)), InsufficientInventory)
    assert isinstance(quote(buffered, camera, date(2030, 3, 14), date(2030, 3, 15)), PriceBreakdown)


# ===== Promo codes =====

def make_promo(**overrides):
    values = {
        "code": "SPRING20",
        "discount_type": PromoCode.Type.PERCENTAGE,
        "discount_value": Decimal("20"),
        "max_discount": Decimal("15"),
    }
    values.update(overrides)
    return PromoCode.objects.create(**values)


def test_confirm_redeems_promo_once(confirm, camera, renter):
    promo = make_promo()

    booking = confirm(camera, renter, MAR_10, MAR_12, promo_code="spring20")

    assert booking.discount_amount == Decimal("15.00")
    # (150 - 15) * 1.08
    assert booking.total_amount == Decimal("145.80")
    promo.refresh_from_db()
    assert promo.current_uses == 1
    redemption = PromoRedemption.objects.get(booking=booking)
    assert redemption.user == renter
    assert redemption.discount_applied == Decimal("15.00")


def test_promo_at_usage_limit_rejected(confirm, camera, renter, other_renter):
    make_promo(max_uses=1)
    confirm(camera, renter, MAR_10, MAR_12, promo_code="SPRING20")

    result = confirm(camera, other_renter, MAR_10, MAR_12, promo_code="SPRING20")

    assert isinstance(result, PromoInvalid)
    assert result.reason == PromoRejection.USAGE_EXHAUSTED
    assert Booking.objects.count() == 1
    assert PromoCode.objects.get(code="SPRING20").current_uses == 1


def test_unknown_promo_rejects_booking(confirm, camera, renter):
    result = confirm(camera, renter, MAR_10, MAR_12, promo_code="nope")

    assert isinstance(result, PromoInvalid)
    assert result.reason == PromoRejection.NOT_FOUND
    assert result.promo_code == "NOPE"
    assert Booking.objects.count() == 0


# ===== Wallet credit =====

def test_wallet_credit_is_debited_on_confirm(confirm, camera, renter):
    credit(renter, Decimal("50.00"), kind=WalletTransaction.Kind.ADMIN_ADJUSTMENT)

    booking = confirm(camera, renter, MAR_10, MAR_12, wallet_credit=Decimal("50.00"))

    assert booking.wallet_credit_applied == Decimal("50.00")
    assert booking.total_amount == Decimal("112.00")
    assert get_balance(renter.pk) == Decimal("0.00")


def test_wallet_credit_above_balance_rejected(confirm, camera, renter):
    credit(renter, Decimal("10.00"), kind=WalletTransaction.Kind.ADMIN_ADJUSTMENT)

    result = confirm(camera, renter, MAR_10, MAR_12, wallet_credit=Decimal("10.01"))

    assert isinstance(result, InsufficientCredit)
    assert get_balance(renter.pk) == Decimal("10.00")


def test_wallet_credit_capped_at_amount_owed(confirm, camera, renter):
    credit(renter, Decimal("500.00"), kind=WalletTransaction.Kind.ADMIN_ADJUSTMENT)

    booking = confirm(camera, renter, MAR_10, MAR_12, wallet_credit=Decimal("500.00"))

    assert booking.wallet_credit_applied == Decimal("162.00")
    assert booking.total_amount == Decimal("0.00")
    assert get_balance(renter.pk) == Decimal("338.00")


# ===== Checkout =====

def checkout(handlers, renter, *lines):
    return handlers[CheckoutCommand].handle(CheckoutCommand(renter_id=renter.pk, lines=lines))


def test_checkout_books_every_line(handlers, camera, renter):
    tripod = InventoryItem.objects.create(name="Tripod", daily_rate=Decimal("10.00"), quantity_total=1)

    result = checkout(
        handlers,
        renter,
        CheckoutLine(item_id=tripod.pk, start_date=MAR_10, end_date=MAR_12),
        CheckoutLine(item_id=camera.pk, start_date=MAR_10, end_date=MAR_12, quantity=2),
    )

    assert [booking.item_id for booking in result] == [tripod.pk, camera.pk]
    assert [booking.total_amount for booking in result] == [Decimal("32.40"), Decimal("324.00")]
    assert Booking.objects.filter(renter=renter, status=Booking.Status.PENDING).count() == 2


def test_failed_checkout_line_rolls_back_earlier_lines(handlers, camera, renter):
    promo = make_promo()
    credit(renter, Decimal("50.00"), kind=WalletTransaction.Kind.ADMIN_ADJUSTMENT)

    result = checkout(
        handlers,
        renter,
        CheckoutLine(
            item_id=camera.pk,
            start_date=MAR_10,
            end_date=MAR_12,
            promo_code="SPRING20",
            wallet_credit=Decimal("50.00"),
        ),
        # Only one unit is left once the first line is placed
        CheckoutLine(item_id=camera.pk, start_date=MAR_12, end_date=MAR_12, quantity=2),
    )

    assert isinstance(result, InsufficientInventory)
    assert result.remaining == 1
    assert Booking.objects.count() == 0
    assert not PromoRedemption.objects.exists()
    promo.refresh_from_db()
    assert promo.current_uses == 0
    assert get_balance(renter.pk) == Decimal("50.00")


def test_checkout_rejects_bad_line_before_booking(handlers, camera, renter):
    result = checkout(
        handlers,
        renter,
        CheckoutLine(item_id=camera.pk, start_date=MAR_10, end_date=MAR_12),
        CheckoutLine(item_id=camera.pk, start_date=MAR_12, end_date=MAR_10),
    )

    assert isinstance(result, InvalidDateRange)
    assert Booking.objects.count() == 0


def test_empty_checkout(handlers, renter):
    result = checkout(handlers, renter)

    assert isinstance(result, EmptyCheckout)
    assert result.to_dict()["code"] == "empty_checkout"


# ===== Quotes and availability queries =====

def test_quote_is_repeatable_and_side_effect_free(handlers, camera, renter):
    promo = make_promo()

    first = quote(handlers, camera, MAR_10, MAR_12, promo_code="spring20", user_id=renter.pk)
    second = quote(handlers, camera, MAR_10, MAR_12, promo_code="spring20", user_id=renter.pk)

    assert first == second
    assert first.total_amount == Decimal("145.80")
    assert Booking.objects.count() == 0
    promo.refresh_from_db()
    assert promo.current_uses == 0


def test_quote_checks_inventory(handlers, confirm, camera, renter):
    confirm(camera, renter, MAR_10, MAR_12, quantity=2)

    result = quote(handlers, camera, MAR_12, MAR_12)

    assert isinstance(result, InsufficientInventory)
    assert result.detail == "Item is fully booked for the selected dates"


def test_quote_rejects_credit_the_user_does_not_have(handlers, camera, renter):
    result = quote(handlers, camera, MAR_10, MAR_12, user_id=renter.pk, wallet_credit=Decimal("1.00"))

    assert isinstance(result, InsufficientCredit)


def test_availability_reports_worst_day(handlers, confirm, camera, renter):
    confirm(camera, renter, MAR_12, date(2030, 3, 13))

    result = availability(handlers, camera, MAR_10, MAR_12, quantity=2)

    assert result.available is False
    assert result.remaining_on_worst_day == 1
    assert result.worst_day == MAR_12


def test_calendar_query(handlers, confirm, camera, renter):
    confirm(camera, renter, MAR_12, MAR_12)

    days = handlers[AvailabilityCalendarQuery].handle(
        AvailabilityCalendarQuery(item_id=camera.pk, start_date=date(2030, 3, 11), end_date=date(2030, 3, 13))
    )

    assert days == [(date(2030, 3, 11), 2), (MAR_12, 1), (date(2030, 3, 13), 2)]


def test_calendar_window_is_limited(handlers, camera):
    result = handlers[AvailabilityCalendarQuery].handle(
        AvailabilityCalendarQuery(item_id=camera.pk, start_date=TODAY, end_date=TODAY + timedelta(days=400))
    )

    assert isinstance(result, InvalidDateRange)
