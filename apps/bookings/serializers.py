"""Serializers for the booking domain."""

from __future__ import annotations

from decimal import Decimal

from rest_framework import serializers  # type: ignore

from .domain.pricing import DepositMode
from .models import Booking


class BookingWindowSerializer(serializers.Serializer):
    """Item, inclusive date window and quantity shared by quote and create."""

    item = serializers.IntegerField(min_value=1)
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class QuoteRequestSerializer(BookingWindowSerializer):
    promo_code = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")
    wallet_credit = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0.00"),
        required=False,
        default=Decimal("0.00"),
    )


class BookingCreateSerializer(QuoteRequestSerializer):
    """Booking request from a renter. The engine decides whether it fits."""

    deposit_mode = serializers.ChoiceField(
        choices=[mode.value for mode in DepositMode],
        required=False,
        allow_null=True,
        default=None,
    )
    notes = serializers.CharField(required=False, allow_blank=True, default="")


class CheckoutSerializer(serializers.Serializer):
    """Several booking requests placed together, all or nothing."""

    lines = BookingCreateSerializer(many=True, allow_empty=True)


class AvailabilityQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()
    quantity = serializers.IntegerField(min_value=1, default=1)


class CalendarQuerySerializer(serializers.Serializer):
    start_date = serializers.DateField()
    end_date = serializers.DateField()


class TransitionSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class ExtendBookingSerializer(serializers.Serializer):
    end_date = serializers.DateField()
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")


class BookingSerializer(serializers.ModelSerializer):
    """Booking with its pricing snapshot."""

    item_id = serializers.ReadOnlyField(source="item.id")
    item_name = serializers.ReadOnlyField(source="item.name")
    renter_id = serializers.ReadOnlyField(source="renter.id")
    promo_code = serializers.SlugRelatedField(slug_field="code", read_only=True)
    balance_due = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "item_id",
            "item_name",
            "renter_id",
            "start_date",
            "end_date",
            "quantity",
            "status",
            "payment_status",
            "payment_method",
            "total_days",
            "daily_rate_used",
            "subtotal",
            "discount_amount",
            "tax",
            "damage_deposit",
            "wallet_credit_applied",
            "total_amount",
            "deposit_mode",
            "currency",
            "promo_code",
            "amount_paid",
            "refund_amount",
            "balance_due",
            "hold_expires_at",
            "notes",
            "confirmed_at",
            "picked_up_at",
            "returned_at",
            "cancelled_at",
            "cancellation_source",
            "cancellation_reason",
            "extended_at",
            "extension_reason",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class PaymentStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = Booking
        fields = [
            "id",
            "booking_code",
            "status",
            "payment_status",
            "payment_method",
            "payment_reference",
            "total_amount",
            "amount_paid",
            "refund_amount",
            "hold_expires_at",
        ]
        read_only_fields = fields
