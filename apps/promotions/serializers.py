"""Serializers for promo codes."""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from rest_framework import serializers  # type: ignore

from .domain.validator import DiscountType
from .models import PromoCode, PromoRedemption


class PromoCodeSerializer(serializers.ModelSerializer):
    class Meta:
        model = PromoCode
        fields = [
            "id",
            "code",
            "description",
            "discount_type",
            "discount_value",
            "min_order_amount",
            "max_discount",
            "max_uses",
            "current_uses",
            "max_uses_per_user",
            "starts_at",
            "expires_at",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "current_uses", "created_at", "updated_at"]

    def validate_code(self, value: str) -> str:
        value = value.strip().upper()
        queryset = PromoCode.objects.filter(code=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError("A promo code with this code already exists.")
        return value

    def validate(self, attrs):  # type: ignore
        instance = PromoCode(**{**self._current_values(), **attrs})
        try:
            instance.clean()
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.messages)
        return attrs

    def _current_values(self) -> dict:
        if self.instance is None:
            return {}
        return {
            field: getattr(self.instance, field)
            for field in ("discount_type", "discount_value", "max_discount", "starts_at", "expires_at")
        }


class PromoGenerateSerializer(serializers.Serializer):
    discount_value = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0.01"))
    discount_type = serializers.ChoiceField(
        choices=[kind.value for kind in DiscountType],
        default=DiscountType.CREDIT.value,
    )
    prefix = serializers.RegexField(r"^[A-Za-z0-9]{1,20}$", required=False, default="GEAR")
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    max_uses = serializers.IntegerField(min_value=1, required=False, allow_null=True, default=1)
    max_uses_per_user = serializers.IntegerField(min_value=1, default=1)
    expires_in_days = serializers.IntegerField(min_value=1, max_value=3650, default=365)

    def validate(self, attrs):  # type: ignore
        if attrs["discount_type"] == DiscountType.PERCENTAGE.value and attrs["discount_value"] > 100:
            raise serializers.ValidationError({"discount_value": "A percentage discount cannot exceed 100."})
        return attrs


class PromoValidateSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=50)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.00"))


class PromoRedemptionSerializer(serializers.ModelSerializer):
    code = serializers.ReadOnlyField(source="promo_code.code")
    booking_code = serializers.ReadOnlyField(source="booking.booking_code")

    class Meta:
        model = PromoRedemption
        fields = ["id", "code", "user", "booking", "booking_code", "discount_applied", "credit_awarded", "redeemed_at"]
        read_only_fields = fields
