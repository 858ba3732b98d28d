"""Serializers for wallets."""

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model  # type: ignore
from rest_framework import serializers  # type: ignore

from .models import WalletAccount, WalletTransaction


class WalletTransactionSerializer(serializers.ModelSerializer):
    booking_code = serializers.ReadOnlyField(source="booking.booking_code", default=None)
    promo_code = serializers.SlugRelatedField(slug_field="code", read_only=True)

    class Meta:
        model = WalletTransaction
        fields = ["id", "kind", "amount", "balance_after", "booking_code", "promo_code", "description", "created_at"]
        read_only_fields = fields


class WalletAccountSerializer(serializers.ModelSerializer):
    recent_transactions = serializers.SerializerMethodField()

    class Meta:
        model = WalletAccount
        fields = ["balance", "total_earned", "total_spent", "recent_transactions"]
        read_only_fields = fields

    def get_recent_transactions(self, obj: WalletAccount):  # type: ignore
        entries = obj.transactions.select_related("booking", "promo_code")[:10]
        return WalletTransactionSerializer(entries, many=True).data


class WalletAdjustmentSerializer(serializers.Serializer):
    """Operator credit to a user's wallet."""

    user = serializers.PrimaryKeyRelatedField(queryset=get_user_model().objects.all())
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0.01"))
    description = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
