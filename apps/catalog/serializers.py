"""Serializers for the catalog."""

from __future__ import annotations

from rest_framework import serializers  # type: ignore

from .models import InventoryItem


class InventoryItemSerializer(serializers.ModelSerializer):
    is_rentable = serializers.BooleanField(read_only=True)

    class Meta:
        model = InventoryItem
        fields = [
            "id",
            "name",
            "brand",
            "model",
            "description",
            "daily_rate",
            "weekly_rate",
            "damage_deposit",
            "replacement_value",
            "quantity_total",
            "condition",
            "is_active",
            "is_rentable",
            "created_at",
            "updated_at",
        ]
        read_only_fields = ["id", "is_rentable", "created_at", "updated_at"]

    def validate(self, attrs):  # type: ignore
        daily_rate = attrs.get("daily_rate", getattr(self.instance, "daily_rate", None))
        weekly_rate = attrs.get("weekly_rate", getattr(self.instance, "weekly_rate", None))
        if weekly_rate is not None and daily_rate is not None and weekly_rate > daily_rate * 7:
            raise serializers.ValidationError(
                {"weekly_rate": "Weekly rate above seven daily rates would never apply."}
            )
        return attrs
