"""Admin registration for the catalog."""

from __future__ import annotations

from django.contrib import admin

from .models import InventoryItem


@admin.register(InventoryItem)
class InventoryItemAdmin(admin.ModelAdmin):
    list_display = (
        "name",
        "brand",
        "daily_rate",
        "weekly_rate",
        "quantity_total",
        "condition",
        "is_active",
    )
    list_filter = ("condition", "is_active", "brand")
    search_fields = ("name", "brand", "model")
