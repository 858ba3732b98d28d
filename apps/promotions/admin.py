"""Admin registration for promo codes."""

from __future__ import annotations

from django.contrib import admin

from .models import PromoCode, PromoRedemption


@admin.register(PromoCode)
class PromoCodeAdmin(admin.ModelAdmin):
    list_display = (
        "code",
        "discount_type",
        "discount_value",
        "current_uses",
        "max_uses",
        "starts_at",
        "expires_at",
        "is_active",
    )
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "description")
    readonly_fields = ("current_uses", "created_at", "updated_at")


@admin.register(PromoRedemption)
class PromoRedemptionAdmin(admin.ModelAdmin):
    list_display = ("promo_code", "user", "booking", "discount_applied", "credit_awarded", "redeemed_at")
    search_fields = ("promo_code__code", "booking__booking_code")
    raw_id_fields = ("promo_code", "user", "booking")

    def has_delete_permission(self, request, obj=None):  # type: ignore
        return False
