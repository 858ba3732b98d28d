"""Admin registration for bookings."""

from __future__ import annotations

from django.contrib import admin

from .models import Booking


@admin.register(Booking)
class BookingAdmin(admin.ModelAdmin):
    list_display = (
        "booking_code",
        "item",
        "renter",
        "quantity",
        "status",
        "payment_status",
        "payment_method",
        "start_date",
        "end_date",
        "total_amount",
        "created_at",
    )
    list_filter = ("status", "payment_status", "payment_method", "deposit_mode", "start_date")
    search_fields = ("booking_code", "item__name", "renter__email", "renter__username")
    raw_id_fields = ("item", "renter", "promo_code", "cancelled_by", "extended_by")
    # Lifecycle and pricing change only through the reservation engine
    readonly_fields = (
        "booking_code",
        "status",
        "payment_status",
        "payment_method",
        "payment_reference",
        "total_days",
        "daily_rate_used",
        "subtotal",
        "discount_amount",
        "tax",
        "damage_deposit",
        "wallet_credit_applied",
        "total_amount",
        "amount_paid",
        "refund_amount",
        "hold_expires_at",
        "created_at",
        "updated_at",
    )
