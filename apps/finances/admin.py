"""Admin registration for wallets."""

from __future__ import annotations

from django.contrib import admin

from .models import WalletAccount, WalletTransaction


class WalletTransactionInline(admin.TabularInline):
    model = WalletTransaction
    extra = 0
    can_delete = False
    readonly_fields = ("kind", "amount", "balance_after", "booking", "promo_code", "description", "created_at")

    def has_add_permission(self, request, obj=None):  # type: ignore
        return False


@admin.register(WalletAccount)
class WalletAccountAdmin(admin.ModelAdmin):
    list_display = ("user", "balance", "total_earned", "total_spent", "updated_at")
    search_fields = ("user__username", "user__email")
    # Balances move only through the wallet services
    readonly_fields = ("user", "balance", "total_earned", "total_spent", "created_at", "updated_at")
    inlines = [WalletTransactionInline]
