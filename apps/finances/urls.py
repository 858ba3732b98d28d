"""URL routing for wallets."""

from __future__ import annotations

from django.urls import path  # type: ignore

from .views import WalletAdjustmentView, WalletTransactionListView, WalletView

urlpatterns = [
    path("wallet/", WalletView.as_view(), name="wallet"),
    path("wallet/transactions/", WalletTransactionListView.as_view(), name="wallet-transactions"),
    path("wallet/adjustments/", WalletAdjustmentView.as_view(), name="wallet-adjustment"),
]
