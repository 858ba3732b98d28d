"""Wallet services.

Balances only move through ``credit`` and ``debit``; both update the
balance with a single conditional UPDATE and append a ledger row in the
caller's transaction.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction  # type: ignore
from django.db.models import F  # type: ignore

from shared.domain.value_objects import ZERO, round_money

from .models import WalletAccount, WalletTransaction

logger = logging.getLogger(__name__)


class InsufficientFunds(Exception):
    """Raised when a debit would take the balance below zero."""

    def __init__(self, requested: Decimal, available: Decimal):
        super().__init__(f"Balance {available} does not cover {requested}")
        self.requested = requested
        self.available = available


def get_balance(user_id) -> Decimal:
    """Current balance without creating an account."""
    if user_id is None:
        return ZERO
    balance = WalletAccount.objects.filter(user_id=user_id).values_list("balance", flat=True).first()
    return balance if balance is not None else ZERO


def get_or_create_account(user) -> WalletAccount:
    account, _ = WalletAccount.objects.get_or_create(user=user)
    return account


@transaction.atomic
def credit(
    user,
    amount: Decimal,
    *,
    kind: str,
    booking=None,
    promo_code=None,
    description: str = "",
) -> WalletTransaction:
    amount = round_money(amount)
    if amount <= 0:
        raise ValueError("Credit amount must be positive")

    account = get_or_create_account(user)
    WalletAccount.objects.filter(pk=account.pk).update(
        balance=F("balance") + amount,
        total_earned=F("total_earned") + amount,
    )
    account.refresh_from_db()
    entry = WalletTransaction.objects.create(
        account=account,
        kind=kind,
        amount=amount,
        balance_after=account.balance,
        booking=booking,
        promo_code=promo_code,
        description=description,
    )
    logger.info(f"Wallet of user {account.user_id} credited {amount} ({kind}), balance {account.balance}")
    return entry


@transaction.atomic
def debit(
    user,
    amount: Decimal,
    *,
    kind: str = WalletTransaction.Kind.BOOKING_PAYMENT,
    booking=None,
    description: str = "",
) -> WalletTransaction:
    amount = round_money(amount)
    if amount <= 0:
        raise ValueError("Debit amount must be positive")

    account = get_or_create_account(user)
    updated = WalletAccount.objects.filter(pk=account.pk, balance__gte=amount).update(
        balance=F("balance") - amount,
        total_spent=F("total_spent") + amount,
    )
    if updated != 1:
        account.refresh_from_db()
        raise InsufficientFunds(requested=amount, available=account.balance)

    account.refresh_from_db()
    entry = WalletTransaction.objects.create(
        account=account,
        kind=kind,
        amount=-amount,
        balance_after=account.balance,
        booking=booking,
        description=description,
    )
    logger.info(f"Wallet of user {account.user_id} debited {amount} ({kind}), balance {account.balance}")
    return entry
