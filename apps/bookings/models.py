"""Booking models."""

from __future__ import annotations

import secrets
from decimal import Decimal

from django.conf import settings  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from shared.domain.value_objects import DateRange

from .domain import pricing, state_machine
from .domain.availability import Reservation


class BookingQuerySet(models.QuerySet):
    def holding(self):
        """Bookings whose units are unavailable to others."""
        return self.filter(status__in=[status.value for status in state_machine.HOLDING_STATUSES])

    def overlapping(self, start_date, end_date):
        return self.filter(start_date__lte=end_date, end_date__gte=start_date)


class Booking(models.Model):
    """A renter's reservation of ``quantity`` units of an item for inclusive dates."""

    class Status(models.TextChoices):
        PENDING = state_machine.BookingStatus.PENDING.value, _("Pending payment")
        CONFIRMED = state_machine.BookingStatus.CONFIRMED.value, _("Confirmed")
        ACTIVE = state_machine.BookingStatus.ACTIVE.value, _("Picked up")
        COMPLETED = state_machine.BookingStatus.COMPLETED.value, _("Returned")
        CANCELLED = state_machine.BookingStatus.CANCELLED.value, _("Cancelled")

    class PaymentStatus(models.TextChoices):
        PENDING = state_machine.PaymentStatus.PENDING.value, _("Awaiting payment")
        PAID = state_machine.PaymentStatus.PAID.value, _("Paid")
        REFUNDED = state_machine.PaymentStatus.REFUNDED.value, _("Refunded")
        PARTIAL_REFUND = state_machine.PaymentStatus.PARTIAL_REFUND.value, _("Partially refunded")

    class PaymentMethod(models.TextChoices):
        PENDING = state_machine.PaymentMethod.PENDING.value, _("Not settled yet")
        CARD = state_machine.PaymentMethod.CARD.value, _("Card")
        WALLET = state_machine.PaymentMethod.WALLET.value, _("Wallet credit")
        PROMO = state_machine.PaymentMethod.PROMO.value, _("Promo code")

    class DepositMode(models.TextChoices):
        DEFERRED = pricing.DepositMode.DEFERRED.value, _("Collected only if damage is assessed")
        PREAUTHORIZED = pricing.DepositMode.PREAUTHORIZED.value, _("Charged upfront")

    class CancellationSource(models.TextChoices):
        RENTER = "renter", _("Renter")
        OPERATOR = "operator", _("Operator")
        SYSTEM = "system", _("Hold expiry")

    booking_code = models.CharField(max_length=12, unique=True, editable=False)
    item = models.ForeignKey(
        "catalog.InventoryItem",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    renter = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    start_date = models.DateField()
    end_date = models.DateField()
    quantity = models.PositiveIntegerField(default=1)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    payment_status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )
    payment_method = models.CharField(
        max_length=20,
        choices=PaymentMethod.choices,
        default=PaymentMethod.PENDING,
    )
    payment_reference = models.CharField(max_length=100, blank=True)

    # Pricing snapshot
    total_days = models.PositiveIntegerField(default=1)
    daily_rate_used = models.DecimalField(
        max_digits=14,
        decimal_places=6,
        help_text=_("Effective per-day rate at confirmation time."),
    )
    subtotal = models.DecimalField(max_digits=12, decimal_places=2)
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    damage_deposit = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    wallet_credit_applied = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2)
    deposit_mode = models.CharField(max_length=20, choices=DepositMode.choices, default=DepositMode.DEFERRED)
    currency = models.CharField(max_length=3, default="USD")
    promo_code = models.ForeignKey(
        "promotions.PromoCode",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="bookings",
    )

    amount_paid = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    hold_expires_at = models.DateTimeField(null=True, blank=True)
    notes = models.TextField(blank=True)

    # Audit
    confirmed_at = models.DateTimeField(null=True, blank=True)
    picked_up_at = models.DateTimeField(null=True, blank=True)
    returned_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="cancelled_bookings",
    )
    cancellation_source = models.CharField(max_length=20, choices=CancellationSource.choices, blank=True)
    cancellation_reason = models.CharField(max_length=255, blank=True)
    extended_at = models.DateTimeField(null=True, blank=True)
    extended_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="extended_bookings",
    )
    extension_reason = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = BookingQuerySet.as_manager()

    class Meta:
        verbose_name = _("Booking")
        verbose_name_plural = _("Bookings")
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(end_date__gte=models.F("start_date")),
                name="booking_valid_dates",
            ),
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="booking_quantity_positive",
            ),
        ]
        indexes = [
            models.Index(fields=["item", "start_date", "end_date"], name="booking_item_dates_idx"),
            models.Index(fields=["status", "hold_expires_at"], name="booking_status_hold_idx"),
        ]

    def __str__(self) -> str:
        return f"Booking #{self.booking_code} ({self.status})"

    def save(self, *args, **kwargs):  # type: ignore
        if self._state.adding and not self.booking_code:
            self.booking_code = self.generate_booking_code()
        super().save(*args, **kwargs)

    @staticmethod
    def generate_booking_code() -> str:
        return secrets.token_hex(4).upper()

    @property
    def dates(self) -> DateRange:
        return DateRange(self.start_date, self.end_date)

    def as_reservation(self) -> Reservation:
        return Reservation(self.start_date, self.end_date, self.quantity)

    @property
    def balance_due(self) -> Decimal:
        """Outstanding amount, e.g. after an extension of a paid booking."""
        return max(self.total_amount - self.amount_paid, Decimal("0.00"))
