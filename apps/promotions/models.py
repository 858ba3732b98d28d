"""Promo code models."""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings  # type: ignore
from django.core.exceptions import ValidationError  # type: ignore
from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.db.models.functions import Upper  # type: ignore
from django.utils import timezone  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.validator import DiscountType, PromoTerms


class PromoCode(models.Model):
    """A discount or credit code with global and per-user usage limits."""

    class Type(models.TextChoices):
        PERCENTAGE = DiscountType.PERCENTAGE.value, _("Percentage")
        FIXED_AMOUNT = DiscountType.FIXED_AMOUNT.value, _("Fixed amount")
        CREDIT = DiscountType.CREDIT.value, _("Wallet credit")

    code = models.CharField(max_length=50, unique=True)
    description = models.CharField(max_length=255, blank=True)
    discount_type = models.CharField(max_length=20, choices=Type.choices)
    discount_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    min_order_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    max_discount = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        help_text=_("Cap for percentage codes."),
    )
    max_uses = models.PositiveIntegerField(null=True, blank=True)
    current_uses = models.PositiveIntegerField(default=0)
    max_uses_per_user = models.PositiveIntegerField(default=1)
    starts_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_promo_codes",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Promo code")
        verbose_name_plural = _("Promo codes")
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(Upper("code"), name="promo_code_unique_upper"),
            models.CheckConstraint(
                condition=models.Q(max_uses__isnull=True) | models.Q(current_uses__lte=models.F("max_uses")),
                name="promo_code_uses_within_limit",
            ),
        ]

    def __str__(self) -> str:
        return self.code

    def clean(self) -> None:
        if self.discount_type == self.Type.PERCENTAGE and self.discount_value > 100:
            raise ValidationError(_("A percentage discount cannot exceed 100."))
        if self.max_discount is not None and self.discount_type != self.Type.PERCENTAGE:
            raise ValidationError(_("Only percentage codes can have a discount cap."))
        if self.expires_at and self.starts_at and self.expires_at < self.starts_at:
            raise ValidationError(_("A code cannot expire before it starts."))

    def save(self, *args, **kwargs):  # type: ignore
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def terms(self) -> PromoTerms:
        return PromoTerms(
            code=self.code,
            discount_type=DiscountType(self.discount_type),
            discount_value=self.discount_value,
            is_active=self.is_active,
            starts_at=self.starts_at,
            expires_at=self.expires_at,
            min_order_amount=self.min_order_amount,
            max_discount=self.max_discount,
            max_uses=self.max_uses,
            current_uses=self.current_uses,
            max_uses_per_user=self.max_uses_per_user,
        )


class PromoRedemption(models.Model):
    """One consumed use of a promo code by a user for a booking. Never deleted."""

    promo_code = models.ForeignKey(PromoCode, on_delete=models.PROTECT, related_name="redemptions")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="promo_redemptions",
    )
    booking = models.OneToOneField(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="promo_redemption",
    )
    discount_applied = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    credit_awarded = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    redeemed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Promo redemption")
        verbose_name_plural = _("Promo redemptions")
        ordering = ["-redeemed_at"]
        indexes = [
            models.Index(fields=["promo_code", "user"], name="promo_redemption_user_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.promo_code.code} by {self.user_id} for booking {self.booking_id}"
