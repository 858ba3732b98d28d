"""Catalog models: rentable inventory items."""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator  # type: ignore
from django.db import models  # type: ignore
from django.utils.translation import gettext_lazy as _  # type: ignore

from .domain.rates import RateCard


class InventoryItem(models.Model):
    """A rentable item kept in ``quantity_total`` identical units."""

    class Condition(models.TextChoices):
        EXCELLENT = "excellent", _("Excellent")
        GOOD = "good", _("Good")
        FAIR = "fair", _("Fair")
        MAINTENANCE = "maintenance", _("In maintenance")

    name = models.CharField(max_length=200)
    brand = models.CharField(max_length=100, blank=True)
    model = models.CharField(max_length=100, blank=True)
    description = models.TextField(blank=True)
    daily_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    weekly_rate = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        null=True,
        blank=True,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    damage_deposit = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    replacement_value = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    quantity_total = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    condition = models.CharField(
        max_length=20,
        choices=Condition.choices,
        default=Condition.EXCELLENT,
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _("Inventory item")
        verbose_name_plural = _("Inventory items")
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity_total__gte=0),
                name="inventory_item_quantity_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return self.name

    @property
    def is_rentable(self) -> bool:
        return self.is_active and self.condition != self.Condition.MAINTENANCE

    def rate_card(self) -> RateCard:
        return RateCard(
            daily_rate=self.daily_rate,
            weekly_rate=self.weekly_rate,
            damage_deposit=self.damage_deposit,
        )
