"""FilterSet definitions for the inventory listing."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import InventoryItem


class InventoryItemFilterSet(django_filters.FilterSet):
    """Search by text, brand and price band."""

    search = django_filters.CharFilter(method="filter_search")
    brand = django_filters.CharFilter(field_name="brand", lookup_expr="iexact")
    condition = django_filters.ChoiceFilter(choices=InventoryItem.Condition.choices)
    price_min = django_filters.NumberFilter(field_name="daily_rate", lookup_expr="gte")
    price_max = django_filters.NumberFilter(field_name="daily_rate", lookup_expr="lte")

    class Meta:
        model = InventoryItem
        fields = ["brand", "condition", "is_active"]

    def filter_search(self, queryset, name, value):  # type: ignore
        if not value:
            return queryset
        return (
            queryset.filter(name__icontains=value)
            | queryset.filter(brand__icontains=value)
            | queryset.filter(model__icontains=value)
        )
