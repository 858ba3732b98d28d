"""Data access for the booking engine."""

from __future__ import annotations

from typing import List

from apps.catalog.models import InventoryItem
from shared.domain.value_objects import DateRange

from .domain.availability import Reservation
from .models import Booking


class InventoryRepository:
    def get(self, item_id, *, lock: bool = False) -> InventoryItem | None:
        """
        Load an item; ``lock`` takes a row lock until the transaction ends

        Locking the item row is what serialises concurrent confirmations
        for the same item.
        """
        queryset = InventoryItem.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        return queryset.filter(pk=item_id).first()


class BookingRepository:
    def get(self, booking_id, *, lock: bool = False) -> Booking | None:
        queryset = Booking.objects.select_related("item", "renter", "promo_code")
        if lock:
            queryset = queryset.select_for_update(of=("self",))
        return queryset.filter(pk=booking_id).first()

    def reservations(
        self,
        item_id,
        window: DateRange,
        *,
        buffer_days: int = 0,
        exclude_id=None,
    ) -> List[Reservation]:
        """Holding bookings of the item that touch ``window`` once widened by the buffer."""
        span = window.widen(buffer_days)
        queryset = Booking.objects.holding().filter(item_id=item_id).overlapping(span.start_date, span.end_date)
        if exclude_id is not None:
            queryset = queryset.exclude(pk=exclude_id)
        return [
            Reservation(start_date, end_date, quantity)
            for start_date, end_date, quantity in queryset.values_list("start_date", "end_date", "quantity")
        ]
