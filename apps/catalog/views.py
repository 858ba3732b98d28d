"""API views for the catalog."""

from __future__ import annotations

import logging

from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.application.commands import AvailabilityCalendarQuery, CheckAvailabilityQuery
from apps.bookings.domain.errors import BookingError
from apps.bookings.responses import error_response
from apps.bookings.serializers import AvailabilityQuerySerializer, CalendarQuerySerializer
from shared.application.message_bus import message_bus

from .filters import InventoryItemFilterSet
from .models import InventoryItem
from .serializers import InventoryItemSerializer

logger = logging.getLogger(__name__)


class IsOperatorOrReadOnly(permissions.BasePermission):
    """Anyone may browse the catalog; only staff edit it."""

    def has_permission(self, request, view):  # type: ignore
        if request.method in permissions.SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_staff)


class InventoryItemViewSet(viewsets.ModelViewSet):
    """Rentable items, their free stock and daily availability."""

    queryset = InventoryItem.objects.all()
    serializer_class = InventoryItemSerializer
    permission_classes = [IsOperatorOrReadOnly]
    filterset_class = InventoryItemFilterSet

    def get_queryset(self):  # type: ignore
        qs = super().get_queryset()
        if getattr(self.request.user, "is_staff", False):
            return qs
        return qs.filter(is_active=True)

    def destroy(self, request, *args, **kwargs):  # type: ignore
        """Items with booking history are deactivated rather than deleted."""
        item: InventoryItem = self.get_object()  # type: ignore
        item.is_active = False
        item.save(update_fields=["is_active", "updated_at"])
        logger.info(f"Inventory item {item.pk} deactivated by {request.user.pk}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get"])
    def availability(self, request, pk=None):  # type: ignore
        item: InventoryItem = self.get_object()  # type: ignore
        serializer = AvailabilityQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = message_bus.handle_command(CheckAvailabilityQuery(
            item_id=item.pk,
            start_date=data["start_date"],
            end_date=data["end_date"],
            quantity=data["quantity"],
        ))
        if isinstance(result, BookingError):
            return error_response(result)
        return Response({
            "item_id": item.pk,
            "start_date": data["start_date"].isoformat(),
            "end_date": data["end_date"].isoformat(),
            "quantity": data["quantity"],
            "available": result.available,
            "remaining_on_worst_day": result.remaining_on_worst_day,
            "worst_day": result.worst_day.isoformat() if result.worst_day else None,
        })

    @action(detail=True, methods=["get"])
    def calendar(self, request, pk=None):  # type: ignore
        item: InventoryItem = self.get_object()  # type: ignore
        serializer = CalendarQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = message_bus.handle_command(AvailabilityCalendarQuery(
            item_id=item.pk,
            start_date=data["start_date"],
            end_date=data["end_date"],
        ))
        if isinstance(result, BookingError):
            return error_response(result)
        return Response({
            "item_id": item.pk,
            "quantity_total": item.quantity_total,
            "days": [{"date": day.isoformat(), "remaining": remaining} for day, remaining in result],
        })
