"""API views for the booking domain."""

from __future__ import annotations

from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from shared.application.message_bus import message_bus

from .application.commands import (
    CheckoutCommand,
    CheckoutLine,
    ConfirmBookingCommand,
    ExtendBookingCommand,
    PayBookingCommand,
    QuoteQuery,
    TransitionBookingCommand,
)
from .domain.errors import BookingError
from .domain.state_machine import BookingEvent
from .models import Booking
from .responses import error_response
from .serializers import (
    BookingCreateSerializer,
    BookingSerializer,
    CheckoutSerializer,
    ExtendBookingSerializer,
    PaymentStatusSerializer,
    QuoteRequestSerializer,
    TransitionSerializer,
)


class IsBookingStakeholder(permissions.BasePermission):
    """The renter and staff operators may act on a booking."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return True
        return obj.renter_id == user.id


class BookingViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Bookings of the current user (all bookings for staff).

    Every write goes through the reservation engine; the row is never
    edited directly through the API.
    """

    queryset = Booking.objects.select_related("item", "renter", "promo_code").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filterset_fields = ["status", "payment_status", "item"]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if getattr(user, "is_staff", False) or getattr(user, "is_superuser", False):
            return qs
        return qs.filter(renter=user)

    def _respond(self, result, success_status=status.HTTP_200_OK):
        if isinstance(result, BookingError):
            return error_response(result)
        return Response(BookingSerializer(result, context=self.get_serializer_context()).data, status=success_status)

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = BookingCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = message_bus.handle_command(ConfirmBookingCommand(
            item_id=data["item"],
            renter_id=request.user.pk,
            start_date=data["start_date"],
            end_date=data["end_date"],
            quantity=data["quantity"],
            promo_code=data["promo_code"],
            wallet_credit=data["wallet_credit"],
            deposit_mode=data["deposit_mode"],
            notes=data["notes"],
        ))
        return self._respond(result, status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def quote(self, request):  # type: ignore
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = message_bus.handle_command(QuoteQuery(
            item_id=data["item"],
            start_date=data["start_date"],
            end_date=data["end_date"],
            quantity=data["quantity"],
            promo_code=data["promo_code"],
            user_id=request.user.pk,
            wallet_credit=data["wallet_credit"],
        ))
        if isinstance(result, BookingError):
            return error_response(result)
        return Response(result.to_dict())

    @action(detail=False, methods=["post"])
    def checkout(self, request):  # type: ignore
        serializer = CheckoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lines = tuple(
            CheckoutLine(
                item_id=line["item"],
                start_date=line["start_date"],
                end_date=line["end_date"],
                quantity=line["quantity"],
                promo_code=line["promo_code"],
                wallet_credit=line["wallet_credit"],
                deposit_mode=line["deposit_mode"],
                notes=line["notes"],
            )
            for line in serializer.validated_data["lines"]
        )
        result = message_bus.handle_command(CheckoutCommand(renter_id=request.user.pk, lines=lines))
        if isinstance(result, BookingError):
            return error_response(result)
        data = BookingSerializer(result, many=True, context=self.get_serializer_context()).data
        return Response(data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def pay(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        result = message_bus.handle_command(PayBookingCommand(booking_id=booking.pk, actor_id=request.user.pk))
        return self._respond(result)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = TransitionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        if booking.renter_id == request.user.pk:
            source = Booking.CancellationSource.RENTER
        else:
            source = Booking.CancellationSource.OPERATOR
        result = message_bus.handle_command(TransitionBookingCommand(
            booking_id=booking.pk,
            event=BookingEvent.CANCELLED,
            actor_id=request.user.pk,
            source=source,
            reason=serializer.validated_data["reason"],
        ))
        return self._respond(result)

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAdminUser])
    def pickup(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        result = message_bus.handle_command(TransitionBookingCommand(
            booking_id=booking.pk,
            event=BookingEvent.PICKED_UP,
            actor_id=request.user.pk,
            source=Booking.CancellationSource.OPERATOR,
        ))
        return self._respond(result)

    @action(detail=True, methods=["post"], url_path="return", permission_classes=[permissions.IsAdminUser])
    def return_item(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        result = message_bus.handle_command(TransitionBookingCommand(
            booking_id=booking.pk,
            event=BookingEvent.RETURNED,
            actor_id=request.user.pk,
            source=Booking.CancellationSource.OPERATOR,
        ))
        return self._respond(result)

    @action(detail=True, methods=["post"], permission_classes=[permissions.IsAdminUser])
    def extend(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = ExtendBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = message_bus.handle_command(ExtendBookingCommand(
            booking_id=booking.pk,
            new_end_date=serializer.validated_data["end_date"],
            actor_id=request.user.pk,
            reason=serializer.validated_data["reason"],
        ))
        return self._respond(result)

    @action(detail=True, methods=["get"], url_path="payment-status")
    def payment_status(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        return Response(PaymentStatusSerializer(booking).data)
