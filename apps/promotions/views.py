"""API views for promo codes."""

from __future__ import annotations

from django.core.exceptions import ValidationError as DjangoValidationError  # type: ignore
from rest_framework import permissions, serializers, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from apps.bookings.application.commands import ValidatePromoQuery
from shared.application.message_bus import message_bus

from .models import PromoCode
from .serializers import (
    PromoCodeSerializer,
    PromoGenerateSerializer,
    PromoRedemptionSerializer,
    PromoValidateSerializer,
)
from .services import deactivate_promo_code, generate_promo_code


class PromoValidateView(APIView):
    """Check a code against an order subtotal without consuming it."""

    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):  # type: ignore
        serializer = PromoValidateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = message_bus.handle_command(ValidatePromoQuery(
            code=serializer.validated_data["code"],
            user_id=request.user.pk,
            subtotal=serializer.validated_data["subtotal"],
        ))
        payload = {
            "valid": result.valid,
            "code": result.code,
            "discount_amount": str(result.discount_amount),
            "credit_amount": str(result.credit_amount),
        }
        if not result.valid:
            payload.update(reason=result.reason.value, detail=result.message)
        return Response(payload, status=status.HTTP_200_OK)


class PromoCodeViewSet(viewsets.ModelViewSet):
    """Operator administration of promo codes."""

    queryset = PromoCode.objects.select_related("created_by").all()
    serializer_class = PromoCodeSerializer
    permission_classes = [permissions.IsAdminUser]
    filterset_fields = ["discount_type", "is_active"]

    def perform_create(self, serializer):  # type: ignore
        serializer.save(created_by=self.request.user)

    def destroy(self, request, *args, **kwargs):  # type: ignore
        """Redeemed codes are referenced by bookings; deactivate instead."""
        promo: PromoCode = self.get_object()  # type: ignore
        deactivate_promo_code(promo)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["post"])
    def generate(self, request):  # type: ignore
        serializer = PromoGenerateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            promo = generate_promo_code(created_by=request.user, **serializer.validated_data)
        except DjangoValidationError as exc:
            raise serializers.ValidationError(exc.messages)
        return Response(PromoCodeSerializer(promo).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=["post"])
    def deactivate(self, request, pk=None):  # type: ignore
        promo = deactivate_promo_code(self.get_object())
        return Response(PromoCodeSerializer(promo).data)

    @action(detail=True, methods=["get"])
    def redemptions(self, request, pk=None):  # type: ignore
        promo: PromoCode = self.get_object()  # type: ignore
        queryset = promo.redemptions.select_related("booking").all()
        return Response(PromoRedemptionSerializer(queryset, many=True).data)
