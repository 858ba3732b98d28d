"""API views for wallet balances.

Renters read their own balance and ledger. Balances only change through
bookings, promo credits and operator adjustments.
"""

from __future__ import annotations

import logging

from rest_framework import generics, permissions, status  # type: ignore
from rest_framework.response import Response  # type: ignore
from rest_framework.views import APIView  # type: ignore

from .models import WalletTransaction
from .serializers import WalletAccountSerializer, WalletAdjustmentSerializer, WalletTransactionSerializer
from .services import credit, get_or_create_account

logger = logging.getLogger(__name__)


class WalletView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):  # type: ignore
        account = get_or_create_account(request.user)
        return Response(WalletAccountSerializer(account).data)


class WalletTransactionListView(generics.ListAPIView):
    serializer_class = WalletTransactionSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["kind"]

    def get_queryset(self):  # type: ignore
        return WalletTransaction.objects.select_related("booking", "promo_code").filter(
            account__user=self.request.user
        )


class WalletAdjustmentView(APIView):
    permission_classes = [permissions.IsAdminUser]

    def post(self, request):  # type: ignore
        serializer = WalletAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        entry = credit(
            data["user"],
            data["amount"],
            kind=WalletTransaction.Kind.ADMIN_ADJUSTMENT,
            description=data["description"] or f"Adjustment by {request.user.pk}",
        )
        logger.info(f"Operator {request.user.pk} credited {data['amount']} to user {data['user'].pk}")
        return Response(WalletTransactionSerializer(entry).data, status=status.HTTP_201_CREATED)
