"""HTTP mapping of engine error values."""

from __future__ import annotations

from rest_framework import status  # type: ignore
from rest_framework.response import Response  # type: ignore

from .domain.errors import BookingError

ERROR_STATUS = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "insufficient_inventory": status.HTTP_409_CONFLICT,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "payment_failed": status.HTTP_402_PAYMENT_REQUIRED,
    "invalid_date_range": status.HTTP_400_BAD_REQUEST,
    "invalid_quantity": status.HTTP_400_BAD_REQUEST,
    "promo_invalid": status.HTTP_400_BAD_REQUEST,
    "insufficient_credit": status.HTTP_400_BAD_REQUEST,
    "empty_checkout": status.HTTP_400_BAD_REQUEST,
}


def error_response(error: BookingError) -> Response:
    """Render an engine error as ``{"code", "detail", ...fields}``."""
    return Response(error.to_dict(), status=ERROR_STATUS.get(error.code, status.HTTP_400_BAD_REQUEST))
