"""
Payment gateway collaborator

The engine never sees cards: it asks the gateway to capture an amount
for a booking and to refund a booking, and only looks at whether the
call succeeded. Card tokenization and 3-D Secure happen upstream.
"""

from __future__ import annotations

import hashlib
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass

import requests
from django.conf import settings  # type: ignore
from django.utils.module_loading import import_string  # type: ignore

from shared.domain.value_objects import Money

logger = logging.getLogger(__name__)


class PaymentGatewayError(Exception):
    """The gateway could not be reached or answered with garbage."""


@dataclass(frozen=True)
class ChargeResult:
    succeeded: bool
    reference: str = ""
    reason: str = ""


class PaymentGateway(ABC):
    @abstractmethod
    def capture(self, amount: Money, *, booking_id: int, description: str = "") -> ChargeResult:
        """Capture ``amount`` for a booking"""

    @abstractmethod
    def refund(self, booking_id: int, amount: Money | None = None, *, reference: str = "") -> ChargeResult:
        """Refund a booking; ``amount`` None means the full captured amount"""


class EmulatedPaymentGateway(PaymentGateway):
    """Gateway used in development: every call succeeds."""

    def capture(self, amount: Money, *, booking_id: int, description: str = "") -> ChargeResult:
        reference = f"emu_{uuid.uuid4().hex[:16]}"
        logger.warning(f"Emulated capture of {amount} for booking {booking_id}: {reference}")
        return ChargeResult(succeeded=True, reference=reference)

    def refund(self, booking_id: int, amount: Money | None = None, *, reference: str = "") -> ChargeResult:
        logger.warning(f"Emulated refund of {amount or 'full amount'} for booking {booking_id}")
        return ChargeResult(succeeded=True, reference=reference or f"emu_refund_{booking_id}")


def generate_signature(data: dict, secret: str) -> str:
    """SHA256 over the alphabetically sorted ``key=value`` pairs plus the secret."""
    sign_string = "&".join(f"{key}={value}" for key, value in sorted(data.items()))
    sign_string += f"&{secret}"
    return hashlib.sha256(sign_string.encode()).hexdigest()


class HttpPaymentGateway(PaymentGateway):
    """JSON-over-HTTP payment provider. Amounts travel in minor units."""

    def __init__(self, base_url: str, api_key: str, secret: str, merchant_id: str = "", timeout: int = 30):
        self.base_url = base_url.rstrip("/") + "/"
        self.api_key = api_key
        self.secret = secret
        self.merchant_id = merchant_id
        self.timeout = timeout

    def _post(self, path: str, payload: dict) -> dict:
        payload = {**payload, "merchant_id": self.merchant_id}
        payload["signature"] = generate_signature(payload, self.secret)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        try:
            response = requests.post(self.base_url + path, json=payload, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"Payment gateway request to {path} failed: {e}", exc_info=True)
            raise PaymentGatewayError(str(e)) from e
        except ValueError as e:
            raise PaymentGatewayError(f"Invalid JSON from payment gateway: {e}") from e

    @staticmethod
    def _minor_units(amount: Money) -> int:
        return int(amount.amount * 100)

    def capture(self, amount: Money, *, booking_id: int, description: str = "") -> ChargeResult:
        logger.info(f"Capturing {amount} for booking {booking_id}")
        data = self._post(
            "payments/capture",
            {
                "order_id": str(booking_id),
                "transaction_id": f"booking_{booking_id}_{uuid.uuid4().hex[:8]}",
                "amount": self._minor_units(amount),
                "currency": amount.currency,
                "description": description or f"Booking #{booking_id}",
            },
        )
        if data.get("status") == "succeeded":
            return ChargeResult(succeeded=True, reference=data.get("payment_id", ""))
        return ChargeResult(succeeded=False, reason=data.get("error") or data.get("status") or "declined")

    def refund(self, booking_id: int, amount: Money | None = None, *, reference: str = "") -> ChargeResult:
        logger.info(f"Refunding {amount or 'full amount'} for booking {booking_id}")
        payload = {"order_id": str(booking_id), "payment_id": reference}
        if amount is not None:
            payload["amount"] = self._minor_units(amount)
            payload["currency"] = amount.currency
        data = self._post("payments/refund", payload)
        if data.get("status") == "succeeded":
            return ChargeResult(succeeded=True, reference=data.get("refund_id", ""))
        return ChargeResult(succeeded=False, reason=data.get("error") or data.get("status") or "declined")


def get_payment_gateway() -> PaymentGateway:
    """
    Gateway configured in settings

    ``PAYMENT_GATEWAY_CLASS`` wins when set; otherwise the HTTP gateway is
    used when an API key is configured and the emulator in DEBUG or
    without a key.
    """
    gateway_class = getattr(settings, "PAYMENT_GATEWAY_CLASS", "")
    if gateway_class:
        return import_string(gateway_class)()

    api_key = getattr(settings, "PAYMENT_GATEWAY_API_KEY", "")
    if settings.DEBUG or not api_key:
        return EmulatedPaymentGateway()

    return HttpPaymentGateway(
        base_url=getattr(settings, "PAYMENT_GATEWAY_URL", ""),
        api_key=api_key,
        secret=getattr(settings, "PAYMENT_GATEWAY_SECRET", ""),
        merchant_id=getattr(settings, "PAYMENT_GATEWAY_MERCHANT_ID", ""),
    )
