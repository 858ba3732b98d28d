import hashlib
from decimal import Decimal
from unittest.mock import MagicMock, patch

import requests
from django.test import SimpleTestCase, override_settings

from apps.finances.gateway import (
    EmulatedPaymentGateway,
    HttpPaymentGateway,
    PaymentGatewayError,
    generate_signature,
    get_payment_gateway,
)
from shared.domain.value_objects import Money

GATEWAY_MODULE_PATH = "apps.finances.gateway"


def gateway_response(payload):
    response = MagicMock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


class SignatureTest(SimpleTestCase):
    def test_signature_sorts_keys_and_appends_secret(self):
        expected = hashlib.sha256(b"amount=500&order_id=7&secret").hexdigest()

        self.assertEqual(generate_signature({"order_id": 7, "amount": 500}, "secret"), expected)


class HttpPaymentGatewayTest(SimpleTestCase):
    def setUp(self):
        self.gateway = HttpPaymentGateway(
            base_url="https://pay.example.com/api",
            api_key="key",
            secret="secret",
            merchant_id="m-1",
        )

    @patch(f"{GATEWAY_MODULE_PATH}.requests.post")
    def test_capture_sends_minor_units(self, mock_post):
        mock_post.return_value = gateway_response({"status": "succeeded", "payment_id": "pay_1"})

        result = self.gateway.capture(Money(Decimal("91.80")), booking_id=12)

        self.assertTrue(result.succeeded)
        self.assertEqual(result.reference, "pay_1")
        url = mock_post.call_args.args[0]
        payload = mock_post.call_args.kwargs["json"]
        self.assertEqual(url, "https://pay.example.com/api/payments/capture")
        self.assertEqual(payload["amount"], 9180)
        self.assertEqual(payload["currency"], "USD")
        self.assertEqual(payload["merchant_id"], "m-1")
        self.assertIn("signature", payload)
        self.assertEqual(mock_post.call_args.kwargs["headers"]["Authorization"], "Bearer key")

    @patch(f"{GATEWAY_MODULE_PATH}.requests.post")
    def test_declined_capture(self, mock_post):
        mock_post.return_value = gateway_response({"status": "declined", "error": "insufficient_funds"})

        result = self.gateway.capture(Money(Decimal("10")), booking_id=12)

        self.assertFalse(result.succeeded)
        self.assertEqual(result.reason, "insufficient_funds")

    @patch(f"{GATEWAY_MODULE_PATH}.requests.post")
    def test_network_error_raises_gateway_error(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("unreachable")

        with self.assertRaises(PaymentGatewayError):
            self.gateway.refund(12, Money(Decimal("5")), reference="pay_1")

    @patch(f"{GATEWAY_MODULE_PATH}.requests.post")
    def test_full_refund_omits_amount(self, mock_post):
        mock_post.return_value = gateway_response({"status": "succeeded", "refund_id": "re_1"})

        result = self.gateway.refund(12, reference="pay_1")

        self.assertTrue(result.succeeded)
        payload = mock_post.call_args.kwargs["json"]
        self.assertNotIn("amount", payload)
        self.assertEqual(payload["payment_id"], "pay_1")


class GatewaySelectionTest(SimpleTestCase):
    @override_settings(PAYMENT_GATEWAY_CLASS="", PAYMENT_GATEWAY_API_KEY="", DEBUG=False)
    def test_emulator_without_api_key(self):
        self.assertIsInstance(get_payment_gateway(), EmulatedPaymentGateway)

    @override_settings(
        PAYMENT_GATEWAY_CLASS="",
        PAYMENT_GATEWAY_API_KEY="key",
        PAYMENT_GATEWAY_URL="https://pay.example.com",
        DEBUG=False,
    )
    def test_http_gateway_with_api_key(self):
        self.assertIsInstance(get_payment_gateway(), HttpPaymentGateway)

    @override_settings(PAYMENT_GATEWAY_CLASS="apps.finances.gateway.EmulatedPaymentGateway")
    def test_explicit_class_wins(self):
        self.assertIsInstance(get_payment_gateway(), EmulatedPaymentGateway)
