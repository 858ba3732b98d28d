"""Integration tests for promo code endpoints."""

from __future__ import annotations

from decimal import Decimal

from django.contrib.auth import get_user_model
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from apps.promotions.models import PromoCode

User = get_user_model()


class PromoValidateAPITests(APITestCase):
    def setUp(self) -> None:
        self.user = User.objects.create_user(username="renter", password="pass")
        self.client.force_authenticate(self.user)
        self.url = reverse("promo-validate")
        PromoCode.objects.create(
            code="SPRING20",
            discount_type=PromoCode.Type.PERCENTAGE,
            discount_value=Decimal("20"),
            max_discount=Decimal("15"),
        )

    def test_valid_code(self) -> None:
        response = self.client.post(self.url, {"code": "spring20", "subtotal": "100.00"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["valid"])
        self.assertEqual(response.data["code"], "SPRING20")
        self.assertEqual(response.data["discount_amount"], "15.00")

    def test_validation_does_not_consume_the_code(self) -> None:
        for _ in range(3):
            self.client.post(self.url, {"code": "SPRING20", "subtotal": "100.00"}, format="json")

        self.assertEqual(PromoCode.objects.get(code="SPRING20").current_uses, 0)

    def test_unknown_code(self) -> None:
        response = self.client.post(self.url, {"code": "nope", "subtotal": "100.00"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["valid"])
        self.assertEqual(response.data["reason"], "not-found")
        self.assertEqual(response.data["code"], "NOPE")

    def test_requires_authentication(self) -> None:
        self.client.force_authenticate(None)
        response = self.client.post(self.url, {"code": "SPRING20", "subtotal": "100.00"}, format="json")

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class PromoAdminAPITests(APITestCase):
    def setUp(self) -> None:
        self.operator = User.objects.create_user(username="operator", password="pass", is_staff=True)
        self.client.force_authenticate(self.operator)

    def test_create_uppercases_code(self) -> None:
        response = self.client.post(
            reverse("promo-code-list"),
            {"code": "summer", "discount_type": "fixed_amount", "discount_value": "10.00"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["code"], "SUMMER")

    def test_cap_only_for_percentage_codes(self) -> None:
        response = self.client.post(
            reverse("promo-code-list"),
            {"code": "capped", "discount_type": "fixed_amount", "discount_value": "10.00", "max_discount": "5.00"},
            format="json",
        )

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_generate_and_deactivate(self) -> None:
        response = self.client.post(
            reverse("promo-code-generate"),
            {"discount_value": "25.00", "prefix": "gift"},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertTrue(response.data["code"].startswith("GIFT"))
        self.assertEqual(response.data["discount_type"], "credit")

        deactivated = self.client.post(reverse("promo-code-deactivate", args=[response.data["id"]]))
        self.assertEqual(deactivated.status_code, status.HTTP_200_OK)
        self.assertFalse(deactivated.data["is_active"])

    def test_renter_cannot_manage_codes(self) -> None:
        self.client.force_authenticate(User.objects.create_user(username="renter", password="pass"))

        response = self.client.get(reverse("promo-code-list"))

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
