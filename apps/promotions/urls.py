"""URL routing for promo codes."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import PromoCodeViewSet, PromoValidateView

router = DefaultRouter()
router.register(r"codes", PromoCodeViewSet, basename="promo-code")

urlpatterns = [
    path("validate/", PromoValidateView.as_view(), name="promo-validate"),
    path("", include(router.urls)),
]
