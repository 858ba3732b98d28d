"""Engine knobs read from Django settings."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings  # type: ignore

from .domain.cancellation import RefundPolicy
from .domain.pricing import DEFAULT_TAX_RATE, DepositMode


@dataclass(frozen=True)
class EngineConfig:
    tax_rate: Decimal = DEFAULT_TAX_RATE
    hold_minutes: int = 30
    currency: str = "USD"
    default_deposit_mode: DepositMode = DepositMode.DEFERRED
    buffer_days: int = 0
    max_calendar_days: int = 366
    refund_policy: RefundPolicy = RefundPolicy()

    @classmethod
    def from_settings(cls) -> "EngineConfig":
        return cls(
            tax_rate=Decimal(str(getattr(settings, "BOOKING_TAX_RATE", DEFAULT_TAX_RATE))),
            hold_minutes=int(getattr(settings, "BOOKING_HOLD_MINUTES", 30)),
            currency=getattr(settings, "BOOKING_CURRENCY", "USD"),
            default_deposit_mode=DepositMode(
                getattr(settings, "BOOKING_DEFAULT_DEPOSIT_MODE", DepositMode.DEFERRED.value)
            ),
            buffer_days=int(getattr(settings, "BOOKING_BUFFER_DAYS", 0)),
            max_calendar_days=int(getattr(settings, "BOOKING_MAX_CALENDAR_DAYS", 366)),
            refund_policy=RefundPolicy(
                full_hours=int(getattr(settings, "BOOKING_REFUND_FULL_HOURS", 48)),
                partial_hours=int(getattr(settings, "BOOKING_REFUND_PARTIAL_HOURS", 24)),
                partial_percent=Decimal(str(getattr(settings, "BOOKING_REFUND_PARTIAL_PERCENT", 50))),
            ),
        )
