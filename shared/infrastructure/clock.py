"""
Clock providers

Every date-window check of the engine (promo validity, hold expiry,
"dates in the past", refund windows) asks a clock instead of calling
``timezone.now()`` directly, so tests can pin time.
"""

from datetime import date, datetime

from django.utils import timezone  # type: ignore


class Clock:
    """Current time in the project's canonical timezone."""

    def now(self) -> datetime:
        return timezone.now()

    def today(self) -> date:
        return timezone.localdate(self.now())


class FixedClock(Clock):
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, instant: datetime):
        if timezone.is_naive(instant):
            instant = timezone.make_aware(instant)
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def advance(self, delta) -> None:
        self._instant = self._instant + delta


system_clock = Clock()
