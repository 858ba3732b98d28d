"""Shared pytest fixtures for the reservation engine."""

from __future__ import annotations

import random
import threading
import time
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.db import OperationalError, connections

from apps.bookings.application.command_handlers import build_handlers
from apps.bookings.application.commands import ConfirmBookingCommand
from apps.bookings.conf import EngineConfig
from apps.bookings.domain.errors import EngineFault
from apps.catalog.models import InventoryItem
from apps.finances.gateway import ChargeResult, PaymentGateway
from shared.infrastructure.clock import FixedClock

# 2030-03-01 is the engine's "today" in every database test
NOW = datetime(2030, 3, 1, 9, 0, tzinfo=dt_timezone.utc)
TODAY = date(2030, 3, 1)


class RecordingGateway(PaymentGateway):
    """Gateway double that records calls and can be told to decline."""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.captures = []
        self.refunds = []

    def capture(self, amount, *, booking_id, description=""):
        self.captures.append((booking_id, amount))
        if not self.succeed:
            return ChargeResult(succeeded=False, reason="card_declined")
        return ChargeResult(succeeded=True, reference=f"ch_{booking_id}")

    def refund(self, booking_id, amount=None, *, reference=""):
        self.refunds.append((booking_id, amount, reference))
        return ChargeResult(succeeded=True, reference=f"re_{booking_id}")


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def gateway():
    return RecordingGateway()


@pytest.fixture
def engine_config():
    return EngineConfig()


@pytest.fixture
def handlers(clock, gateway, engine_config):
    return build_handlers(clock=clock, gateway=gateway, config=engine_config)


@pytest.fixture
def renter(db):
    return get_user_model().objects.create_user(username="renter", email="renter@example.com", password="pass")


@pytest.fixture
def other_renter(db):
    return get_user_model().objects.create_user(username="other", email="other@example.com", password="pass")


@pytest.fixture
def operator(db):
    return get_user_model().objects.create_user(
        username="operator",
        email="operator@example.com",
        password="pass",
        is_staff=True,
    )


@pytest.fixture
def camera(db):
    return InventoryItem.objects.create(
        name="Mirrorless camera",
        brand="Sony",
        model="A7 IV",
        daily_rate=Decimal("50.00"),
        weekly_rate=Decimal("300.00"),
        damage_deposit=Decimal("200.00"),
        replacement_value=Decimal("2500.00"),
        quantity_total=2,
    )


@pytest.fixture
def confirm(handlers):
    """Call the confirm handler with sensible defaults."""

    def _confirm(item, renter, start, end, **kwargs):
        command = ConfirmBookingCommand(
            item_id=item.pk,
            renter_id=renter.pk,
            start_date=start,
            end_date=end,
            **kwargs,
        )
        return handlers[ConfirmBookingCommand].handle(command)

    return _confirm


@pytest.fixture
def run_concurrently():
    """
    Start every call on its own thread at the same instant

    Each thread uses its own database connection. A call that hits a
    lock error (SQLite refuses a second writer instead of waiting) is
    retried, so the calls end up serialized the way a row lock would
    serialize them. Results come back in call order.
    """

    def _run(*calls, attempts=50):
        barrier = threading.Barrier(len(calls))
        results = [None] * len(calls)

        def worker(index, call):
            try:
                barrier.wait()
                for _ in range(attempts):
                    try:
                        results[index] = call()
                        return
                    except (EngineFault, OperationalError) as e:
                        results[index] = e
                        time.sleep(random.uniform(0.005, 0.02))
            except Exception as e:
                results[index] = e
            finally:
                connections.close_all()

        threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=30)
        return results

    return _run
