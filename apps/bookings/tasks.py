"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from shared.application.message_bus import message_bus

from .application.commands import ActivateDueBookingsCommand, ExpireHoldsCommand

logger = logging.getLogger(__name__)


# ============================================================================
# PERIODIC TASKS (scheduled by Celery Beat)
# ============================================================================

@shared_task(name="bookings.expire_pending_bookings")
def expire_pending_bookings() -> dict[str, int]:
    """
    Cancel pending bookings whose payment window has lapsed.

    Their units become available again immediately, since availability
    only counts holding statuses. Runs every minute.

    Returns:
        dict: {"expired": number of cancelled bookings}
    """
    expired = message_bus.handle_command(ExpireHoldsCommand())
    return {"expired": expired}


@shared_task(name="bookings.activate_due_bookings")
def activate_due_bookings() -> dict[str, int]:
    """
    Move confirmed bookings to ACTIVE once their start date has come.

    Runs every hour.

    Returns:
        dict: {"activated": number of activated bookings}
    """
    activated = message_bus.handle_command(ActivateDueBookingsCommand())
    return {"activated": activated}
