"""
Unit of Work Pattern

Wraps an engine operation in a single database transaction and makes
sure domain events are published only after that transaction commits.
"""

from abc import ABC, abstractmethod
from typing import List
import logging

from django.db import transaction

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class AbstractUnitOfWork(ABC):
    """Abstract Unit of Work pattern"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.commit()
        else:
            self.rollback()

    @abstractmethod
    def commit(self):
        """Commit the transaction"""

    @abstractmethod
    def rollback(self):
        """Rollback the transaction"""

    @abstractmethod
    def record(self, *events: DomainEvent):
        """Queue events for publication after commit"""


class DjangoUnitOfWork(AbstractUnitOfWork):
    """
    Django implementation of Unit of Work

    Opens ``transaction.atomic()`` on enter. Any exception raised inside
    the block rolls the whole transaction back and discards the queued
    events; a clean exit commits and hands the events to the message bus
    through ``transaction.on_commit``.

    Usage:
        with DjangoUnitOfWork() as uow:
            item = InventoryItem.objects.select_for_update().get(pk=item_id)
            booking = Booking.objects.create(...)
            uow.record(BookingCreated(...))
        # Events are published after commit
    """

    def __init__(self):
        self._events: List[DomainEvent] = []
        self._transaction = None

    def __enter__(self):
        self._transaction = transaction.atomic()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        try:
            if exc_type is None:
                self.commit()
            else:
                self.rollback()
        finally:
            if self._transaction:
                self._transaction.__exit__(exc_type, exc_val, exc_tb)

    def commit(self):
        """
        Schedule event publishing for after the database commit

        The transaction itself is committed by ``atomic().__exit__``.
        """
        logger.debug(f"Committing unit of work with {len(self._events)} events")

        events = self._events.copy()
        self._events.clear()

        if events:
            transaction.on_commit(lambda: self._publish_events(events))

    def rollback(self):
        """Discard queued events; the atomic block rolls back the data"""
        if self._events:
            logger.warning(f"Rolling back unit of work, discarding {len(self._events)} events")
        self._events.clear()

    def record(self, *events: DomainEvent):
        self._events.extend(events)

    def _publish_events(self, events: List[DomainEvent]):
        from shared.application.message_bus import message_bus

        logger.info(f"Publishing {len(events)} domain events after commit")

        try:
            message_bus.publish_events(events)
        except Exception as e:
            # Data is already committed; the failure is left to monitoring
            logger.error(f"Error publishing events: {e}", exc_info=True)
