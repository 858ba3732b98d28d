"""
Base Domain Classes

Building blocks shared by every bounded context of the engine:
- ValueObject: Immutable objects compared by value
- DomainEvent: Events that represent something that happened
"""

from abc import ABC
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4


@dataclass(frozen=True)
class ValueObject(ABC):
    """
    Base class for value objects

    Value objects are immutable and have no identity.
    Two value objects are equal if all their attributes are equal.
    """
    pass


def _plain(value):
    if isinstance(value, (UUID, Decimal)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _plain(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(item) for item in value]
    return value


@dataclass
class DomainEvent:
    """
    Base class for domain events

    Domain events are collected by the unit of work during a transaction
    and published to the message bus only after the commit succeeded.
    """
    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=datetime.now)
    aggregate_id: object = None

    def to_dict(self) -> dict:
        """Convert event to a JSON-friendly dictionary"""
        payload = {key: _plain(value) for key, value in asdict(self).items()}
        payload['event_type'] = self.__class__.__name__
        return payload
