from dataclasses import dataclass

import pytest

from shared.application.message_bus import MessageBus
from shared.domain.base import DomainEvent


@dataclass(frozen=True)
class Ping:
    value: int


@dataclass
class Pinged(DomainEvent):
    value: int = 0


def test_command_dispatch_returns_handler_result():
    bus = MessageBus()
    bus.register_command_handler(Ping, lambda command: command.value * 2)

    assert bus.handle_command(Ping(21)) == 42


def test_missing_handler_raises():
    with pytest.raises(LookupError):
        MessageBus().handle_command(Ping(1))


def test_second_command_handler_rejected():
    bus = MessageBus()

    def first(command):
        return 1

    bus.register_command_handler(Ping, first)
    bus.register_command_handler(Ping, first)

    with pytest.raises(ValueError):
        bus.register_command_handler(Ping, lambda command: 2)


def test_failing_event_handler_does_not_stop_others():
    bus = MessageBus()
    seen = []

    def broken(event):
        raise RuntimeError("boom")

    bus.register_event_handler(Pinged, broken)
    bus.register_event_handler(Pinged, lambda event: seen.append(event.value))

    bus.publish_events([Pinged(value=7)])

    assert seen == [7]


def test_event_to_dict():
    payload = Pinged(value=3, aggregate_id=9).to_dict()

    assert payload["event_type"] == "Pinged"
    assert payload["value"] == 3
    assert payload["aggregate_id"] == 9
