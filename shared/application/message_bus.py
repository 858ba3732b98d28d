"""
Message Bus

Routes engine commands and queries to their handlers and fans out
domain events to subscribers after a unit of work commits.
"""

from typing import Dict, List, Callable, Type, Any
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)


class MessageBus:
    """
    Message bus for commands, queries and events

    Commands and queries: one handler per message type (1:1)
    Events: any number of handlers per event type (1:N)
    """

    def __init__(self):
        self._event_handlers: Dict[Type[DomainEvent], List[Callable]] = {}
        self._command_handlers: Dict[Type, Callable] = {}

    def register_event_handler(
        self,
        event_type: Type[DomainEvent],
        handler: Callable[[DomainEvent], None]
    ):
        handlers = self._event_handlers.setdefault(event_type, [])
        if handler not in handlers:
            handlers.append(handler)
            logger.debug(f"Registered event handler for {event_type.__name__}")

    def register_command_handler(
        self,
        command_type: Type,
        handler: Callable[[Any], Any]
    ):
        """
        Register the single handler of a command or query type

        Registering the same callable twice is a no-op, so app
        ``ready()`` hooks may run more than once.
        """
        existing = self._command_handlers.get(command_type)
        if existing is not None and existing != handler:
            raise ValueError(
                f"Handler for {command_type.__name__} is already registered. "
                "Commands can have only one handler."
            )
        self._command_handlers[command_type] = handler
        logger.debug(f"Registered command handler for {command_type.__name__}")

    def handle_command(self, command: Any) -> Any:
        """
        Dispatch a command or query and return its handler's result

        Typed engine errors come back as return values; only faults
        (missing handler, infrastructure errors) raise.
        """
        command_type = type(command)
        handler = self._command_handlers.get(command_type)

        if not handler:
            raise LookupError(
                f"No handler registered for command {command_type.__name__}"
            )

        logger.info(f"Handling command: {command_type.__name__}")
        try:
            return handler(command)
        except Exception as e:
            logger.error(f"Error handling command {command_type.__name__}: {e}")
            raise

    def publish_events(self, events: List[DomainEvent]):
        """
        Publish domain events

        Errors in one handler are logged and do not stop the others.
        """
        for event in events:
            event_type = type(event)
            handlers = self._event_handlers.get(event_type, [])

            if not handlers:
                logger.debug(f"No handlers registered for event {event_type.__name__}")
                continue

            logger.info(f"Publishing event: {event_type.__name__} (ID: {event.event_id})")

            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Error in event handler {getattr(handler, '__name__', handler)} "
                        f"for event {event_type.__name__}: {e}",
                        exc_info=True
                    )


# Global message bus instance
message_bus = MessageBus()
