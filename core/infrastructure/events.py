"""
In-memory event bus implementation.

This is a simple in-memory implementation suitable for a modular monolith.
Handlers run synchronously in the publishing thread.
"""

import logging
from typing import Dict, List, Type

from core.domain.events import DomainEvent, EventBus, EventHandler

logger = logging.getLogger(__name__)


class InMemoryEventBus(EventBus):
    """
    In-memory event bus implementation.

    Handler failures are logged and do not propagate to the publisher,
    so a broken side effect never undoes the state change that raised it.
    """

    def __init__(self):
        """Initialize the event bus."""
        self._handlers: Dict[Type[DomainEvent], List[EventHandler]] = {}

    def subscribe(self, event_type: Type[DomainEvent], handler: EventHandler) -> None:
        """
        Subscribe to a domain event type.

        Args:
            event_type: The type of event to subscribe to
            handler: The handler to call when event is published
        """
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug(
            "Subscribed %s to %s", handler.__class__.__name__, event_type.__name__
        )

    def clear(self) -> None:
        """Remove all subscriptions."""
        self._handlers.clear()

    def publish(self, event: DomainEvent) -> None:
        """
        Publish a domain event.

        Args:
            event: The domain event to publish
        """
        handlers = self._handlers.get(type(event), [])

        if not handlers:
            logger.debug("No handlers registered for %s", event.event_type)
            return

        logger.info("Publishing %s to %d handler(s)", event.event_type, len(handlers))

        for handler in handlers:
            try:
                handler.handle(event)
            except Exception:  # pylint: disable=broad-exception-caught
                logger.error(
                    "Error handling %s with %s",
                    event.event_type,
                    handler.__class__.__name__,
                    exc_info=True,
                )


# Global event bus instance
event_bus = InMemoryEventBus()
