"""
Domain events base classes and infrastructure.

Domain events represent something that happened in the domain.
They are used for decoupling modules and enabling event-driven architecture.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from uuid import UUID, uuid4


class DomainEvent(ABC):
    """
    Base class for all domain events.

    Domain events represent something that happened in the domain.
    The event type is the concrete class name.
    """

    def __init__(
        self,
        aggregate_id: str,
        event_id: Optional[UUID] = None,
        occurred_at: Optional[datetime] = None,
    ):
        """
        Initialize domain event.

        Args:
            aggregate_id: Identifier of the aggregate the event belongs to
            event_id: Event UUID (generated if not provided)
            occurred_at: When the event occurred (defaults to now)
        """
        self.event_id = event_id or uuid4()
        self.occurred_at = occurred_at or datetime.now(timezone.utc)
        self.aggregate_id = aggregate_id
        self.event_type = self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {
            "event_id": str(self.event_id),
            "occurred_at": self.occurred_at.isoformat(),
            "aggregate_id": self.aggregate_id,
            "event_type": self.event_type,
        }


class EventHandler(ABC):
    """
    Base class for event handlers.

    Event handlers process domain events for side effects.
    """

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        """
        Handle a domain event.

        Args:
            event: The domain event to handle
        """
        pass


class EventBus(ABC):
    """
    Abstract event bus for publishing and subscribing to domain events.
    """

    @abstractmethod
    def subscribe(self, event_type, handler: EventHandler) -> None:
        """Subscribe a handler to an event type."""
        pass

    @abstractmethod
    def publish(self, event: DomainEvent) -> None:
        """Publish a domain event to subscribed handlers."""
        pass
