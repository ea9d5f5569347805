"""
Event handlers for domain events.

These handlers process domain events for side effects
like audit logging and alerting hooks.
"""

import logging

from applications.domain.events import (
    ApplicationStatusChanged,
    NotificationFailed,
    NotificationRetried,
    NotificationRetryLimitReached,
)
from core.domain.events import DomainEvent, EventHandler
from core.infrastructure.events import event_bus

logger = logging.getLogger(__name__)


class AuditLogEventHandler(EventHandler):
    """
    Event handler for audit logging.

    Writes every domain event to the structured log.
    """

    def handle(self, event: DomainEvent) -> None:
        """
        Handle domain event for audit logging.

        Args:
            event: Domain event to log
        """
        logger.info(
            "Audit log: %s - %s",
            event.event_type,
            event.aggregate_id,
            extra=event.to_dict(),
        )


class RetryLimitAlertHandler(EventHandler):
    """
    Event handler for exhausted notification retries.

    Emits an error-level record that log-based alerting picks up.
    """

    def handle(self, event: DomainEvent) -> None:
        """
        Handle NotificationRetryLimitReached.

        Args:
            event: Domain event
        """
        logger.error(
            "Manual intervention required for %s",
            event.aggregate_id,
            extra=event.to_dict(),
        )


def register_event_handlers(bus=None) -> None:
    """
    Register all event handlers with the event bus.

    Args:
        bus: Event bus to register with (defaults to the global bus)
    """
    bus = bus or event_bus
    audit_handler = AuditLogEventHandler()

    for event_type in (
        ApplicationStatusChanged,
        NotificationFailed,
        NotificationRetried,
        NotificationRetryLimitReached,
    ):
        bus.subscribe(event_type, audit_handler)

    bus.subscribe(NotificationRetryLimitReached, RetryLimitAlertHandler())
    logger.info("Event handlers registered")
