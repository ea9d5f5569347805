"""
Notification retry handlers.

Handlers for single and batch retry of failed notifications.
"""
from applications.application.commands.batch_retry import BatchRetryCommand
from applications.application.commands.retry_notification import (
    RetryNotificationCommand,
)
from applications.application.dto.application_dto import BatchRetryResultDTO
from applications.application.services.failure_retry_engine import FailureRetryEngine
from applications.domain.application import Application, normalize_record_key


class RetryNotificationHandler:
    """Handler for RetryNotificationCommand."""

    def __init__(self, engine: FailureRetryEngine):
        """Initialize handler with retry engine."""
        self.engine = engine

    def handle(self, command: RetryNotificationCommand) -> Application:
        """
        Handle retry notification command.

        Args:
            command: RetryNotificationCommand

        Returns:
            Application back in AwaitingNotification

        Raises:
            ApplicationNotFoundError: If application not found
            InvalidApplicationStateError: If not FailedNotification
            RetryLimitExceededError: If the retry limit is reached and not forced
        """
        return self.engine.retry(
            command.owner_id,
            normalize_record_key(command.application_id),
            reason=command.reason,
            force=command.force,
            changed_by=command.owner_id,
        )


class BatchRetryHandler:
    """Handler for BatchRetryCommand."""

    def __init__(self, engine: FailureRetryEngine):
        """Initialize handler with retry engine."""
        self.engine = engine

    def handle(self, command: BatchRetryCommand) -> BatchRetryResultDTO:
        """
        Handle batch retry command.

        Args:
            command: BatchRetryCommand

        Returns:
            BatchRetryResultDTO with per-item outcomes
        """
        return self.engine.batch_retry(
            command.owner_id,
            limit=command.max_applications,
            reason=command.reason,
            force=command.force,
            changed_by=command.owner_id,
        )
