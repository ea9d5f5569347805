"""
Application lifecycle handlers.

Handlers for approve, cancel, reject and revoke application commands.
"""
import logging
from datetime import timezone

from applications.application.commands.approve_application import (
    ApproveApplicationCommand,
)
from applications.application.commands.cancel_application import (
    CancelApplicationCommand,
)
from applications.application.commands.reject_application import (
    RejectApplicationCommand,
)
from applications.application.commands.revoke_application import (
    RevokeApplicationCommand,
)
from applications.application.services.application_store import ApplicationStore
from applications.domain.application import Application, normalize_record_key
from applications.domain.messages import NotificationMessage
from applications.ports.notification_queue import NotificationQueue
from core.domain.exceptions import (
    CancellationWindowExpiredError,
    InvalidApplicationStateError,
    InvalidApprovalError,
)
from core.domain.value_objects import ApplicationStatus

logger = logging.getLogger(__name__)


class ApproveApplicationHandler:
    """Handler for ApproveApplicationCommand."""

    def __init__(self, store: ApplicationStore, notification_queue: NotificationQueue):
        """Initialize handler with store and queue."""
        self.store = store
        self.notification_queue = notification_queue

    def handle(self, command: ApproveApplicationCommand) -> Application:
        """
        Handle approve application command.

        Args:
            command: ApproveApplicationCommand

        Returns:
            Application in AwaitingNotification

        Raises:
            InvalidApprovalError: If approval details are missing or invalid
            ApplicationNotFoundError: If application not found
            InvalidApplicationStateError: If application is not Pending
        """
        missing = [
            name
            for name in ("ea_name", "account_number", "email", "broker", "expiry")
            if not getattr(command, name)
        ]
        if missing:
            raise InvalidApprovalError(
                f"Missing required parameters: {', '.join(missing)}"
            )

        expiry = command.expiry
        if expiry.tzinfo is None:
            expiry = expiry.replace(tzinfo=timezone.utc)
        if expiry <= self.store.now():
            raise InvalidApprovalError("Invalid expiry date. Must be a valid future date")

        record_key = normalize_record_key(command.application_id)
        delay = self.store.config.approval_notification_delay_seconds
        approved = self.store.approve(
            command.owner_id,
            record_key,
            approved_by=command.approved_by,
            expiry_date=expiry,
            notification_delay_seconds=delay,
            extra_fields={"ea_name": command.ea_name, "email": command.email},
        )

        self.notification_queue.send(
            NotificationMessage(record_key=record_key, owner_id=command.owner_id),
            delay_seconds=delay,
        )

        logger.info(
            "License approval process initiated",
            extra={
                "owner_id": command.owner_id,
                "record_key": record_key,
                "notification_scheduled_at": approved.notification_scheduled_at.isoformat(),
            },
        )
        return approved


class CancelApplicationHandler:
    """
    Handler for CancelApplicationCommand.

    An approval can be cancelled only within the grace window after it
    entered AwaitingNotification.
    """

    def __init__(self, store: ApplicationStore):
        """Initialize handler with store."""
        self.store = store

    def handle(self, command: CancelApplicationCommand) -> Application:
        """
        Handle cancel application command.

        Args:
            command: CancelApplicationCommand

        Returns:
            Cancelled Application

        Raises:
            ApplicationNotFoundError: If application not found
            InvalidApplicationStateError: If not AwaitingNotification
            CancellationWindowExpiredError: If the grace window has passed
        """
        record_key = normalize_record_key(command.application_id)
        application = self.store.load(command.owner_id, record_key)

        if application.status != ApplicationStatus.AWAITING_NOTIFICATION:
            raise InvalidApplicationStateError(
                application.status,
                ApplicationStatus.AWAITING_NOTIFICATION,
                "Application cannot be cancelled",
            )

        elapsed = int(round((self.store.now() - application.updated_at).total_seconds()))
        window = self.store.config.cancellation_window_seconds
        if elapsed > window:
            raise CancellationWindowExpiredError(elapsed, window)

        cancelled = self.store.cancel(
            command.owner_id,
            record_key,
            reason=f"Cancelled by user within {elapsed} seconds of approval",
            changed_by=command.owner_id,
        )
        logger.info(
            "Application cancelled",
            extra={
                "owner_id": command.owner_id,
                "record_key": record_key,
                "elapsed_seconds": elapsed,
            },
        )
        return cancelled


class RejectApplicationHandler:
    """Handler for RejectApplicationCommand."""

    def __init__(self, store: ApplicationStore):
        """Initialize handler with store."""
        self.store = store

    def handle(self, command: RejectApplicationCommand) -> Application:
        """
        Handle reject application command.

        Raises:
            ApplicationNotFoundError: If application not found
            InvalidApplicationStateError: If application is not Pending
        """
        record_key = normalize_record_key(command.application_id)
        application = self.store.load(command.owner_id, record_key)
        if application.status != ApplicationStatus.PENDING:
            raise InvalidApplicationStateError(
                application.status, ApplicationStatus.PENDING
            )
        return self.store.reject(
            command.owner_id,
            record_key,
            reason=command.reason,
            changed_by=command.rejected_by,
        )


class RevokeApplicationHandler:
    """Handler for RevokeApplicationCommand."""

    def __init__(self, store: ApplicationStore):
        """Initialize handler with store."""
        self.store = store

    def handle(self, command: RevokeApplicationCommand) -> Application:
        """
        Handle revoke application command.

        Raises:
            ApplicationNotFoundError: If application not found
            InvalidApplicationStateError: If the license is not Active
        """
        record_key = normalize_record_key(command.application_id)
        application = self.store.load(command.owner_id, record_key)
        if application.status != ApplicationStatus.ACTIVE:
            raise InvalidApplicationStateError(
                application.status, ApplicationStatus.ACTIVE
            )
        return self.store.revoke(
            command.owner_id,
            record_key,
            reason=command.reason,
            changed_by=command.revoked_by,
        )
