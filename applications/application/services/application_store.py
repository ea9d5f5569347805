"""
Application store.

Owns application records and their append-only history. Every status
change goes through ``transition``, which validates the change against
the transition table, applies the TTL policy and performs a conditional
write.
"""
import logging
from dataclasses import fields
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

from applications.config import WorkflowConfig
from applications.domain.application import SYSTEM_CONTROLLED_FIELDS, Application
from applications.domain.events import ApplicationStatusChanged
from applications.domain.history import HistoryEntry
from applications.domain.status import ensure_valid_transition, is_terminal
from applications.domain.ttl import TTLAction, resolve_ttl_change, ttl_for_status
from applications.ports.application_repository import ApplicationRepository
from applications.ports.history_repository import HistoryRepository
from core.domain.exceptions import (
    ApplicationNotFoundError,
    DuplicateActiveLicenseError,
    HistoryRecordError,
    InvalidApplicationStateError,
    InvalidStatusTransitionError,
)
from core.domain.value_objects import SYSTEM_ACTOR, ApplicationStatus, HistoryAction
from core.infrastructure.events import event_bus as default_event_bus
from core.metrics import application_transitions_total, invalid_transitions_total

logger = logging.getLogger(__name__)

# Fields a transition may set on behalf of the caller
MUTABLE_FIELDS = frozenset(
    f.name for f in fields(Application) if f.name not in SYSTEM_CONTROLLED_FIELDS
)


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(timezone.utc)


class ApplicationStore:
    """
    Application persistence with status and TTL rules.

    Higher-level operations (approve, activate, cancel, expire, reject,
    revoke) are a transition plus a history entry.
    """

    def __init__(
        self,
        application_repository: ApplicationRepository,
        history_repository: HistoryRepository,
        config: Optional[WorkflowConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
        event_bus=None,
    ):
        """Initialize store with repositories and configuration."""
        self.application_repository = application_repository
        self.history_repository = history_repository
        self.config = config or WorkflowConfig()
        self.clock = clock or utc_now
        self.event_bus = event_bus or default_event_bus

    def now(self) -> datetime:
        """Return the store's current time."""
        return self.clock()

    def create(self, application: Application) -> Application:
        """
        Store a new Pending application.

        Args:
            application: Application entity (see ``Application.create``)

        Returns:
            Stored application

        Raises:
            DuplicateActiveLicenseError: If an Active or AwaitingNotification
                application exists for the same broker, account and EA
            StorageConflictError: If the record key is already taken
        """
        existing = self.application_repository.find_active_by_broker_account(
            application.broker, application.account_number, application.ea_name
        )
        if existing:
            raise DuplicateActiveLicenseError(
                f"Active application already exists for {application.broker} "
                f"account {application.account_number} with EA {application.ea_name}"
            )

        pending = application.with_changes(
            status=ApplicationStatus.PENDING,
            ttl=None,
            updated_at=self.now(),
        )
        created = self.application_repository.insert(pending)
        logger.info(
            "Application created",
            extra={"owner_id": created.owner_id, "record_key": created.record_key},
        )
        return created

    def get(self, owner_id: str, record_key: str) -> Optional[Application]:
        """Get an application, or None if it does not exist."""
        return self.application_repository.find(owner_id, record_key)

    def load(self, owner_id: str, record_key: str) -> Application:
        """
        Get an application.

        Raises:
            ApplicationNotFoundError: If it does not exist
        """
        application = self.get(owner_id, record_key)
        if application is None:
            raise ApplicationNotFoundError(f"Application {record_key} not found")
        return application

    def _build_changes(
        self,
        current: Application,
        new_status: ApplicationStatus,
        extra_fields: Optional[Dict[str, Any]],
        now: datetime,
    ) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for name, value in (extra_fields or {}).items():
            if name in SYSTEM_CONTROLLED_FIELDS or value is None:
                continue
            if name not in MUTABLE_FIELDS:
                raise ValueError(f"Unknown application field: {name}")
            changes[name] = value

        failure_count = changes.get("failure_count")
        if failure_count is not None and failure_count < current.failure_count:
            raise ValueError(
                f"Failure count cannot decrease ({current.failure_count} -> {failure_count})"
            )

        changes["status"] = new_status
        changes["updated_at"] = now

        ttl_change = resolve_ttl_change(
            current.status, new_status, now, self.config.ttl_months
        )
        if ttl_change.action == TTLAction.SET:
            changes["ttl"] = ttl_change.value
        elif ttl_change.action == TTLAction.CLEAR:
            changes["ttl"] = None
            logger.info(
                "Removing TTL for non-terminal status",
                extra={"record_key": current.record_key, "new_status": str(new_status)},
            )
        return changes

    def _transition(
        self,
        owner_id: str,
        record_key: str,
        new_status: ApplicationStatus,
        extra_fields: Optional[Dict[str, Any]] = None,
        expected: Optional[Application] = None,
    ) -> Tuple[Application, Application]:
        current = expected or self.load(owner_id, record_key)
        try:
            ensure_valid_transition(current.status, new_status)
        except InvalidStatusTransitionError:
            invalid_transitions_total.labels(
                from_status=current.status.value, to_status=new_status.value
            ).inc()
            logger.warning(
                "Invalid status transition attempt",
                extra={
                    "owner_id": owner_id,
                    "record_key": record_key,
                    "current_status": str(current.status),
                    "new_status": str(new_status),
                },
            )
            raise

        changes = self._build_changes(current, new_status, extra_fields, self.now())
        updated = self.application_repository.update_fields(
            owner_id,
            record_key,
            changes,
            expected_status=current.status,
            expected_updated_at=current.updated_at,
            expected_failure_count=current.failure_count,
        )

        application_transitions_total.labels(
            from_status=current.status.value, to_status=new_status.value
        ).inc()
        logger.info(
            "Application status updated",
            extra={
                "owner_id": owner_id,
                "record_key": record_key,
                "previous_status": str(current.status),
                "new_status": str(new_status),
                "ttl": updated.ttl,
            },
        )
        return current, updated

    def transition(
        self,
        owner_id: str,
        record_key: str,
        new_status: ApplicationStatus,
        extra_fields: Optional[Dict[str, Any]] = None,
        expected: Optional[Application] = None,
    ) -> Application:
        """
        Change an application's status.

        Args:
            owner_id: Owner id
            record_key: Record key
            new_status: Destination status
            extra_fields: Additional fields to set; status, updated_at, ttl
                and identity fields are ignored, as are None values
            expected: Snapshot the caller already read; the write fails
                if the stored record no longer matches it

        Returns:
            Updated application

        Raises:
            ApplicationNotFoundError: If the application does not exist
            InvalidStatusTransitionError: If the change is not allowed
            StorageConflictError: If the record changed concurrently
            ValueError: For unknown fields or a decreasing failure count
        """
        _, updated = self._transition(
            owner_id, record_key, new_status, extra_fields, expected=expected
        )
        return updated

    def record_history(self, entry: HistoryEntry) -> HistoryEntry:
        """
        Append a history entry, stamping its TTL from its new status.

        Args:
            entry: History entry

        Returns:
            Stored history entry
        """
        stamped = entry.with_ttl(
            ttl_for_status(entry.new_status, entry.changed_at, self.config.ttl_months)
        )
        stored = self.history_repository.append(stamped)
        logger.info(
            "History recorded",
            extra={
                "owner_id": entry.owner_id,
                "history_key": entry.history_key,
                "action": str(entry.action),
            },
        )
        return stored

    def _sync_history_ttl(self, owner_id: str, record_key: str, ttl: Optional[int]) -> int:
        entries = self.history_repository.find_for_application(owner_id, record_key)
        # One write per distinct key; duplicates share a key
        for history_key in dict.fromkeys(entry.history_key for entry in entries):
            self.history_repository.set_ttl(owner_id, history_key, ttl)
        return len(entries)

    def _transition_with_history_ttl_sync(
        self,
        owner_id: str,
        record_key: str,
        new_status: ApplicationStatus,
        extra_fields: Optional[Dict[str, Any]] = None,
        expected: Optional[Application] = None,
    ) -> Tuple[Application, Application]:
        previous, updated = self._transition(
            owner_id, record_key, new_status, extra_fields, expected=expected
        )
        if is_terminal(new_status):
            try:
                count = self._sync_history_ttl(owner_id, record_key, updated.ttl)
            except Exception as e:
                logger.error(
                    "Failed to set TTL for history records",
                    extra={"owner_id": owner_id, "record_key": record_key},
                    exc_info=True,
                )
                raise HistoryRecordError(
                    updated, f"Failed to set TTL for history records: {e}"
                ) from e
            logger.info(
                "Set TTL for history records",
                extra={"record_key": record_key, "count": count, "ttl": updated.ttl},
            )
        return previous, updated

    def transition_with_history_ttl_sync(
        self,
        owner_id: str,
        record_key: str,
        new_status: ApplicationStatus,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> Application:
        """
        Change status and, for terminal statuses, align the history TTL.

        Every existing history entry gets the application's TTL so the
        audit trail and the record expire together.

        Raises:
            HistoryRecordError: If the history TTL could not be set after
                the status changed
        """
        _, updated = self._transition_with_history_ttl_sync(
            owner_id, record_key, new_status, extra_fields
        )
        return updated

    def record_transition(
        self,
        previous: Application,
        updated: Application,
        action: HistoryAction,
        changed_by: str,
        reason: Optional[str] = None,
        error_details: Optional[str] = None,
        retry_count: Optional[int] = None,
    ) -> HistoryEntry:
        """
        Record the history entry of a transition that already happened.

        Raises:
            HistoryRecordError: If the entry could not be written; the
                transition is not rolled back
        """
        entry = HistoryEntry.create(
            owner_id=updated.owner_id,
            record_key=updated.record_key,
            action=action,
            changed_by=changed_by,
            previous_status=previous.status,
            new_status=updated.status,
            reason=reason,
            error_details=error_details,
            retry_count=retry_count,
            changed_at=self.now(),
        )
        try:
            stored = self.record_history(entry)
        except Exception as e:
            logger.error(
                "Failed to record history event",
                extra={
                    "owner_id": updated.owner_id,
                    "record_key": updated.record_key,
                    "action": str(action),
                },
                exc_info=True,
            )
            raise HistoryRecordError(updated, f"Failed to record history: {e}") from e

        self.event_bus.publish(
            ApplicationStatusChanged(
                owner_id=updated.owner_id,
                record_key=updated.record_key,
                previous_status=previous.status.value,
                new_status=updated.status.value,
                changed_by=changed_by,
            )
        )
        return stored

    def transition_and_record(
        self,
        owner_id: str,
        record_key: str,
        new_status: ApplicationStatus,
        action: HistoryAction,
        changed_by: str = SYSTEM_ACTOR,
        reason: Optional[str] = None,
        extra_fields: Optional[Dict[str, Any]] = None,
        error_details: Optional[str] = None,
        retry_count: Optional[int] = None,
        expected: Optional[Application] = None,
    ) -> Application:
        """
        Transition and record the matching history entry.

        Terminal destinations also align the history TTL.

        Returns:
            Updated application

        Raises:
            HistoryRecordError: If the history write failed after the transition
            StorageConflictError: If the record changed since it was read
        """
        previous, updated = self._transition_with_history_ttl_sync(
            owner_id, record_key, new_status, extra_fields, expected=expected
        )
        self.record_transition(
            previous,
            updated,
            action,
            changed_by,
            reason=reason,
            error_details=error_details,
            retry_count=retry_count,
        )
        return updated

    def approve(
        self,
        owner_id: str,
        record_key: str,
        approved_by: str,
        expiry_date: datetime,
        notification_delay_seconds: Optional[int] = None,
        extra_fields: Optional[Dict[str, Any]] = None,
    ) -> Application:
        """
        Approve a Pending application and schedule its notification.

        Moves Pending -> Approve -> AwaitingNotification with one history
        entry per step.

        Args:
            owner_id: Owner id
            record_key: Record key
            approved_by: Approving user id
            expiry_date: License expiry
            notification_delay_seconds: Delay before license generation
            extra_fields: Approved values of ea_name / email

        Returns:
            Application in AwaitingNotification
        """
        current = self.load(owner_id, record_key)
        if current.status != ApplicationStatus.PENDING:
            raise InvalidApplicationStateError(
                current.status, ApplicationStatus.PENDING
            )

        approval_fields = dict(extra_fields or {})
        approval_fields["expiry_date"] = expiry_date
        self.transition_and_record(
            owner_id,
            record_key,
            ApplicationStatus.APPROVE,
            HistoryAction.APPROVE,
            changed_by=approved_by,
            reason=f"Application approved by {approved_by}",
            extra_fields=approval_fields,
            expected=current,
        )

        delay = (
            self.config.approval_notification_delay_seconds
            if notification_delay_seconds is None
            else notification_delay_seconds
        )
        scheduled_at = self.now() + timedelta(seconds=delay)
        return self.transition_and_record(
            owner_id,
            record_key,
            ApplicationStatus.AWAITING_NOTIFICATION,
            HistoryAction.AWAITING_NOTIFICATION,
            reason=f"License generation scheduled for {scheduled_at.isoformat()}",
            extra_fields={"notification_scheduled_at": scheduled_at},
        )

    def activate_with_license(
        self,
        owner_id: str,
        record_key: str,
        license_key: str,
        expected: Optional[Application] = None,
    ) -> Application:
        """
        Activate an application after the license was delivered.

        Args:
            owner_id: Owner id
            record_key: Record key
            license_key: Generated license payload
            expected: Snapshot the license was generated from

        Returns:
            Active application
        """
        return self.transition_and_record(
            owner_id,
            record_key,
            ApplicationStatus.ACTIVE,
            HistoryAction.ACTIVE,
            reason="License generated and email sent successfully",
            extra_fields={"license_key": license_key},
            expected=expected,
        )

    def cancel(
        self,
        owner_id: str,
        record_key: str,
        reason: str,
        changed_by: Optional[str] = None,
    ) -> Application:
        """
        Cancel an application awaiting notification.

        The cancellation grace window is enforced by the caller.

        Raises:
            InvalidApplicationStateError: If not AwaitingNotification
        """
        current = self.load(owner_id, record_key)
        if current.status != ApplicationStatus.AWAITING_NOTIFICATION:
            raise InvalidApplicationStateError(
                current.status,
                ApplicationStatus.AWAITING_NOTIFICATION,
                f"Cannot cancel application in {current.status} status",
            )
        return self.transition_and_record(
            owner_id,
            record_key,
            ApplicationStatus.CANCELLED,
            HistoryAction.CANCELLED,
            changed_by=changed_by or owner_id,
            reason=reason,
            expected=current,
        )

    def expire(self, owner_id: str, record_key: str) -> Application:
        """Expire an Active application."""
        return self.transition_and_record(
            owner_id,
            record_key,
            ApplicationStatus.EXPIRED,
            HistoryAction.SYSTEM_EXPIRED,
            reason="License expired automatically",
        )

    def reject(
        self,
        owner_id: str,
        record_key: str,
        reason: Optional[str] = None,
        changed_by: str = SYSTEM_ACTOR,
    ) -> Application:
        """Reject a Pending application."""
        return self.transition_and_record(
            owner_id,
            record_key,
            ApplicationStatus.REJECTED,
            HistoryAction.REJECTED,
            changed_by=changed_by,
            reason=reason or f"Application rejected by {changed_by}",
        )

    def revoke(
        self,
        owner_id: str,
        record_key: str,
        reason: Optional[str] = None,
        changed_by: str = SYSTEM_ACTOR,
    ) -> Application:
        """Revoke an Active license."""
        return self.transition_and_record(
            owner_id,
            record_key,
            ApplicationStatus.REVOKED,
            HistoryAction.REVOKED,
            changed_by=changed_by,
            reason=reason or f"License revoked by {changed_by}",
        )

    def query_history(self, owner_id: str, record_key: str) -> List[HistoryEntry]:
        """Return an application's history, newest first."""
        return self.history_repository.find_for_application(owner_id, record_key)

    def list_for_owner(self, owner_id: str) -> List[Application]:
        """List all of an owner's applications, newest first."""
        return self.application_repository.find_by_owner(owner_id)

    def list_by_status(
        self, owner_id: str, status: ApplicationStatus
    ) -> List[Application]:
        """List an owner's applications in a status."""
        return self.application_repository.find_by_status(owner_id, status)

    def list_all_by_status(self, status: ApplicationStatus) -> List[Application]:
        """List applications in a status across all owners."""
        return self.application_repository.find_all_by_status(status)

    def find_due_for_expiry(self, now: Optional[datetime] = None) -> List[Application]:
        """Return Active applications whose expiry date has passed."""
        moment = now or self.now()
        return [
            application
            for application in self.list_all_by_status(ApplicationStatus.ACTIVE)
            if application.expiry_date is not None and application.expiry_date <= moment
        ]
