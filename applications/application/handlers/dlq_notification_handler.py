"""
Dead-letter notification handler.

Turns a dead-lettered notification into a FailedNotification status with
full diagnostics in the application's history.
"""
import logging
from typing import Iterable, List

from applications.application.dto.application_dto import DeadLetterOutcomeDTO
from applications.application.services.application_store import ApplicationStore
from applications.domain.events import NotificationFailed, NotificationRetryLimitReached
from applications.domain.messages import (
    DeadLetterRecord,
    FailureDetails,
    NotificationMessage,
)
from core.domain.exceptions import MalformedMessageError
from core.domain.value_objects import SYSTEM_ACTOR, ApplicationStatus, HistoryAction
from core.instrumentation import get_tracer
from core.metrics import (
    dlq_messages_total,
    notification_failures_total,
    notification_retry_limit_reached_total,
)

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

OUTCOME_PROCESSED = "processed"
OUTCOME_DROPPED = "dropped"
OUTCOME_SKIPPED = "skipped"
OUTCOME_ERROR = "error"


def extract_original_message(record: DeadLetterRecord) -> NotificationMessage:
    """
    Extract the original notification from a dead-letter record.

    Raises:
        MalformedMessageError: If the body is not JSON or lacks identity fields
    """
    return NotificationMessage.from_dict(record.unwrap_body())


def extract_failure_details(record: DeadLetterRecord) -> FailureDetails:
    """
    Extract failure diagnostics from a dead-letter record.

    Missing or unreadable fields keep their defaults; this never raises.
    """
    failure_reason = FailureDetails.failure_reason
    error_details = FailureDetails.error_details

    try:
        receive_count = record.attributes.get("receive_count")
        if receive_count:
            failure_reason = (
                f"Message processing failed after {int(receive_count)} attempts"
            )
    except (TypeError, ValueError):
        logger.warning("Unreadable receive count %r", record.attributes.get("receive_count"))

    error_message = record.message_attribute("errorMessage") or record.message_attribute(
        "lastErrorMessage"
    )
    if error_message:
        error_details = error_message

    try:
        sent_at = record.sent_at()
        first_received_at = record.first_received_at()
        if sent_at and first_received_at:
            error_details += (
                f" | Sent: {sent_at.isoformat()}, "
                f"First received: {first_received_at.isoformat()}"
            )
    except (TypeError, ValueError, OverflowError, OSError):
        logger.warning("Failed to read dead-letter timestamps", exc_info=True)

    return FailureDetails(
        failure_reason=failure_reason,
        error_details=error_details,
        receipt_handle=record.receipt_handle,
    )


class DLQNotificationHandler:
    """
    Dead-letter ingestion.

    Only an application still in AwaitingNotification is moved to
    FailedNotification, so replaying a record is a no-op.
    """

    def __init__(self, store: ApplicationStore):
        """Initialize handler with store."""
        self.store = store
        self.max_retry_count = store.config.max_retry_count

    def _outcome(self, outcome: DeadLetterOutcomeDTO) -> DeadLetterOutcomeDTO:
        dlq_messages_total.labels(outcome=outcome.outcome).inc()
        return outcome

    def handle(self, record: DeadLetterRecord) -> DeadLetterOutcomeDTO:
        """
        Ingest one dead-letter record.

        Args:
            record: Dead-letter envelope

        Returns:
            DeadLetterOutcomeDTO (processed, dropped or skipped)

        Raises:
            StorageConflictError: If the application changed after it was read
            Exception: Other storage errors while updating status or history
        """
        with tracer.start_as_current_span("dlq.process_record") as span:
            span.set_attribute("messaging.message_id", record.message_id)
            logger.info(
                "Processing DLQ message",
                extra={"message_id": record.message_id, "receipt_handle": record.receipt_handle},
            )

            try:
                message = extract_original_message(record)
            except MalformedMessageError as e:
                logger.error(
                    "Cannot process DLQ message: %s",
                    e.message,
                    extra={"message_id": record.message_id},
                )
                return self._outcome(
                    DeadLetterOutcomeDTO(
                        message_id=record.message_id,
                        outcome=OUTCOME_DROPPED,
                        detail=e.message,
                    )
                )

            span.set_attribute("application.record_key", message.record_key)
            details = extract_failure_details(record)

            application = self.store.get(message.owner_id, message.record_key)
            if application is None:
                logger.error(
                    "Application not found for DLQ processing",
                    extra={"owner_id": message.owner_id, "record_key": message.record_key},
                )
                return self._outcome(
                    DeadLetterOutcomeDTO(
                        message_id=record.message_id,
                        outcome=OUTCOME_DROPPED,
                        record_key=message.record_key,
                        owner_id=message.owner_id,
                        detail="Application not found",
                    )
                )

            if application.status != ApplicationStatus.AWAITING_NOTIFICATION:
                logger.warning(
                    "Application is not in AwaitingNotification status, skipping DLQ processing",
                    extra={
                        "owner_id": message.owner_id,
                        "record_key": message.record_key,
                        "current_status": str(application.status),
                    },
                )
                return self._outcome(
                    DeadLetterOutcomeDTO(
                        message_id=record.message_id,
                        outcome=OUTCOME_SKIPPED,
                        record_key=message.record_key,
                        owner_id=message.owner_id,
                        failure_count=application.failure_count,
                        detail=f"Application is {application.status}",
                    )
                )

            failure_count = application.failure_count + 1
            self.store.transition_and_record(
                message.owner_id,
                message.record_key,
                ApplicationStatus.FAILED_NOTIFICATION,
                HistoryAction.EMAIL_FAILED,
                changed_by=SYSTEM_ACTOR,
                reason=f"Email notification failed: {details.failure_reason}",
                extra_fields={
                    "last_failure_reason": details.failure_reason,
                    "failure_count": failure_count,
                    "last_failed_at": self.store.now(),
                },
                error_details=details.error_details,
                retry_count=failure_count,
                expected=application,
            )

            notification_failures_total.inc()
            self.store.event_bus.publish(
                NotificationFailed(
                    owner_id=message.owner_id,
                    record_key=message.record_key,
                    failure_count=failure_count,
                    failure_reason=details.failure_reason,
                )
            )

            escalation_required = failure_count >= self.max_retry_count
            if escalation_required:
                logger.error(
                    "Maximum retry count reached, manual intervention required",
                    extra={
                        "owner_id": message.owner_id,
                        "record_key": message.record_key,
                        "failure_count": failure_count,
                        "ea_name": application.ea_name,
                    },
                )
                notification_retry_limit_reached_total.inc()
                self.store.event_bus.publish(
                    NotificationRetryLimitReached(
                        owner_id=message.owner_id,
                        record_key=message.record_key,
                        failure_count=failure_count,
                        max_retry_count=self.max_retry_count,
                        last_error=details.error_details,
                    )
                )

            logger.info(
                "DLQ processing completed",
                extra={
                    "record_key": message.record_key,
                    "failure_count": failure_count,
                    "can_retry": failure_count < self.max_retry_count,
                },
            )
            return self._outcome(
                DeadLetterOutcomeDTO(
                    message_id=record.message_id,
                    outcome=OUTCOME_PROCESSED,
                    record_key=message.record_key,
                    owner_id=message.owner_id,
                    failure_count=failure_count,
                    escalation_required=escalation_required,
                )
            )

    def handle_batch(self, records: Iterable[DeadLetterRecord]) -> List[DeadLetterOutcomeDTO]:
        """
        Ingest dead-letter records one at a time.

        A record that raises becomes an ``error`` outcome; the rest of the
        batch is still processed.

        Args:
            records: Dead-letter envelopes

        Returns:
            One outcome per record, in order
        """
        outcomes = []
        for record in records:
            try:
                outcomes.append(self.handle(record))
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.error(
                    "DLQ message processing failed: %s",
                    e,
                    extra={"message_id": record.message_id},
                    exc_info=True,
                )
                outcomes.append(
                    self._outcome(
                        DeadLetterOutcomeDTO(
                            message_id=record.message_id,
                            outcome=OUTCOME_ERROR,
                            detail=str(e),
                        )
                    )
                )
        logger.info("DLQ batch completed", extra={"record_count": len(outcomes)})
        return outcomes
