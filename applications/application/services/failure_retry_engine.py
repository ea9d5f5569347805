"""
Notification failure and retry engine.

Decides retry eligibility against the retry limit, requeues failed
notifications and reports on failures.
"""
import logging
import time
from datetime import timedelta
from typing import Callable, List, Optional

from applications.application.dto.application_dto import (
    BatchRetryItemDTO,
    BatchRetryResultDTO,
    FailureReportDTO,
    FailureReportItemDTO,
    FailureStatisticsDTO,
)
from applications.application.services.application_store import ApplicationStore
from applications.domain.application import Application
from applications.domain.events import NotificationRetried
from applications.domain.messages import NotificationMessage
from applications.ports.notification_queue import NotificationQueue
from core.domain.exceptions import (
    HistoryRecordError,
    InvalidApplicationStateError,
    RetryLimitExceededError,
)
from core.domain.value_objects import SYSTEM_ACTOR, ApplicationStatus, HistoryAction
from core.instrumentation import get_tracer
from core.metrics import batch_retry_duration_seconds, notification_retries_total

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

RECENT_FAILURE_WINDOW = timedelta(hours=24)


class FailureRetryEngine:
    """
    Retry engine for failed notifications.

    Unforced retries stop at ``max_retry_count``; a forced retry is the
    operator's override.
    """

    def __init__(
        self,
        store: ApplicationStore,
        notification_queue: NotificationQueue,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize engine.

        Args:
            store: Application store
            notification_queue: Queue the notification worker consumes
            sleep: Pause function between batch items (defaults to time.sleep)
        """
        self.store = store
        self.notification_queue = notification_queue
        self.config = store.config
        self.sleep = sleep or time.sleep

    def is_retryable(self, application: Application) -> bool:
        """Return True if an unforced retry is allowed."""
        return application.is_retryable(self.config.max_retry_count)

    def retry(
        self,
        owner_id: str,
        record_key: str,
        reason: str = "Manual retry requested",
        force: bool = False,
        changed_by: str = SYSTEM_ACTOR,
    ) -> Application:
        """
        Requeue a failed notification.

        Args:
            owner_id: Owner id
            record_key: Record key
            reason: Why the retry was requested
            force: Retry even past the retry limit
            changed_by: Requesting user id

        Returns:
            Application back in AwaitingNotification

        Raises:
            ApplicationNotFoundError: If the application does not exist
            InvalidApplicationStateError: If not in FailedNotification
            RetryLimitExceededError: If the limit is reached and not forced
            StorageConflictError: If the application changed after it was read
            HistoryRecordError: If the retry history could not be written;
                the transition and the requeue already happened
        """
        with tracer.start_as_current_span("notification.retry") as span:
            span.set_attribute("application.record_key", record_key)
            span.set_attribute("retry.forced", force)

            application = self.store.load(owner_id, record_key)
            if application.status != ApplicationStatus.FAILED_NOTIFICATION:
                raise InvalidApplicationStateError(
                    application.status,
                    ApplicationStatus.FAILED_NOTIFICATION,
                    f"Cannot retry notification for application in "
                    f"{application.status} status. Expected FailedNotification.",
                )

            current_count = application.failure_count
            limit = self.config.max_retry_count
            if not force and current_count >= limit:
                raise RetryLimitExceededError(current_count, limit)

            retry_count = current_count + 1
            delay = self.config.requeue_delay_seconds
            scheduled_at = self.store.now() + timedelta(seconds=delay)

            updated = self.store.transition(
                owner_id,
                record_key,
                ApplicationStatus.AWAITING_NOTIFICATION,
                {"notification_scheduled_at": scheduled_at},
                expected=application,
            )

            history_error = None
            try:
                self.store.record_transition(
                    application,
                    updated,
                    HistoryAction.RETRY_NOTIFICATION,
                    changed_by,
                    reason=reason,
                    retry_count=retry_count,
                )
            except HistoryRecordError as e:
                history_error = e

            self.notification_queue.send(
                NotificationMessage(
                    record_key=record_key, owner_id=owner_id, retry_count=retry_count
                ),
                delay_seconds=delay,
                attributes={"retryAttempt": retry_count, "isRetry": "true"},
            )

            notification_retries_total.labels(
                mode="single", forced=str(force).lower()
            ).inc()
            self.store.event_bus.publish(
                NotificationRetried(
                    owner_id=owner_id,
                    record_key=record_key,
                    retry_count=retry_count,
                    forced=force,
                )
            )
            logger.info(
                "Failed notification retry initiated",
                extra={
                    "owner_id": owner_id,
                    "record_key": record_key,
                    "previous_failure_count": current_count,
                    "retry_count": retry_count,
                    "forced": force,
                },
            )

            if history_error is not None:
                raise history_error
            return updated

    def retry_candidates(self, owner_id: str, force: bool = False) -> List[Application]:
        """
        Select an owner's failed notifications eligible for batch retry.

        Args:
            owner_id: Owner id
            force: Include applications past the retry limit

        Returns:
            Candidate applications
        """
        failed = self.store.list_by_status(owner_id, ApplicationStatus.FAILED_NOTIFICATION)
        if force:
            return failed
        return [application for application in failed if self.is_retryable(application)]

    def batch_retry(
        self,
        owner_id: str,
        limit: Optional[int] = None,
        reason: str = "Batch retry requested",
        force: bool = False,
        changed_by: str = SYSTEM_ACTOR,
    ) -> BatchRetryResultDTO:
        """
        Retry an owner's failed notifications one at a time.

        A failing item is captured in the result and does not stop the batch.

        Args:
            owner_id: Owner id
            limit: Maximum number of applications (defaults to config)
            reason: Why the retry was requested
            force: Include applications past the retry limit
            changed_by: Requesting user id

        Returns:
            BatchRetryResultDTO
        """
        started = time.monotonic()
        max_items = limit if limit is not None else self.config.batch_retry_limit
        candidates = self.retry_candidates(owner_id, force=force)
        if len(candidates) > max_items:
            logger.info(
                "Limited batch retry to %s of %s applications",
                max_items,
                len(candidates),
            )
            candidates = candidates[:max_items]

        result = BatchRetryResultDTO()
        for index, application in enumerate(candidates):
            if index > 0:
                self.sleep(self.config.batch_retry_interval_seconds)
            try:
                self.retry(
                    owner_id,
                    application.record_key,
                    reason=reason,
                    force=force,
                    changed_by=changed_by,
                )
                result.results.append(
                    BatchRetryItemDTO(
                        record_key=application.record_key,
                        status="success",
                        message=f"Previous failure count {application.failure_count}",
                    )
                )
                result.success_count += 1
            except Exception as e:  # pylint: disable=broad-exception-caught
                logger.error(
                    "Batch retry failed for %s: %s",
                    application.record_key,
                    e,
                    exc_info=True,
                )
                result.results.append(
                    BatchRetryItemDTO(
                        record_key=application.record_key,
                        status="error",
                        error=str(e),
                    )
                )
                result.error_count += 1

        result.total_processed = len(result.results)
        batch_retry_duration_seconds.observe(time.monotonic() - started)
        logger.info(
            "Batch retry completed",
            extra={
                "owner_id": owner_id,
                "total_processed": result.total_processed,
                "success_count": result.success_count,
                "error_count": result.error_count,
            },
        )
        return result

    def _statistics(self, failed: List[Application]) -> FailureStatisticsDTO:
        now = self.store.now()
        retryable = sum(1 for application in failed if self.is_retryable(application))
        recent = sum(
            1
            for application in failed
            if application.last_failed_at is not None
            and now - application.last_failed_at < RECENT_FAILURE_WINDOW
        )
        return FailureStatisticsDTO(
            total_failures=len(failed),
            retryable_failures=retryable,
            max_retry_exceeded=len(failed) - retryable,
            recent_failures=recent,
        )

    def compute_failure_statistics(self, owner_id: str) -> FailureStatisticsDTO:
        """
        Aggregate an owner's current failed notifications.

        Args:
            owner_id: Owner id

        Returns:
            FailureStatisticsDTO
        """
        return self._statistics(
            self.store.list_by_status(owner_id, ApplicationStatus.FAILED_NOTIFICATION)
        )

    def generate_failure_report(self, owner_id: Optional[str] = None) -> FailureReportDTO:
        """
        Build a detailed failure report.

        Args:
            owner_id: Owner id, or None for all owners

        Returns:
            FailureReportDTO
        """
        if owner_id is None:
            failed = self.store.list_all_by_status(ApplicationStatus.FAILED_NOTIFICATION)
        else:
            failed = self.store.list_by_status(
                owner_id, ApplicationStatus.FAILED_NOTIFICATION
            )

        average = (
            sum(application.failure_count for application in failed) / len(failed)
            if failed
            else 0.0
        )
        return FailureReportDTO(
            summary=self._statistics(failed),
            average_failure_count=average,
            failed_applications=[
                FailureReportItemDTO(
                    owner_id=application.owner_id,
                    record_key=application.record_key,
                    ea_name=application.ea_name,
                    email=application.email,
                    failure_count=application.failure_count,
                    last_failure_reason=application.last_failure_reason,
                    last_failed_at=application.last_failed_at,
                    is_retryable=self.is_retryable(application),
                )
                for application in failed
            ],
            owner_id=owner_id,
        )
