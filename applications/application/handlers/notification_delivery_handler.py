"""
Notification delivery handler.

Generates and emails the license of an application awaiting notification,
then activates it. Any exception leaves the application in
AwaitingNotification so the broker can dead-letter the message.
"""
import logging

from applications.application.dto.application_dto import NotificationDeliveryOutcomeDTO
from applications.application.services.application_store import ApplicationStore
from applications.domain.messages import NotificationMessage
from applications.ports.license_generator import LicenseGenerator
from applications.ports.license_mailer import LicenseMailer
from core.domain.exceptions import LicenseDeliveryError
from core.domain.value_objects import ApplicationStatus
from core.instrumentation import get_tracer
from core.metrics import notification_deliveries_total

logger = logging.getLogger(__name__)
tracer = get_tracer(__name__)

OUTCOME_ACTIVATED = "activated"
OUTCOME_SKIPPED = "skipped"
OUTCOME_DROPPED = "dropped"

REQUIRED_FIELDS = ("email", "ea_name", "account_number", "expiry_date")


class NotificationDeliveryHandler:
    """
    Notification queue worker.

    An application that left AwaitingNotification before its message
    arrived (for example a cancelled approval) is skipped.
    """

    def __init__(
        self,
        store: ApplicationStore,
        license_generator: LicenseGenerator,
        license_mailer: LicenseMailer,
    ):
        """Initialize handler with store, generator and mailer."""
        self.store = store
        self.license_generator = license_generator
        self.license_mailer = license_mailer

    def _outcome(self, message, outcome, status=None, detail=None):
        notification_deliveries_total.labels(outcome=outcome).inc()
        return NotificationDeliveryOutcomeDTO(
            record_key=message.record_key,
            owner_id=message.owner_id,
            outcome=outcome,
            status=status,
            detail=detail,
        )

    def handle(self, message: NotificationMessage) -> NotificationDeliveryOutcomeDTO:
        """
        Deliver the license for one notification message.

        Args:
            message: Notification payload

        Returns:
            NotificationDeliveryOutcomeDTO (activated, skipped or dropped)

        Raises:
            LicenseDeliveryError: If the application lacks required data
            StorageConflictError: If the application changed during delivery
            Exception: Generator and mailer errors propagate
        """
        with tracer.start_as_current_span("notification.deliver") as span:
            span.set_attribute("application.record_key", message.record_key)
            logger.info(
                "Processing notification message",
                extra={"owner_id": message.owner_id, "record_key": message.record_key},
            )

            application = self.store.get(message.owner_id, message.record_key)
            if application is None:
                logger.error(
                    "Application not found",
                    extra={"owner_id": message.owner_id, "record_key": message.record_key},
                )
                return self._outcome(message, OUTCOME_DROPPED, detail="Application not found")

            if application.status != ApplicationStatus.AWAITING_NOTIFICATION:
                logger.warning(
                    "Application not in AwaitingNotification status",
                    extra={
                        "owner_id": message.owner_id,
                        "record_key": message.record_key,
                        "current_status": str(application.status),
                    },
                )
                return self._outcome(
                    message,
                    OUTCOME_SKIPPED,
                    status=application.status.value,
                    detail=f"Application is {application.status}",
                )

            missing = [name for name in REQUIRED_FIELDS if not getattr(application, name)]
            if missing:
                raise LicenseDeliveryError(
                    f"Missing required application data: {', '.join(missing)}"
                )

            issued_at = self.store.now()
            license_key = self.license_generator.generate(application, issued_at)
            logger.info(
                "License generated",
                extra={
                    "owner_id": message.owner_id,
                    "ea_name": application.ea_name,
                    "retry_count": message.retry_count,
                },
            )

            self.license_mailer.send_license(application, license_key)

            activated = self.store.activate_with_license(
                message.owner_id, message.record_key, license_key, expected=application
            )
            logger.info(
                "Notification process completed",
                extra={
                    "owner_id": message.owner_id,
                    "record_key": message.record_key,
                    "new_status": str(activated.status),
                },
            )
            return self._outcome(message, OUTCOME_ACTIVATED, status=activated.status.value)
