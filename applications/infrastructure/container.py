"""
Wiring of the workflow services to their Django and RabbitMQ adapters.
"""
from django.conf import settings

from applications.application.handlers.dlq_notification_handler import (
    DLQNotificationHandler,
)
from applications.application.handlers.notification_delivery_handler import (
    NotificationDeliveryHandler,
)
from applications.application.services.application_store import ApplicationStore
from applications.application.services.failure_retry_engine import FailureRetryEngine
from applications.config import WorkflowConfig
from applications.infrastructure.licensing.django_license_mailer import DjangoLicenseMailer
from applications.infrastructure.licensing.signed_license_generator import (
    SignedLicenseGenerator,
)
from applications.infrastructure.queues.dead_letter_consumer import DeadLetterConsumer
from applications.infrastructure.queues.kombu_notification_queue import (
    KombuNotificationQueue,
)
from applications.infrastructure.queues.notification_consumer import NotificationConsumer
from applications.infrastructure.repositories.django_application_repository import (
    DjangoApplicationRepository,
)
from applications.infrastructure.repositories.django_history_repository import (
    DjangoHistoryRepository,
)


def _queue_settings() -> dict:
    return getattr(settings, "NOTIFICATION_QUEUE", {}) or {}


def build_application_store(config: WorkflowConfig = None) -> ApplicationStore:
    """Build an ApplicationStore backed by the Django ORM."""
    return ApplicationStore(
        DjangoApplicationRepository(),
        DjangoHistoryRepository(),
        config=config or WorkflowConfig.from_settings(),
    )


def build_notification_queue() -> KombuNotificationQueue:
    """Build the RabbitMQ notification queue from settings."""
    queue_settings = _queue_settings()
    return KombuNotificationQueue(
        broker_url=queue_settings.get("BROKER_URL", settings.CELERY_BROKER_URL),
        exchange_name=queue_settings.get("EXCHANGE", "license_notifications"),
        queue_name=queue_settings.get("QUEUE", "license_notifications"),
        dead_letter_exchange=queue_settings.get(
            "DEAD_LETTER_EXCHANGE", "license_notifications_dlx"
        ),
        exchange_type=queue_settings.get("EXCHANGE_TYPE", "x-delayed-message"),
    )


def build_dead_letter_consumer() -> DeadLetterConsumer:
    """Build the dead-letter consumer from settings."""
    queue_settings = _queue_settings()
    return DeadLetterConsumer(
        broker_url=queue_settings.get("BROKER_URL", settings.CELERY_BROKER_URL),
        dead_letter_exchange=queue_settings.get(
            "DEAD_LETTER_EXCHANGE", "license_notifications_dlx"
        ),
        queue_name=queue_settings.get("DEAD_LETTER_QUEUE", "license_notifications_dlq"),
    )


def build_failure_retry_engine(store: ApplicationStore = None) -> FailureRetryEngine:
    """Build a FailureRetryEngine publishing to RabbitMQ."""
    return FailureRetryEngine(store or build_application_store(), build_notification_queue())


def build_dlq_handler(store: ApplicationStore = None) -> DLQNotificationHandler:
    """Build the dead-letter ingestion handler."""
    return DLQNotificationHandler(store or build_application_store())


def build_notification_delivery_handler(
    store: ApplicationStore = None,
) -> NotificationDeliveryHandler:
    """Build the license delivery handler."""
    return NotificationDeliveryHandler(
        store or build_application_store(),
        SignedLicenseGenerator(),
        DjangoLicenseMailer(),
    )


def build_notification_consumer() -> NotificationConsumer:
    """Build the notification consumer from settings."""
    queue_settings = _queue_settings()
    return NotificationConsumer(
        build_notification_delivery_handler(),
        broker_url=queue_settings.get("BROKER_URL", settings.CELERY_BROKER_URL),
        exchange_name=queue_settings.get("EXCHANGE", "license_notifications"),
        queue_name=queue_settings.get("QUEUE", "license_notifications"),
        dead_letter_exchange=queue_settings.get(
            "DEAD_LETTER_EXCHANGE", "license_notifications_dlx"
        ),
        exchange_type=queue_settings.get("EXCHANGE_TYPE", "x-delayed-message"),
    )
