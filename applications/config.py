"""
Workflow configuration.

Read once from Django settings (``LICENSE_WORKFLOW``) and passed into the
store, the failure/retry engine and the handlers. Invalid values fall back
to their defaults instead of raising.
"""
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from applications.domain.ttl import DEFAULT_TTL_MONTHS, resolve_retention_months

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRY_COUNT = 3
DEFAULT_REQUEUE_DELAY_SECONDS = 300
DEFAULT_BATCH_RETRY_LIMIT = 10
DEFAULT_BATCH_RETRY_INTERVAL_SECONDS = 0.1
DEFAULT_CANCELLATION_WINDOW_SECONDS = 300
DEFAULT_APPROVAL_NOTIFICATION_DELAY_SECONDS = 300


def _positive_int(raw: Any, default: int, name: str) -> int:
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning("Invalid %s value %r, using default %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Invalid %s value %r, using default %s", name, raw, default)
        return default
    return value


def _non_negative_float(raw: Any, default: float, name: str) -> float:
    if raw is None or isinstance(raw, bool):
        return default
    try:
        value = float(str(raw).strip())
    except ValueError:
        logger.warning("Invalid %s value %r, using default %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("Invalid %s value %r, using default %s", name, raw, default)
        return default
    return value


@dataclass(frozen=True)
class WorkflowConfig:
    """Application workflow settings."""

    ttl_months: int = DEFAULT_TTL_MONTHS
    max_retry_count: int = DEFAULT_MAX_RETRY_COUNT
    requeue_delay_seconds: int = DEFAULT_REQUEUE_DELAY_SECONDS
    batch_retry_limit: int = DEFAULT_BATCH_RETRY_LIMIT
    batch_retry_interval_seconds: float = DEFAULT_BATCH_RETRY_INTERVAL_SECONDS
    cancellation_window_seconds: int = DEFAULT_CANCELLATION_WINDOW_SECONDS
    approval_notification_delay_seconds: int = (
        DEFAULT_APPROVAL_NOTIFICATION_DELAY_SECONDS
    )

    @classmethod
    def from_mapping(cls, values: Optional[Mapping[str, Any]]) -> "WorkflowConfig":
        """
        Build configuration from a mapping of upper-case keys.

        Args:
            values: Mapping such as ``settings.LICENSE_WORKFLOW``

        Returns:
            WorkflowConfig instance
        """
        values = values or {}
        return cls(
            ttl_months=resolve_retention_months(values.get("TTL_MONTHS")),
            max_retry_count=_positive_int(
                values.get("MAX_RETRY_COUNT"), DEFAULT_MAX_RETRY_COUNT, "MAX_RETRY_COUNT"
            ),
            requeue_delay_seconds=_positive_int(
                values.get("REQUEUE_DELAY_SECONDS"),
                DEFAULT_REQUEUE_DELAY_SECONDS,
                "REQUEUE_DELAY_SECONDS",
            ),
            batch_retry_limit=_positive_int(
                values.get("BATCH_RETRY_LIMIT"),
                DEFAULT_BATCH_RETRY_LIMIT,
                "BATCH_RETRY_LIMIT",
            ),
            batch_retry_interval_seconds=_non_negative_float(
                values.get("BATCH_RETRY_INTERVAL_SECONDS"),
                DEFAULT_BATCH_RETRY_INTERVAL_SECONDS,
                "BATCH_RETRY_INTERVAL_SECONDS",
            ),
            cancellation_window_seconds=_positive_int(
                values.get("CANCELLATION_WINDOW_SECONDS"),
                DEFAULT_CANCELLATION_WINDOW_SECONDS,
                "CANCELLATION_WINDOW_SECONDS",
            ),
            approval_notification_delay_seconds=_positive_int(
                values.get("APPROVAL_NOTIFICATION_DELAY_SECONDS"),
                DEFAULT_APPROVAL_NOTIFICATION_DELAY_SECONDS,
                "APPROVAL_NOTIFICATION_DELAY_SECONDS",
            ),
        )

    @classmethod
    def from_settings(cls) -> "WorkflowConfig":
        """Build configuration from Django settings."""
        from django.conf import settings

        return cls.from_mapping(getattr(settings, "LICENSE_WORKFLOW", None))
