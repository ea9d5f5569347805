"""
Application workflow DTOs.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from applications.domain.application import Application


@dataclass
class BatchRetryItemDTO:
    """Outcome of retrying one application in a batch."""

    record_key: str
    status: str  # "success" or "error"
    message: Optional[str] = None
    error: Optional[str] = None


@dataclass
class BatchRetryResultDTO:
    """DTO for a batch retry response."""

    results: List[BatchRetryItemDTO] = field(default_factory=list)
    total_processed: int = 0
    success_count: int = 0
    error_count: int = 0


@dataclass
class FailureStatisticsDTO:
    """Aggregate view of an owner's failed notifications."""

    total_failures: int
    retryable_failures: int
    max_retry_exceeded: int
    recent_failures: int


@dataclass
class FailureReportItemDTO:
    """DTO for one failed notification in a report."""

    owner_id: str
    record_key: str
    ea_name: str
    email: str
    failure_count: int
    last_failure_reason: Optional[str]
    last_failed_at: Optional[datetime]
    is_retryable: bool


@dataclass
class FailureReportDTO:
    """DTO for a detailed failure report."""

    summary: FailureStatisticsDTO
    average_failure_count: float
    failed_applications: List[FailureReportItemDTO]
    owner_id: Optional[str] = None  # None for the global report


@dataclass
class DeadLetterOutcomeDTO:
    """Outcome of ingesting one dead-letter record."""

    message_id: str
    outcome: str  # processed, dropped, skipped or error
    record_key: Optional[str] = None
    owner_id: Optional[str] = None
    failure_count: Optional[int] = None
    escalation_required: bool = False
    detail: Optional[str] = None


@dataclass
class ExpirySweepResultDTO:
    """DTO for an expiry sweep."""

    checked: int = 0
    expired: int = 0
    errors: int = 0
    record_keys: List[str] = field(default_factory=list)


@dataclass
class ApplicationListDTO:
    """An owner's applications grouped by where they are in the workflow."""

    pending: List[Application] = field(default_factory=list)
    awaiting_notification: List[Application] = field(default_factory=list)
    failed_notification: List[Application] = field(default_factory=list)
    active: List[Application] = field(default_factory=list)
    history: List[Application] = field(default_factory=list)  # terminal statuses
    total: int = 0

    @property
    def counts(self) -> Dict[str, int]:
        """Return the size of each group plus the total."""
        return {
            "pending": len(self.pending),
            "awaiting_notification": len(self.awaiting_notification),
            "failed_notification": len(self.failed_notification),
            "active": len(self.active),
            "history": len(self.history),
            "total": self.total,
        }


@dataclass
class NotificationDeliveryOutcomeDTO:
    """Outcome of processing one notification message."""

    record_key: str
    owner_id: str
    outcome: str  # activated, skipped or dropped
    status: Optional[str] = None
    detail: Optional[str] = None
