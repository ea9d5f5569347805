"""
Application domain events.

Domain events represent something that happened in the application workflow.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from core.domain.events import DomainEvent


class ApplicationStatusChanged(DomainEvent):
    """Event raised when an application changes status."""

    def __init__(
        self,
        owner_id: str,
        record_key: str,
        previous_status: str,
        new_status: str,
        changed_by: str,
        occurred_at: Optional[datetime] = None,
    ):
        """
        Initialize ApplicationStatusChanged event.

        Args:
            owner_id: Application owner
            record_key: Application record key
            previous_status: Status before the change
            new_status: Status after the change
            changed_by: User id or "system"
            occurred_at: When the event occurred
        """
        super().__init__(aggregate_id=record_key, occurred_at=occurred_at)
        self.owner_id = owner_id
        self.record_key = record_key
        self.previous_status = previous_status
        self.new_status = new_status
        self.changed_by = changed_by

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            owner_id=self.owner_id,
            previous_status=self.previous_status,
            new_status=self.new_status,
            changed_by=self.changed_by,
        )
        return data


class NotificationFailed(DomainEvent):
    """Event raised when a dead-lettered notification is recorded as failed."""

    def __init__(
        self,
        owner_id: str,
        record_key: str,
        failure_count: int,
        failure_reason: str,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=record_key, occurred_at=occurred_at)
        self.owner_id = owner_id
        self.record_key = record_key
        self.failure_count = failure_count
        self.failure_reason = failure_reason

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            owner_id=self.owner_id,
            failure_count=self.failure_count,
            failure_reason=self.failure_reason,
        )
        return data


class NotificationRetried(DomainEvent):
    """Event raised when a failed notification is requeued."""

    def __init__(
        self,
        owner_id: str,
        record_key: str,
        retry_count: int,
        forced: bool,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=record_key, occurred_at=occurred_at)
        self.owner_id = owner_id
        self.record_key = record_key
        self.retry_count = retry_count
        self.forced = forced

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            owner_id=self.owner_id,
            retry_count=self.retry_count,
            forced=self.forced,
        )
        return data


class NotificationRetryLimitReached(DomainEvent):
    """
    Event raised when notification failures reach the retry limit.

    Automatic retries stop here; subscribers escalate to an operator.
    """

    def __init__(
        self,
        owner_id: str,
        record_key: str,
        failure_count: int,
        max_retry_count: int,
        last_error: str,
        occurred_at: Optional[datetime] = None,
    ):
        super().__init__(aggregate_id=record_key, occurred_at=occurred_at)
        self.owner_id = owner_id
        self.record_key = record_key
        self.failure_count = failure_count
        self.max_retry_count = max_retry_count
        self.last_error = last_error

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            owner_id=self.owner_id,
            failure_count=self.failure_count,
            max_retry_count=self.max_retry_count,
            last_error=self.last_error,
        )
        return data
