"""
Unit tests for core value objects and exceptions.
"""
import pytest

from core.domain.exceptions import (
    ApplicationNotFoundError,
    CancellationWindowExpiredError,
    DomainException,
    HistoryRecordError,
    InfrastructureException,
    InvalidApplicationStateError,
    MalformedMessageError,
    RetryLimitExceededError,
    StorageConflictError,
)
from core.domain.value_objects import SYSTEM_ACTOR, ApplicationStatus, HistoryAction


class TestApplicationStatus:
    """Tests for ApplicationStatus value object."""

    def test_wire_values(self):
        """Test that statuses serialize to their stored names."""
        assert [status.value for status in ApplicationStatus] == [
            "Pending",
            "Approve",
            "AwaitingNotification",
            "FailedNotification",
            "Active",
            "Expired",
            "Revoked",
            "Rejected",
            "Cancelled",
        ]

    def test_from_value(self):
        """Test parsing a stored status."""
        assert ApplicationStatus("FailedNotification") == ApplicationStatus.FAILED_NOTIFICATION

    def test_invalid_value(self):
        """Test parsing an unknown status."""
        with pytest.raises(ValueError):
            ApplicationStatus("Approved")


class TestHistoryAction:
    """Tests for HistoryAction value object."""

    def test_system_actions(self):
        """Test the non-status actions."""
        assert HistoryAction("SystemExpired") == HistoryAction.SYSTEM_EXPIRED
        assert HistoryAction("RetryNotification") == HistoryAction.RETRY_NOTIFICATION
        assert str(HistoryAction.EMAIL_FAILED) == "EmailFailed"

    def test_system_actor(self):
        """Test the system actor id."""
        assert SYSTEM_ACTOR == "system"


class TestExceptions:
    """Tests for domain and infrastructure exceptions."""

    def test_domain_exceptions_are_not_retryable(self):
        """Test the retryable flag on domain errors."""
        error = ApplicationNotFoundError()
        assert isinstance(error, DomainException)
        assert error.retryable is False
        assert error.code == "APPLICATION_NOT_FOUND"

    def test_infrastructure_exceptions_are_retryable(self):
        """Test the retryable flag on infrastructure errors."""
        assert StorageConflictError().retryable is True
        assert isinstance(StorageConflictError(), InfrastructureException)

    def test_history_record_error_carries_application(self):
        """Test that the written application travels with the error."""
        error = HistoryRecordError(application="app")
        assert error.application == "app"
        assert error.code == "HISTORY_RECORD_FAILED"

    def test_retry_limit_message(self):
        """Test RetryLimitExceededError details."""
        error = RetryLimitExceededError(current=3, limit=3)
        assert error.current == 3
        assert error.limit == 3
        assert "Maximum retry count (3) exceeded" in error.message

    def test_invalid_state_default_message(self):
        """Test InvalidApplicationStateError message."""
        error = InvalidApplicationStateError(
            ApplicationStatus.ACTIVE, ApplicationStatus.PENDING
        )
        assert error.message == "Application is in Active status, expected Pending"

    def test_cancellation_window_message(self):
        """Test CancellationWindowExpiredError message."""
        error = CancellationWindowExpiredError(elapsed_seconds=400, window_seconds=300)
        assert "within 300 seconds" in error.message
        assert error.code == "CANCELLATION_WINDOW_EXPIRED"

    def test_malformed_message_default(self):
        """Test MalformedMessageError default message."""
        assert MalformedMessageError().message == "Malformed notification message"
