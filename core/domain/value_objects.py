"""
Value objects for the domain.

Value objects are immutable objects that are defined by their attributes
rather than their identity. They have no identity and are compared by value.
"""
from enum import Enum


class ApplicationStatus(Enum):
    """Application status value object."""

    PENDING = "Pending"
    APPROVE = "Approve"
    AWAITING_NOTIFICATION = "AwaitingNotification"
    FAILED_NOTIFICATION = "FailedNotification"
    ACTIVE = "Active"
    EXPIRED = "Expired"
    REVOKED = "Revoked"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"

    def __str__(self) -> str:
        """Return status as string."""
        return self.value


class HistoryAction(Enum):
    """
    History action value object.

    Every application status is also a valid action; the remaining
    members describe system events recorded in the audit trail.
    """

    PENDING = "Pending"
    APPROVE = "Approve"
    AWAITING_NOTIFICATION = "AwaitingNotification"
    FAILED_NOTIFICATION = "FailedNotification"
    ACTIVE = "Active"
    EXPIRED = "Expired"
    REVOKED = "Revoked"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"

    CREATED = "Created"
    UPDATED = "Updated"
    SYSTEM_EXPIRED = "SystemExpired"
    SYSTEM_UPDATE = "SystemUpdate"
    LICENSE_GENERATED = "LicenseGenerated"
    EMAIL_SENT = "EmailSent"
    EMAIL_FAILED = "EmailFailed"
    ADMIN_ACTION = "AdminAction"
    RETRY_NOTIFICATION = "RetryNotification"

    @classmethod
    def for_status(cls, status: ApplicationStatus) -> "HistoryAction":
        """Return the action that mirrors a status."""
        return cls(status.value)

    def __str__(self) -> str:
        """Return action as string."""
        return self.value


SYSTEM_ACTOR = "system"
