"""
Domain exceptions.

Domain exceptions represent business rule violations
and domain-specific error conditions. Infrastructure exceptions
represent transient storage conditions that callers may retry.
"""


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    retryable = False

    def __init__(self, message: str, code: str = None):
        """
        Initialize domain exception.

        Args:
            message: Human-readable error message
            code: Machine-readable error code
        """
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class ApplicationException(DomainException):
    """Base exception for application-related errors."""

    pass


class ApplicationNotFoundError(ApplicationException):
    """Raised when an application is not found."""

    def __init__(self, message: str = "Application not found"):
        super().__init__(message, code="APPLICATION_NOT_FOUND")


class InvalidStatusTransitionError(ApplicationException):
    """Raised when a status change is not allowed by the transition graph."""

    def __init__(self, from_status, to_status):
        super().__init__(
            f"Invalid status transition: {from_status} -> {to_status}",
            code="INVALID_TRANSITION",
        )
        self.from_status = from_status
        self.to_status = to_status


class DuplicateActiveLicenseError(ApplicationException):
    """Raised when an active application already exists for broker/account/EA."""

    def __init__(self, message: str = "Active application already exists"):
        super().__init__(message, code="DUPLICATE_ACTIVE_LICENSE")


class InvalidApplicationStateError(ApplicationException):
    """Raised when an operation is invalid for the current status."""

    def __init__(self, current_status, expected_status, message: str = None):
        super().__init__(
            message
            or f"Application is in {current_status} status, expected {expected_status}",
            code="INVALID_STATE",
        )
        self.current_status = current_status
        self.expected_status = expected_status


class RetryLimitExceededError(ApplicationException):
    """Raised when an unforced retry is attempted past the retry limit."""

    def __init__(self, current: int, limit: int):
        super().__init__(
            f"Maximum retry count ({limit}) exceeded. Use force=true to override.",
            code="RETRY_LIMIT_EXCEEDED",
        )
        self.current = current
        self.limit = limit


class CancellationWindowExpiredError(ApplicationException):
    """Raised when a cancellation arrives after the grace window."""

    def __init__(self, elapsed_seconds: int, window_seconds: int):
        super().__init__(
            f"Applications can only be cancelled within {window_seconds} seconds "
            f"of approval ({elapsed_seconds} seconds elapsed)",
            code="CANCELLATION_WINDOW_EXPIRED",
        )
        self.elapsed_seconds = elapsed_seconds
        self.window_seconds = window_seconds


class InvalidApprovalError(ApplicationException):
    """Raised when approval details are missing or invalid."""

    def __init__(self, message: str = "Invalid approval request"):
        super().__init__(message, code="INVALID_APPROVAL")


class AdminPrivilegesRequiredError(ApplicationException):
    """Raised when a cross-owner operation is requested without admin role."""

    def __init__(self, message: str = "Admin privileges required"):
        super().__init__(message, code="ADMIN_PRIVILEGES_REQUIRED")


class LicenseDeliveryError(ApplicationException):
    """Raised when an application lacks the data needed to issue its license."""

    def __init__(self, message: str = "Missing required application data"):
        super().__init__(message, code="LICENSE_DELIVERY_FAILED")


class MessageException(DomainException):
    """Base exception for queue message errors."""

    pass


class MalformedMessageError(MessageException):
    """Raised when a queue payload is missing required identity fields."""

    def __init__(self, message: str = "Malformed notification message"):
        super().__init__(message, code="MALFORMED_MESSAGE")


class InfrastructureException(Exception):
    """Base exception for transient infrastructure errors."""

    retryable = True

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class StorageConflictError(InfrastructureException):
    """Raised when a conditional write fails due to a concurrent change."""

    def __init__(self, message: str = "Conditional write failed"):
        super().__init__(message, code="STORAGE_CONFLICT")


class HistoryRecordError(InfrastructureException):
    """
    Raised when a history write fails after the status already changed.

    The status transition is not rolled back; ``application`` holds
    the record as it was written.
    """

    def __init__(self, application, message: str = "Failed to record history"):
        super().__init__(message, code="HISTORY_RECORD_FAILED")
        self.application = application
