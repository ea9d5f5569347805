"""
Application status state machine.

The transition table below is the single source of truth for which
status changes are legal. FailedNotification -> AwaitingNotification is
the only edge back into an earlier state; the retry limit bounds it.
"""
from typing import Dict, FrozenSet

from core.domain.exceptions import InvalidStatusTransitionError
from core.domain.value_objects import ApplicationStatus

ALLOWED_TRANSITIONS: Dict[ApplicationStatus, FrozenSet[ApplicationStatus]] = {
    ApplicationStatus.PENDING: frozenset(
        {
            ApplicationStatus.APPROVE,
            ApplicationStatus.AWAITING_NOTIFICATION,
            ApplicationStatus.REJECTED,
            ApplicationStatus.CANCELLED,
        }
    ),
    ApplicationStatus.APPROVE: frozenset({ApplicationStatus.AWAITING_NOTIFICATION}),
    ApplicationStatus.AWAITING_NOTIFICATION: frozenset(
        {
            ApplicationStatus.ACTIVE,
            ApplicationStatus.FAILED_NOTIFICATION,
            ApplicationStatus.CANCELLED,
        }
    ),
    ApplicationStatus.FAILED_NOTIFICATION: frozenset(
        {
            ApplicationStatus.AWAITING_NOTIFICATION,
            ApplicationStatus.ACTIVE,
            ApplicationStatus.CANCELLED,
        }
    ),
    ApplicationStatus.ACTIVE: frozenset(
        {ApplicationStatus.EXPIRED, ApplicationStatus.REVOKED}
    ),
    ApplicationStatus.EXPIRED: frozenset(),
    ApplicationStatus.REVOKED: frozenset(),
    ApplicationStatus.REJECTED: frozenset(),
    ApplicationStatus.CANCELLED: frozenset(),
}

TERMINAL_STATUSES: FrozenSet[ApplicationStatus] = frozenset(
    {
        ApplicationStatus.EXPIRED,
        ApplicationStatus.REVOKED,
        ApplicationStatus.REJECTED,
        ApplicationStatus.CANCELLED,
    }
)

# Statuses that block a new application for the same broker/account/EA
ACTIVE_LICENSE_STATUSES: FrozenSet[ApplicationStatus] = frozenset(
    {ApplicationStatus.ACTIVE, ApplicationStatus.AWAITING_NOTIFICATION}
)


def is_valid_transition(from_status: ApplicationStatus, to_status: ApplicationStatus) -> bool:
    """
    Check whether a status change is allowed.

    Args:
        from_status: Current status
        to_status: Requested status

    Returns:
        True if to_status is an allowed destination of from_status
    """
    return to_status in ALLOWED_TRANSITIONS[from_status]


def ensure_valid_transition(
    from_status: ApplicationStatus, to_status: ApplicationStatus
) -> None:
    """
    Raise if a status change is not allowed.

    Raises:
        InvalidStatusTransitionError: If the transition is not in the table
    """
    if not is_valid_transition(from_status, to_status):
        raise InvalidStatusTransitionError(from_status, to_status)


def is_terminal(status: ApplicationStatus) -> bool:
    """Return True if the status has no outgoing transitions and carries a TTL."""
    return status in TERMINAL_STATUSES


def is_retryable_status(status: ApplicationStatus) -> bool:
    """Return True if a notification can be retried from this status."""
    return status == ApplicationStatus.FAILED_NOTIFICATION
