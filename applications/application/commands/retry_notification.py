"""
RetryNotificationCommand.

Command to requeue one failed notification.
"""
from dataclasses import dataclass


@dataclass
class RetryNotificationCommand:
    """Command to retry a failed notification."""

    owner_id: str
    application_id: str
    reason: str = "Manual retry requested"
    force: bool = False
