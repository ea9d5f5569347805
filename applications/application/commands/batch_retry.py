"""
BatchRetryCommand.

Command to requeue an owner's failed notifications.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass
class BatchRetryCommand:
    """Command to retry failed notifications in bulk."""

    owner_id: str
    max_applications: Optional[int] = None
    reason: str = "Batch retry requested"
    force: bool = False
