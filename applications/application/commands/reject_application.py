"""
RejectApplicationCommand.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass
class RejectApplicationCommand:
    """Command to reject a Pending application."""

    owner_id: str
    application_id: str
    rejected_by: str
    reason: Optional[str] = None
