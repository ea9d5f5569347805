"""
CancelApplicationCommand.

Command to cancel an approval while the grace window is open.
"""
from dataclasses import dataclass


@dataclass
class CancelApplicationCommand:
    """Command to cancel an application awaiting notification."""

    owner_id: str
    application_id: str
