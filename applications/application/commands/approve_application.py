"""
ApproveApplicationCommand.

Command to approve a Pending application and schedule its license.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class ApproveApplicationCommand:
    """Command to approve an application."""

    owner_id: str
    application_id: str
    approved_by: str
    ea_name: str
    account_number: str
    email: str
    broker: str
    expiry: Optional[datetime]
