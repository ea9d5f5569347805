"""
RevokeApplicationCommand.
"""
from dataclasses import dataclass
from typing import Optional


@dataclass
class RevokeApplicationCommand:
    """Command to revoke an Active license."""

    owner_id: str
    application_id: str
    revoked_by: str
    reason: Optional[str] = None
