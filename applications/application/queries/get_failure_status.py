"""
GetFailureStatusQuery.

Query for notification failure statistics and reports.
"""
from dataclasses import dataclass

ADMIN_ROLE = "admin"


@dataclass
class GetFailureStatusQuery:
    """Query failure status for an owner, or for everyone (admin only)."""

    owner_id: str
    role: str = "developer"
    include_details: bool = False
    include_all: bool = False
