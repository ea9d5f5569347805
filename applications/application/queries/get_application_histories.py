"""
GetApplicationHistoriesQuery.
"""
from dataclasses import dataclass


@dataclass
class GetApplicationHistoriesQuery:
    """Query the audit trail of one application."""

    owner_id: str
    application_id: str
