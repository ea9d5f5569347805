"""
GetApplicationsQuery.
"""
from dataclasses import dataclass


@dataclass
class GetApplicationsQuery:
    """Query all applications of one owner."""

    owner_id: str
