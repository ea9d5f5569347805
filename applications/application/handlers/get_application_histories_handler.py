"""
Application histories handler.
"""
from typing import List

from applications.application.queries.get_application_histories import (
    GetApplicationHistoriesQuery,
)
from applications.application.services.application_store import ApplicationStore
from applications.domain.application import normalize_record_key
from applications.domain.history import HistoryEntry


class GetApplicationHistoriesHandler:
    """Handler for GetApplicationHistoriesQuery."""

    def __init__(self, store: ApplicationStore):
        """Initialize handler with store."""
        self.store = store

    def handle(self, query: GetApplicationHistoriesQuery) -> List[HistoryEntry]:
        """
        Handle get application histories query.

        Raises:
            ApplicationNotFoundError: If application not found

        Returns:
            History entries, newest first
        """
        record_key = normalize_record_key(query.application_id)
        self.store.load(query.owner_id, record_key)
        return self.store.query_history(query.owner_id, record_key)
