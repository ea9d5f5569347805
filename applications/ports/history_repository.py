"""
History repository port (interface).

This defines the contract for the append-only application audit trail.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from applications.domain.history import HistoryEntry


class HistoryRepository(ABC):
    """Abstract repository for HistoryEntry entities."""

    @abstractmethod
    def append(self, entry: HistoryEntry) -> HistoryEntry:
        """
        Append a history entry.

        Args:
            entry: History entry to store

        Returns:
            Stored history entry
        """
        pass

    @abstractmethod
    def find_for_application(self, owner_id: str, record_key: str) -> List[HistoryEntry]:
        """
        Find every history entry of an application.

        Args:
            owner_id: Owner id
            record_key: Application record key

        Returns:
            History entries, newest first
        """
        pass

    @abstractmethod
    def set_ttl(self, owner_id: str, history_key: str, ttl: Optional[int]) -> None:
        """
        Set the TTL of every entry stored under a history key.

        Args:
            owner_id: Owner id
            history_key: History key
            ttl: Epoch seconds, or None to clear
        """
        pass
