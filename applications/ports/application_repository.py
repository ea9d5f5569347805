"""
Application repository port (interface).

This defines the contract for application persistence operations.
Implementations are in the infrastructure layer.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from applications.domain.application import Application
from core.domain.value_objects import ApplicationStatus


class ApplicationRepository(ABC):
    """
    Abstract repository for Application entities.

    Every mutating operation is conditional: inserts succeed only if the key
    is free, updates only if the record still has the expected status and,
    when given, the expected updated_at and failure_count.
    """

    @abstractmethod
    def find(self, owner_id: str, record_key: str) -> Optional[Application]:
        """
        Find an application by owner and record key.

        Args:
            owner_id: Owner id
            record_key: Record key

        Returns:
            Application entity or None if not found
        """
        pass

    @abstractmethod
    def insert(self, application: Application) -> Application:
        """
        Insert a new application.

        Raises:
            StorageConflictError: If the key is already taken
        """
        pass

    @abstractmethod
    def update_fields(
        self,
        owner_id: str,
        record_key: str,
        changes: Dict[str, Any],
        expected_status: ApplicationStatus,
        expected_updated_at: Optional[datetime] = None,
        expected_failure_count: Optional[int] = None,
    ) -> Application:
        """
        Conditionally update an application.

        Args:
            owner_id: Owner id
            record_key: Record key
            changes: Field name to new value (``None`` removes the value)
            expected_status: Status the record must still have
            expected_updated_at: updated_at the record must still have
            expected_failure_count: failure_count the record must still have

        Returns:
            Updated Application entity

        Raises:
            ApplicationNotFoundError: If the record does not exist
            StorageConflictError: If the record changed concurrently
        """
        pass

    @abstractmethod
    def find_by_owner(self, owner_id: str) -> List[Application]:
        """Find all applications of an owner, newest first."""
        pass

    @abstractmethod
    def find_by_status(
        self, owner_id: str, status: ApplicationStatus
    ) -> List[Application]:
        """Find an owner's applications in a status."""
        pass

    @abstractmethod
    def find_all_by_status(self, status: ApplicationStatus) -> List[Application]:
        """Find applications in a status across all owners."""
        pass

    @abstractmethod
    def find_active_by_broker_account(
        self, broker: str, account_number: str, ea_name: str
    ) -> List[Application]:
        """
        Find Active or AwaitingNotification applications for a broker account and EA.

        Args:
            broker: Broker name
            account_number: Trading account number
            ea_name: EA name

        Returns:
            List of Application entities
        """
        pass
