"""
Django implementation of HistoryRepository port.
"""
from typing import List, Optional

from applications.domain.history import HistoryEntry, history_prefix
from applications.infrastructure.models import ApplicationHistory as HistoryModel
from applications.ports.history_repository import HistoryRepository
from core.domain.value_objects import ApplicationStatus, HistoryAction


def _status_or_none(value: Optional[str]) -> Optional[ApplicationStatus]:
    return ApplicationStatus(value) if value else None


class DjangoHistoryRepository(HistoryRepository):
    """Django ORM implementation of HistoryRepository."""

    def _to_domain(self, model: HistoryModel) -> HistoryEntry:
        """
        Convert Django model to domain entity.

        Args:
            model: Django ApplicationHistory model

        Returns:
            HistoryEntry domain entity
        """
        return HistoryEntry(
            owner_id=model.owner_id,
            history_key=model.history_key,
            record_key=model.record_key,
            action=HistoryAction(model.action),
            changed_by=model.changed_by,
            changed_at=model.changed_at,
            previous_status=_status_or_none(model.previous_status),
            new_status=_status_or_none(model.new_status),
            reason=model.reason,
            error_details=model.error_details,
            retry_count=model.retry_count,
            ttl=model.ttl,
        )

    def append(self, entry: HistoryEntry) -> HistoryEntry:
        """
        Append a history entry.

        Args:
            entry: History entry to store

        Returns:
            Stored history entry
        """
        model = HistoryModel.objects.create(
            owner_id=entry.owner_id,
            history_key=entry.history_key,
            record_key=entry.record_key,
            action=entry.action.value,
            changed_by=entry.changed_by,
            changed_at=entry.changed_at,
            previous_status=entry.previous_status.value if entry.previous_status else None,
            new_status=entry.new_status.value if entry.new_status else None,
            reason=entry.reason,
            error_details=entry.error_details,
            retry_count=entry.retry_count,
            ttl=entry.ttl,
        )
        return self._to_domain(model)

    def find_for_application(self, owner_id: str, record_key: str) -> List[HistoryEntry]:
        """
        Find every history entry of an application.

        Args:
            owner_id: Owner id
            record_key: Application record key

        Returns:
            History entries, newest first
        """
        models = HistoryModel.objects.filter(
            owner_id=owner_id,
            history_key__startswith=history_prefix(record_key),
        ).order_by("-history_key", "-id")
        return [self._to_domain(model) for model in models]

    def set_ttl(self, owner_id: str, history_key: str, ttl: Optional[int]) -> None:
        """
        Set the TTL of every entry stored under a history key.

        Args:
            owner_id: Owner id
            history_key: History key
            ttl: Epoch seconds, or None to clear
        """
        HistoryModel.objects.filter(owner_id=owner_id, history_key=history_key).update(
            ttl=ttl
        )
