"""
History entry domain entity.

History entries form the append-only audit trail of an application.
"""
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from applications.domain.application import (
    format_timestamp,
    strip_record_key_prefix,
)
from core.domain.value_objects import SYSTEM_ACTOR, ApplicationStatus, HistoryAction

HISTORY_KEY_PREFIX = "HISTORY#"


def history_prefix(record_key: str) -> str:
    """
    Return the key prefix shared by every history entry of an application.

    Args:
        record_key: Application record key (with or without prefix)

    Returns:
        HISTORY#{record key without APPLICATION#}#
    """
    return f"{HISTORY_KEY_PREFIX}{strip_record_key_prefix(record_key)}#"


def generate_history_key(record_key: str, changed_at: datetime) -> str:
    """
    Generate a time-ordered history key.

    Args:
        record_key: Parent application record key
        changed_at: Entry timestamp

    Returns:
        HISTORY#{record key without APPLICATION#}#{changedAt}
    """
    return f"{history_prefix(record_key)}{format_timestamp(changed_at)}"


@dataclass(frozen=True)
class HistoryEntry:
    """
    History entry domain entity.

    One immutable audit record per transition or notable event.
    """

    owner_id: str
    history_key: str
    record_key: str
    action: HistoryAction
    changed_by: str
    changed_at: datetime
    previous_status: Optional[ApplicationStatus] = None
    new_status: Optional[ApplicationStatus] = None
    reason: Optional[str] = None
    error_details: Optional[str] = None
    retry_count: Optional[int] = None
    ttl: Optional[int] = None

    @classmethod
    def create(
        cls,
        owner_id: str,
        record_key: str,
        action: HistoryAction,
        changed_by: str = SYSTEM_ACTOR,
        previous_status: Optional[ApplicationStatus] = None,
        new_status: Optional[ApplicationStatus] = None,
        reason: Optional[str] = None,
        error_details: Optional[str] = None,
        retry_count: Optional[int] = None,
        changed_at: Optional[datetime] = None,
    ) -> "HistoryEntry":
        """
        Create a new HistoryEntry.

        Args:
            owner_id: Owner of the parent application
            record_key: Parent application record key
            action: What happened
            changed_by: User id or "system"
            previous_status: Status before the change
            new_status: Status after the change
            reason: Optional human-readable reason
            error_details: Optional failure diagnostics
            retry_count: Optional retry counter
            changed_at: Entry time (defaults to now)

        Returns:
            HistoryEntry instance without a TTL
        """
        moment = changed_at or datetime.now(timezone.utc)
        return cls(
            owner_id=owner_id,
            history_key=generate_history_key(record_key, moment),
            record_key=record_key,
            action=action,
            changed_by=changed_by,
            changed_at=moment,
            previous_status=previous_status,
            new_status=new_status,
            reason=reason,
            error_details=error_details,
            retry_count=retry_count,
        )

    def with_ttl(self, ttl: Optional[int]) -> "HistoryEntry":
        """Return a copy carrying the given TTL."""
        return replace(self, ttl=ttl)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dict."""
        data = {
            "ownerId": self.owner_id,
            "historyKey": self.history_key,
            "recordKey": self.record_key,
            "action": self.action.value,
            "changedBy": self.changed_by,
            "changedAt": format_timestamp(self.changed_at),
        }
        optional = asdict(self)
        for name, wire in (
            ("previous_status", "previousStatus"),
            ("new_status", "newStatus"),
            ("reason", "reason"),
            ("error_details", "errorDetails"),
            ("retry_count", "retryCount"),
            ("ttl", "ttl"),
        ):
            value = optional[name]
            if value is None:
                continue
            if isinstance(value, ApplicationStatus):
                value = value.value
            data[wire] = value
        return data
