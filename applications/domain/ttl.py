"""
TTL policy for terminal applications and their history.

Records in a terminal status carry a ``ttl`` (epoch seconds) after which
the storage layer reaps them. Expiry is computed with calendar-month
arithmetic, clamping the day of month to the length of the target month.
"""
import calendar
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from applications.domain.status import is_terminal
from core.domain.value_objects import ApplicationStatus

DEFAULT_TTL_MONTHS = 6
MAX_TTL_MONTHS = 60


def add_months(moment: datetime, months: int) -> datetime:
    """
    Add calendar months to a datetime.

    Jan 31 + 1 month is Feb 28 (or 29), never a day in March.

    Args:
        moment: Base datetime
        months: Number of months to add

    Returns:
        Shifted datetime with the same time of day
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def compute_expiry(
    from_timestamp: Optional[datetime] = None,
    retention_months: int = DEFAULT_TTL_MONTHS,
) -> int:
    """
    Compute the TTL for a record.

    Args:
        from_timestamp: Base time (defaults to now, naive values are UTC)
        retention_months: Number of calendar months to retain the record

    Returns:
        Expiry as epoch seconds
    """
    base = from_timestamp or datetime.now(timezone.utc)
    if base.tzinfo is None:
        base = base.replace(tzinfo=timezone.utc)
    return int(add_months(base, retention_months).timestamp())


def resolve_retention_months(raw: Any) -> int:
    """
    Resolve the configured retention period.

    Falls back to the default when the value is absent, non-numeric,
    not positive or above the maximum. Never raises.

    Args:
        raw: Configured value (int, str or None)

    Returns:
        Retention period in months
    """
    if raw is None or isinstance(raw, bool):
        return DEFAULT_TTL_MONTHS
    try:
        months = int(str(raw).strip())
    except ValueError:
        return DEFAULT_TTL_MONTHS
    if months <= 0 or months > MAX_TTL_MONTHS:
        return DEFAULT_TTL_MONTHS
    return months


class TTLAction(Enum):
    """What a transition does to a record's TTL."""

    SET = "set"
    CLEAR = "clear"
    KEEP = "keep"


@dataclass(frozen=True)
class TTLChange:
    """Result of applying the TTL policy to one transition."""

    action: TTLAction
    value: Optional[int] = None


def resolve_ttl_change(
    previous_status: ApplicationStatus,
    new_status: ApplicationStatus,
    now: datetime,
    retention_months: int,
) -> TTLChange:
    """
    Decide how a transition affects the TTL.

    Args:
        previous_status: Status before the transition
        new_status: Status after the transition
        now: Transition time
        retention_months: Retention period in months

    Returns:
        TTLChange describing whether to set, clear or keep the TTL
    """
    if is_terminal(new_status):
        return TTLChange(TTLAction.SET, compute_expiry(now, retention_months))
    if is_terminal(previous_status):
        # Only reachable through administrative correction, never the graph
        return TTLChange(TTLAction.CLEAR)
    return TTLChange(TTLAction.KEEP)


def ttl_for_status(
    status: Optional[ApplicationStatus],
    at: datetime,
    retention_months: int,
) -> Optional[int]:
    """
    Compute the TTL a history entry gets at write time.

    Args:
        status: The entry's new status (may be None)
        at: Entry timestamp
        retention_months: Retention period in months

    Returns:
        Epoch seconds if the status is terminal, otherwise None
    """
    if status is not None and is_terminal(status):
        return compute_expiry(at, retention_months)
    return None
