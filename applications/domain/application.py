"""
Application domain entity.

This is the core domain entity representing one EA license application.
It contains business logic and is independent of infrastructure.
"""
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote, unquote

from applications.domain.status import is_terminal
from core.domain.value_objects import ApplicationStatus

APPLICATION_KEY_PREFIX = "APPLICATION#"


def format_timestamp(moment: datetime) -> str:
    """
    Format a datetime as an ISO-8601 UTC string with millisecond precision.

    Args:
        moment: Datetime (naive values are treated as UTC)

    Returns:
        String like 2025-01-31T00:00:00.000Z
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed) into an aware datetime."""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def generate_record_key(
    applied_at: datetime, broker: str, account_number: str, ea_name: str
) -> str:
    """
    Generate the record key of an application.

    Args:
        applied_at: Submission time
        broker: Broker name
        account_number: Trading account number
        ea_name: EA name

    Returns:
        APPLICATION#{appliedAt}#{broker}#{accountNumber}#{eaName}
    """
    return (
        f"{APPLICATION_KEY_PREFIX}{format_timestamp(applied_at)}"
        f"#{broker}#{account_number}#{ea_name}"
    )


def strip_record_key_prefix(record_key: str) -> str:
    """Return the record key without its APPLICATION# prefix."""
    if record_key.startswith(APPLICATION_KEY_PREFIX):
        return record_key[len(APPLICATION_KEY_PREFIX):]
    return record_key


def encode_record_key(record_key: str) -> str:
    """Encode a record key for use in a URL path segment."""
    return quote(record_key, safe="")


def decode_record_key(value: str) -> str:
    """Decode a URL-encoded record key."""
    return unquote(value)


def normalize_record_key(application_id: str) -> str:
    """
    Turn an application id into a full record key.

    Accepts URL-encoded ids, with or without the APPLICATION# prefix.
    """
    decoded = decode_record_key(application_id)
    if decoded.startswith(APPLICATION_KEY_PREFIX):
        return decoded
    return f"{APPLICATION_KEY_PREFIX}{decoded}"


# Fields callers may never set through a transition
SYSTEM_CONTROLLED_FIELDS = frozenset(
    {"owner_id", "record_key", "applied_at", "status", "updated_at", "ttl"}
)

# Wire names for JSON encoding
_WIRE_NAMES = {
    "owner_id": "ownerId",
    "record_key": "recordKey",
    "ea_name": "eaName",
    "account_number": "accountNumber",
    "broker": "broker",
    "email": "email",
    "x_account": "xAccount",
    "status": "status",
    "applied_at": "appliedAt",
    "updated_at": "updatedAt",
    "notification_scheduled_at": "notificationScheduledAt",
    "failure_count": "failureCount",
    "last_failure_reason": "lastFailureReason",
    "last_failed_at": "lastFailedAt",
    "license_key": "licenseKey",
    "expiry_date": "expiryDate",
    "ttl": "ttl",
}


@dataclass(frozen=True)
class Application:
    """
    Application domain entity.

    Represents one license request for an EA on a broker account.
    This is an immutable value object; every change produces a new instance.
    """

    owner_id: str
    record_key: str
    ea_name: str
    account_number: str
    broker: str
    email: str
    status: ApplicationStatus
    applied_at: datetime
    updated_at: datetime
    x_account: str = ""
    notification_scheduled_at: Optional[datetime] = None
    failure_count: int = 0
    last_failure_reason: Optional[str] = None
    last_failed_at: Optional[datetime] = None
    license_key: Optional[str] = None
    expiry_date: Optional[datetime] = None
    ttl: Optional[int] = None

    def __post_init__(self):
        """Validate application entity."""
        if not self.owner_id:
            raise ValueError("Owner ID is required")
        if not self.record_key:
            raise ValueError("Record key is required")
        if self.failure_count < 0:
            raise ValueError("Failure count cannot be negative")

    @classmethod
    def create(
        cls,
        owner_id: str,
        ea_name: str,
        account_number: str,
        broker: str,
        email: str,
        x_account: str = "",
        applied_at: Optional[datetime] = None,
    ) -> "Application":
        """
        Create a new Pending application.

        Args:
            owner_id: Owning user/tenant id
            ea_name: EA name
            account_number: Trading account number
            broker: Broker name
            email: Delivery email address
            x_account: Optional social account handle
            applied_at: Submission time (defaults to now)

        Returns:
            Application entity instance
        """
        for name, value in (
            ("EA name", ea_name),
            ("Account number", account_number),
            ("Broker", broker),
        ):
            if not value:
                raise ValueError(f"{name} is required")
            if "#" in value:
                raise ValueError(f"{name} cannot contain '#'")

        now = datetime.now(timezone.utc)
        applied = applied_at or now
        return cls(
            owner_id=owner_id,
            record_key=generate_record_key(applied, broker, account_number, ea_name),
            ea_name=ea_name,
            account_number=account_number,
            broker=broker,
            email=email,
            x_account=x_account,
            status=ApplicationStatus.PENDING,
            applied_at=applied,
            updated_at=now,
        )

    @property
    def is_terminal(self) -> bool:
        """Return True if the application is in a terminal status."""
        return is_terminal(self.status)

    @property
    def has_ttl(self) -> bool:
        """Return True if the application carries a TTL."""
        return self.ttl is not None

    def is_retryable(self, max_retry_count: int) -> bool:
        """
        Check if an unforced notification retry is allowed.

        Args:
            max_retry_count: Retry limit

        Returns:
            True if the failure count is below the limit
        """
        return self.failure_count < max_retry_count

    def with_changes(self, **changes) -> "Application":
        """Return a copy with the given fields replaced."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dict using wire field names."""
        data = {}
        for name, value in asdict(self).items():
            if value is None:
                continue
            if isinstance(value, datetime):
                value = format_timestamp(value)
            elif isinstance(value, ApplicationStatus):
                value = value.value
            data[_WIRE_NAMES[name]] = value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Application":
        """
        Build an application from its wire representation.

        Args:
            data: Dict keyed by wire field names

        Returns:
            Application entity instance
        """
        values = {
            name: data[wire] for name, wire in _WIRE_NAMES.items() if wire in data
        }
        values["status"] = ApplicationStatus(values["status"])
        for name in (
            "applied_at",
            "updated_at",
            "notification_scheduled_at",
            "last_failed_at",
            "expiry_date",
        ):
            if name in values:
                values[name] = parse_timestamp(values[name])
        if "failure_count" in values:
            values["failure_count"] = int(values["failure_count"])
        if "ttl" in values:
            values["ttl"] = int(values["ttl"])
        return cls(**values)
