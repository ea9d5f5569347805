"""
Queue message value objects.

NotificationMessage is the payload of the notification queue.
DeadLetterRecord is the transport envelope of a notification that
could not be delivered and was dead-lettered.
"""
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from core.domain.exceptions import MalformedMessageError

PUBSUB_NOTIFICATION_TYPE = "Notification"


@dataclass(frozen=True)
class NotificationMessage:
    """Notification queue payload carrying the identity of an application."""

    record_key: str
    owner_id: str
    retry_count: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to wire format."""
        data = {"recordKey": self.record_key, "ownerId": self.owner_id}
        if self.retry_count is not None:
            data["retryCount"] = self.retry_count
        return data

    def to_json(self) -> str:
        """Serialize to JSON text."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: Any) -> "NotificationMessage":
        """
        Build a message from its wire format.

        Legacy ``applicationSK`` / ``userId`` keys are accepted.

        Raises:
            MalformedMessageError: If identity fields are missing
        """
        if not isinstance(data, dict):
            raise MalformedMessageError("Notification message must be a JSON object")

        record_key = data.get("recordKey") or data.get("applicationSK")
        owner_id = data.get("ownerId") or data.get("userId")
        if not record_key or not owner_id:
            raise MalformedMessageError(
                "Notification message is missing recordKey or ownerId"
            )

        retry_count = data.get("retryCount")
        try:
            retry_count = int(retry_count) if retry_count is not None else None
        except (TypeError, ValueError):
            retry_count = None

        return cls(record_key=record_key, owner_id=owner_id, retry_count=retry_count)


@dataclass(frozen=True)
class FailureDetails:
    """Diagnostics extracted from a dead-letter envelope."""

    failure_reason: str = "Unknown failure"
    error_details: str = "No error details available"
    receipt_handle: Optional[str] = None


def _millis_to_datetime(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)


def _datetime_to_millis(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return str(int(value.timestamp() * 1000))
    if value is None:
        return None
    return str(value)


def _death_count(deaths: List[Dict[str, Any]]) -> Optional[int]:
    """Sum the x-death counts, or None if any count is unreadable."""
    try:
        return sum(int(death.get("count", 1)) for death in deaths)
    except (TypeError, ValueError):
        return None


@dataclass
class DeadLetterRecord:
    """
    Dead-letter envelope.

    ``attributes`` holds transport metadata (``receive_count``,
    ``sent_timestamp``, ``first_receive_timestamp``, epoch milliseconds as
    strings). ``message_attributes`` holds producer-supplied attributes,
    either plain strings or ``{"stringValue": ...}`` dicts.
    """

    message_id: str
    body: str
    attributes: Dict[str, str] = field(default_factory=dict)
    message_attributes: Dict[str, Any] = field(default_factory=dict)
    receipt_handle: Optional[str] = None

    def message_attribute(self, name: str) -> Optional[str]:
        """Return a message attribute's string value, if present."""
        value = self.message_attributes.get(name)
        if isinstance(value, dict):
            value = value.get("stringValue")
        if value is None or value == "":
            return None
        return str(value)

    def sent_at(self) -> Optional[datetime]:
        """Return the original send time, if known."""
        value = self.attributes.get("sent_timestamp")
        return _millis_to_datetime(value) if value else None

    def first_received_at(self) -> Optional[datetime]:
        """Return the first receive time, if known."""
        value = self.attributes.get("first_receive_timestamp")
        return _millis_to_datetime(value) if value else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-compatible dict (task payload)."""
        return {
            "messageId": self.message_id,
            "body": self.body,
            "attributes": dict(self.attributes),
            "messageAttributes": dict(self.message_attributes),
            "receiptHandle": self.receipt_handle,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DeadLetterRecord":
        """Build a record from a task payload."""
        body = data.get("body", "")
        if not isinstance(body, str):
            body = json.dumps(body)
        return cls(
            message_id=str(data.get("messageId", "")),
            body=body,
            attributes=dict(data.get("attributes") or {}),
            message_attributes=dict(data.get("messageAttributes") or {}),
            receipt_handle=data.get("receiptHandle"),
        )

    @classmethod
    def from_kombu_message(cls, body: Any, message) -> "DeadLetterRecord":
        """
        Build a record from a dead-lettered kombu message.

        RabbitMQ appends an ``x-death`` header on every dead-lettering;
        its counts give the number of failed deliveries.
        Unreadable diagnostics are left out rather than raised.

        Args:
            body: Decoded message body
            message: kombu Message

        Returns:
            DeadLetterRecord instance
        """
        headers = dict(message.headers or {})
        properties = dict(getattr(message, "properties", None) or {})

        # Undecodable bytes survive as replacement characters; the ingestion
        # handler then drops the record as malformed
        if isinstance(body, (bytes, bytearray)):
            body = body.decode("utf-8", errors="replace")
        elif not isinstance(body, str):
            body = json.dumps(body, default=str)

        attributes = {}
        deaths = [
            death for death in headers.get("x-death") or [] if isinstance(death, dict)
        ]
        if deaths:
            receive_count = _death_count(deaths)
            if receive_count is not None:
                attributes["receive_count"] = str(receive_count)
            first_death = _datetime_to_millis(deaths[-1].get("time"))
            if first_death:
                attributes["first_receive_timestamp"] = first_death

        # Set by the notification publisher
        sent = _datetime_to_millis(headers.get("sentTimestamp"))
        if sent:
            attributes["sent_timestamp"] = sent

        message_attributes = {
            name: headers[name]
            for name in ("errorMessage", "lastErrorMessage")
            if headers.get(name)
        }

        return cls(
            message_id=str(properties.get("message_id") or headers.get("messageId") or ""),
            body=body,
            attributes=attributes,
            message_attributes=message_attributes,
            receipt_handle=str(getattr(message, "delivery_tag", "") or "") or None,
        )

    def unwrap_body(self) -> Any:
        """
        Decode the body, unwrapping one pub/sub envelope if present.

        Raises:
            MalformedMessageError: If the body is not valid JSON
        """
        try:
            payload = json.loads(self.body)
            if (
                isinstance(payload, dict)
                and payload.get("Type") == PUBSUB_NOTIFICATION_TYPE
                and "Message" in payload
            ):
                inner = payload["Message"]
                payload = json.loads(inner) if isinstance(inner, str) else inner
        except (TypeError, ValueError) as e:
            raise MalformedMessageError(f"Dead-letter body is not valid JSON: {e}") from e
        return payload
