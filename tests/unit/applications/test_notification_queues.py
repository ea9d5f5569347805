"""
Unit tests for the RabbitMQ notification queue and its consumers.
"""

import json
import uuid

from kombu import Connection

from applications.domain.messages import DeadLetterRecord, NotificationMessage
from applications.infrastructure.queues.dead_letter_consumer import (
    PROCESS_DEAD_LETTER_TASK,
    DeadLetterConsumer,
)
from applications.infrastructure.queues.kombu_notification_queue import (
    KombuNotificationQueue,
    build_headers,
)
from applications.infrastructure.queues.notification_consumer import NotificationConsumer

RECORD_KEY = "APPLICATION#2025-01-15T09:30:00.123Z#ICMarkets#12345678#GoldScalper"


class FakeMessage:
    """Stand-in for a delivered kombu message."""

    def __init__(self, headers=None, properties=None, delivery_tag=1):
        self.headers = headers or {}
        self.properties = properties or {}
        self.delivery_tag = delivery_tag
        self.acked = False
        self.rejected = None

    def ack(self):
        self.acked = True

    def reject(self, requeue=False):
        self.rejected = requeue


class RecordingDeliveryHandler:
    """Stand-in for the license delivery handler."""

    def __init__(self, error=None):
        self.error = error
        self.handled = []

    def handle(self, notification):
        self.handled.append(notification)
        if self.error:
            raise self.error


class FakeCeleryApp:
    """Records dispatched tasks."""

    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send_task(self, name, args=None):
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.sent.append((name, args))


class TestBuildHeaders:
    """Tests for build_headers."""

    def test_delay_in_milliseconds(self):
        """Test the delayed-message header."""
        headers = build_headers(300, {"retryAttempt": 2, "isRetry": "true"})

        assert headers["x-delay"] == 300000
        assert headers["retryAttempt"] == 2
        assert headers["isRetry"] == "true"
        assert int(headers["sentTimestamp"]) > 0

    def test_no_delay(self):
        """Test that an immediate message has no delay header."""
        assert "x-delay" not in build_headers(0)


class TestKombuNotificationQueue:
    """Tests for KombuNotificationQueue over the in-memory transport."""

    def test_send_publishes_message(self):
        """Test publishing a notification."""
        name = f"notifications-{uuid.uuid4().hex[:8]}"
        queue = KombuNotificationQueue(
            broker_url="memory://",
            exchange_name=name,
            queue_name=name,
            exchange_type="direct",
        )

        queue.send(
            NotificationMessage(record_key=RECORD_KEY, owner_id="user-1", retry_count=2),
            delay_seconds=60,
            attributes={"retryAttempt": 2},
        )

        with Connection("memory://") as conn:
            simple = conn.SimpleQueue(queue._queue)
            received = simple.get(timeout=1)
            received.ack()
            simple.close()

        assert received.payload == {
            "recordKey": RECORD_KEY,
            "ownerId": "user-1",
            "retryCount": 2,
        }
        assert received.headers["x-delay"] == 60000
        assert received.headers["retryAttempt"] == 2


class TestDeadLetterConsumer:
    """Tests for DeadLetterConsumer.handle_message."""

    def test_dispatches_and_acks(self):
        """Test that a dead letter is handed to the ingestion task."""
        celery_app = FakeCeleryApp()
        consumer = DeadLetterConsumer(broker_url="memory://", celery_app=celery_app)
        message = FakeMessage(
            headers={"x-death": [{"count": 3}], "errorMessage": "SMTP timeout"},
            properties={"message_id": "msg-1"},
        )

        consumer.handle_message({"recordKey": RECORD_KEY, "ownerId": "user-1"}, message)

        assert message.acked is True
        [(name, args)] = celery_app.sent
        assert name == PROCESS_DEAD_LETTER_TASK
        record = DeadLetterRecord.from_dict(args[0][0])
        assert record.message_id == "msg-1"
        assert record.attributes["receive_count"] == "3"
        assert json.loads(record.body)["recordKey"] == RECORD_KEY

    def test_requeues_when_dispatch_fails(self):
        """Test that an undispatched dead letter goes back on the queue."""
        consumer = DeadLetterConsumer(
            broker_url="memory://", celery_app=FakeCeleryApp(fail=True)
        )
        message = FakeMessage()

        consumer.handle_message({"recordKey": RECORD_KEY, "ownerId": "user-1"}, message)

        assert message.acked is False
        assert message.rejected is True

    def test_drops_unreadable_dead_letter(self):
        """Test that a dead letter that cannot become a record is not requeued."""
        celery_app = FakeCeleryApp()
        consumer = DeadLetterConsumer(broker_url="memory://", celery_app=celery_app)
        message = FakeMessage(headers="not-a-mapping")

        consumer.handle_message({"recordKey": RECORD_KEY, "ownerId": "user-1"}, message)

        assert celery_app.sent == []
        assert message.acked is False
        assert message.rejected is False

    def test_undecodable_body_is_still_dispatched(self):
        """Test that a non-UTF-8 body reaches ingestion instead of looping."""
        celery_app = FakeCeleryApp()
        consumer = DeadLetterConsumer(broker_url="memory://", celery_app=celery_app)
        message = FakeMessage(headers={"x-death": [{"count": "oops"}]})

        consumer.handle_message(b"\xff\xfe", message)

        assert message.acked is True
        [(_, args)] = celery_app.sent
        record = DeadLetterRecord.from_dict(args[0][0])
        assert "receive_count" not in record.attributes


class TestNotificationConsumer:
    """Tests for NotificationConsumer.handle_message."""

    def test_acks_delivered_notification(self):
        """Test that a delivered notification is acked."""
        handler = RecordingDeliveryHandler()
        consumer = NotificationConsumer(handler, broker_url="memory://")
        message = FakeMessage()

        body = json.dumps({"recordKey": RECORD_KEY, "ownerId": "user-1"})
        consumer.handle_message(body, message)

        assert message.acked is True
        assert handler.handled == [NotificationMessage(record_key=RECORD_KEY, owner_id="user-1")]

    def test_failed_delivery_is_dead_lettered(self):
        """Test that a failed delivery is rejected without requeue."""
        consumer = NotificationConsumer(
            RecordingDeliveryHandler(error=RuntimeError("SMTP timeout")),
            broker_url="memory://",
        )
        message = FakeMessage()

        consumer.handle_message({"recordKey": RECORD_KEY, "ownerId": "user-1"}, message)

        assert message.acked is False
        assert message.rejected is False

    def test_malformed_notification_is_dead_lettered(self):
        """Test that a body without identity never reaches the handler."""
        handler = RecordingDeliveryHandler()
        consumer = NotificationConsumer(handler, broker_url="memory://")
        message = FakeMessage()

        consumer.handle_message(b"{not json", message)

        assert handler.handled == []
        assert message.rejected is False

    def test_consumes_published_notification(self):
        """Test the consumer against a notification published to the queue."""
        name = f"notifications-{uuid.uuid4().hex[:8]}"
        handler = RecordingDeliveryHandler()
        consumer = NotificationConsumer(
            handler,
            broker_url="memory://",
            exchange_name=name,
            queue_name=name,
            exchange_type="direct",
        )
        KombuNotificationQueue(
            broker_url="memory://",
            exchange_name=name,
            queue_name=name,
            exchange_type="direct",
        ).send(NotificationMessage(record_key=RECORD_KEY, owner_id="user-1", retry_count=1))

        with Connection("memory://") as conn:
            with conn.Consumer(consumer._queue, callbacks=[consumer.handle_message]):
                conn.drain_events(timeout=1)

        assert handler.handled == [
            NotificationMessage(record_key=RECORD_KEY, owner_id="user-1", retry_count=1)
        ]
