"""
Pytest configuration and shared fixtures.
"""

from datetime import datetime, timedelta, timezone

import pytest

from applications.application.services.application_store import ApplicationStore
from applications.application.services.failure_retry_engine import FailureRetryEngine
from applications.config import WorkflowConfig
from applications.domain.application import Application
from applications.domain.events import (
    ApplicationStatusChanged,
    NotificationFailed,
    NotificationRetried,
    NotificationRetryLimitReached,
)
from applications.domain.status import ACTIVE_LICENSE_STATUSES
from applications.infrastructure.repositories.django_application_repository import (
    DjangoApplicationRepository,
)
from applications.infrastructure.repositories.django_history_repository import (
    DjangoHistoryRepository,
)
from applications.ports.application_repository import ApplicationRepository
from applications.ports.history_repository import HistoryRepository
from applications.ports.notification_queue import NotificationQueue
from core.domain.exceptions import ApplicationNotFoundError, StorageConflictError
from core.infrastructure.events import InMemoryEventBus

FIXED_NOW = datetime(2025, 1, 31, 12, 0, 0, tzinfo=timezone.utc)
OWNER_ID = "user-123"


class MutableClock:
    """Clock fixture that only moves when told to."""

    def __init__(self, now: datetime):
        self.current = now

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class InMemoryApplicationRepository(ApplicationRepository):
    """Dict-backed ApplicationRepository with the same conditional-write rules."""

    def __init__(self):
        self.records = {}

    def find(self, owner_id, record_key):
        return self.records.get((owner_id, record_key))

    def insert(self, application):
        key = (application.owner_id, application.record_key)
        if key in self.records:
            raise StorageConflictError(f"Application {application.record_key} already exists")
        self.records[key] = application
        return application

    def update_fields(
        self,
        owner_id,
        record_key,
        changes,
        expected_status,
        expected_updated_at=None,
        expected_failure_count=None,
    ):
        current = self.records.get((owner_id, record_key))
        if current is None:
            raise ApplicationNotFoundError(f"Application {record_key} not found")
        if (
            current.status != expected_status
            or (
                expected_updated_at is not None
                and current.updated_at != expected_updated_at
            )
            or (
                expected_failure_count is not None
                and current.failure_count != expected_failure_count
            )
        ):
            raise StorageConflictError(f"Application {record_key} changed concurrently")
        updated = current.with_changes(**changes)
        self.records[(owner_id, record_key)] = updated
        return updated

    def find_by_owner(self, owner_id):
        return sorted(
            (a for a in self.records.values() if a.owner_id == owner_id),
            key=lambda a: a.record_key,
            reverse=True,
        )

    def find_by_status(self, owner_id, status):
        return sorted(
            (
                a
                for a in self.records.values()
                if a.owner_id == owner_id and a.status == status
            ),
            key=lambda a: a.record_key,
        )

    def find_all_by_status(self, status):
        return sorted(
            (a for a in self.records.values() if a.status == status),
            key=lambda a: (a.owner_id, a.record_key),
        )

    def find_active_by_broker_account(self, broker, account_number, ea_name):
        return [
            a
            for a in self.records.values()
            if a.broker == broker
            and a.account_number == account_number
            and a.ea_name == ea_name
            and a.status in ACTIVE_LICENSE_STATUSES
        ]


class InMemoryHistoryRepository(HistoryRepository):
    """List-backed HistoryRepository; set ``fail_appends`` to simulate outages."""

    def __init__(self):
        self.entries = []
        self.fail_appends = False
        self.fail_set_ttl = False

    def append(self, entry):
        if self.fail_appends:
            raise RuntimeError("history store unavailable")
        self.entries.append(entry)
        return entry

    def find_for_application(self, owner_id, record_key):
        indexed = [
            (index, entry)
            for index, entry in enumerate(self.entries)
            if entry.owner_id == owner_id and entry.record_key == record_key
        ]
        indexed.sort(key=lambda item: (item[1].history_key, item[0]), reverse=True)
        return [entry for _, entry in indexed]

    def set_ttl(self, owner_id, history_key, ttl):
        if self.fail_set_ttl:
            raise RuntimeError("history store unavailable")
        self.entries = [
            entry.with_ttl(ttl)
            if entry.owner_id == owner_id and entry.history_key == history_key
            else entry
            for entry in self.entries
        ]


class RecordingNotificationQueue(NotificationQueue):
    """NotificationQueue that keeps every sent message."""

    def __init__(self):
        self.sent = []

    def send(self, message, delay_seconds=0, attributes=None):
        self.sent.append(
            {"message": message, "delay_seconds": delay_seconds, "attributes": attributes}
        )


@pytest.fixture
def clock():
    """Fixture for a controllable clock."""
    return MutableClock(FIXED_NOW)


@pytest.fixture
def workflow_config():
    """Fixture for WorkflowConfig with no batch pause."""
    return WorkflowConfig(ttl_months=6, batch_retry_interval_seconds=0)


@pytest.fixture
def event_bus():
    """Fixture for an isolated event bus."""
    return InMemoryEventBus()


@pytest.fixture
def application_repository():
    """Fixture for an in-memory ApplicationRepository."""
    return InMemoryApplicationRepository()


@pytest.fixture
def history_repository():
    """Fixture for an in-memory HistoryRepository."""
    return InMemoryHistoryRepository()


@pytest.fixture
def notification_queue():
    """Fixture for a recording NotificationQueue."""
    return RecordingNotificationQueue()


@pytest.fixture
def store(application_repository, history_repository, workflow_config, clock, event_bus):
    """Fixture for an ApplicationStore over in-memory repositories."""
    return ApplicationStore(
        application_repository,
        history_repository,
        config=workflow_config,
        clock=clock,
        event_bus=event_bus,
    )


@pytest.fixture
def sleeps():
    """Fixture collecting batch pauses."""
    return []


@pytest.fixture
def engine(store, notification_queue, sleeps):
    """Fixture for a FailureRetryEngine that records pauses instead of sleeping."""
    return FailureRetryEngine(store, notification_queue, sleep=sleeps.append)


@pytest.fixture
def sample_application():
    """Fixture for a sample Pending Application entity."""
    return Application.create(
        owner_id=OWNER_ID,
        ea_name="GoldScalper",
        account_number="12345678",
        broker="ICMarkets",
        email="trader@example.com",
        applied_at=FIXED_NOW - timedelta(days=1),
    )


@pytest.fixture
def pending_application(store, sample_application):
    """Fixture for a Pending application saved in the store."""
    return store.create(sample_application)


@pytest.fixture
def awaiting_application(store, pending_application, clock):
    """Fixture for an application approved and awaiting notification."""
    return store.approve(
        OWNER_ID,
        pending_application.record_key,
        approved_by="admin-1",
        expiry_date=clock() + timedelta(days=365),
    )


@pytest.fixture
def django_application_repository():
    """Fixture for DjangoApplicationRepository."""
    return DjangoApplicationRepository()


@pytest.fixture
def django_history_repository():
    """Fixture for DjangoHistoryRepository."""
    return DjangoHistoryRepository()


class RecordingEventHandler:
    """Collects every event it handles."""

    def __init__(self):
        self.events = []

    def handle(self, event):
        self.events.append(event)

    def of_type(self, event_type):
        return [event for event in self.events if isinstance(event, event_type)]


@pytest.fixture
def recorded_events(event_bus):
    """Fixture subscribing a recorder to every workflow event."""
    recorder = RecordingEventHandler()
    for event_type in (
        ApplicationStatusChanged,
        NotificationFailed,
        NotificationRetried,
        NotificationRetryLimitReached,
    ):
        event_bus.subscribe(event_type, recorder)
    return recorder
