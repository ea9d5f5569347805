"""
Integration tests for repository implementations.
"""

from datetime import datetime, timedelta, timezone
from io import StringIO

import pytest
from django.core.management import call_command

from applications.application.services.application_store import ApplicationStore
from applications.application.services.expiry_sweep import expire_due_applications
from applications.config import WorkflowConfig
from applications.domain.application import Application
from applications.domain.history import HistoryEntry
from applications.domain.messages import DeadLetterRecord, NotificationMessage
from applications.infrastructure.models import ApplicationHistory as HistoryModel
from applications.tasks import expire_applications, process_dead_letter_batch
from core.domain.exceptions import ApplicationNotFoundError, StorageConflictError
from core.domain.value_objects import ApplicationStatus, HistoryAction

APPLIED_AT = datetime(2025, 1, 15, 9, 30, tzinfo=timezone.utc)


def new_application(owner_id="user-1", ea_name="GoldScalper", applied_at=APPLIED_AT):
    return Application.create(
        owner_id=owner_id,
        ea_name=ea_name,
        account_number="12345678",
        broker="ICMarkets",
        email="trader@example.com",
        applied_at=applied_at,
    )


@pytest.fixture
def django_store(django_application_repository, django_history_repository):
    """Fixture for an ApplicationStore over the Django repositories."""
    return ApplicationStore(
        django_application_repository,
        django_history_repository,
        config=WorkflowConfig(batch_retry_interval_seconds=0),
    )


@pytest.mark.django_db
@pytest.mark.integration
class TestApplicationRepository:
    """Integration tests for DjangoApplicationRepository."""

    def test_insert_and_find(self, django_application_repository):
        """Test inserting and finding an application."""
        application = new_application()

        saved = django_application_repository.insert(application)
        found = django_application_repository.find("user-1", application.record_key)

        assert saved == found
        assert found.status == ApplicationStatus.PENDING
        assert found.applied_at == APPLIED_AT

    def test_find_not_found(self, django_application_repository):
        """Test finding a non-existent application."""
        assert django_application_repository.find("user-1", "APPLICATION#missing") is None

    def test_find_is_scoped_to_owner(self, django_application_repository):
        """Test that another owner cannot see the record."""
        application = django_application_repository.insert(new_application())
        assert django_application_repository.find("user-2", application.record_key) is None

    def test_insert_duplicate_key(self, django_application_repository):
        """Test that a taken key is a conflict."""
        application = new_application()
        django_application_repository.insert(application)

        with pytest.raises(StorageConflictError):
            django_application_repository.insert(application)

    def test_conditional_update(self, django_application_repository):
        """Test updating with the expected status."""
        application = django_application_repository.insert(new_application())

        updated = django_application_repository.update_fields(
            "user-1",
            application.record_key,
            {"status": ApplicationStatus.REJECTED, "ttl": 1234567890},
            expected_status=ApplicationStatus.PENDING,
        )

        assert updated.status == ApplicationStatus.REJECTED
        assert updated.ttl == 1234567890

    def test_conditional_update_conflict(self, django_application_repository):
        """Test that a status mismatch does not write."""
        application = django_application_repository.insert(new_application())

        with pytest.raises(StorageConflictError):
            django_application_repository.update_fields(
                "user-1",
                application.record_key,
                {"status": ApplicationStatus.ACTIVE},
                expected_status=ApplicationStatus.AWAITING_NOTIFICATION,
            )

        found = django_application_repository.find("user-1", application.record_key)
        assert found.status == ApplicationStatus.PENDING

    def test_conditional_update_stale_snapshot(self, django_application_repository):
        """Test that a changed updated_at or failure_count does not write."""
        application = django_application_repository.insert(new_application())
        later = APPLIED_AT + timedelta(minutes=1)
        django_application_repository.update_fields(
            "user-1",
            application.record_key,
            {"failure_count": 1, "updated_at": later},
            expected_status=ApplicationStatus.PENDING,
        )

        with pytest.raises(StorageConflictError):
            django_application_repository.update_fields(
                "user-1",
                application.record_key,
                {"status": ApplicationStatus.REJECTED},
                expected_status=ApplicationStatus.PENDING,
                expected_updated_at=application.updated_at,
            )
        with pytest.raises(StorageConflictError):
            django_application_repository.update_fields(
                "user-1",
                application.record_key,
                {"status": ApplicationStatus.REJECTED},
                expected_status=ApplicationStatus.PENDING,
                expected_failure_count=0,
            )

        updated = django_application_repository.update_fields(
            "user-1",
            application.record_key,
            {"status": ApplicationStatus.REJECTED},
            expected_status=ApplicationStatus.PENDING,
            expected_updated_at=later,
            expected_failure_count=1,
        )
        assert updated.status == ApplicationStatus.REJECTED

    def test_conditional_update_missing(self, django_application_repository):
        """Test updating a record that does not exist."""
        with pytest.raises(ApplicationNotFoundError):
            django_application_repository.update_fields(
                "user-1",
                "APPLICATION#missing",
                {"status": ApplicationStatus.APPROVE},
                expected_status=ApplicationStatus.PENDING,
            )

    def test_find_by_status_and_active(self, django_application_repository):
        """Test status queries."""
        pending = django_application_repository.insert(new_application(ea_name="EA1"))
        awaiting = django_application_repository.insert(new_application(ea_name="EA2"))
        django_application_repository.update_fields(
            "user-1",
            awaiting.record_key,
            {"status": ApplicationStatus.AWAITING_NOTIFICATION},
            expected_status=ApplicationStatus.PENDING,
        )

        found = django_application_repository.find_by_status(
            "user-1", ApplicationStatus.PENDING
        )
        active = django_application_repository.find_active_by_broker_account(
            "ICMarkets", "12345678", "EA2"
        )

        assert [a.record_key for a in found] == [pending.record_key]
        assert [a.record_key for a in active] == [awaiting.record_key]
        assert (
            django_application_repository.find_active_by_broker_account(
                "ICMarkets", "12345678", "EA1"
            )
            == []
        )
        assert len(django_application_repository.find_by_owner("user-1")) == 2


@pytest.mark.django_db
@pytest.mark.integration
class TestHistoryRepository:
    """Integration tests for DjangoHistoryRepository."""

    def _entry(self, record_key, changed_at, action=HistoryAction.APPROVE):
        return HistoryEntry.create(
            owner_id="user-1",
            record_key=record_key,
            action=action,
            previous_status=ApplicationStatus.PENDING,
            new_status=ApplicationStatus.APPROVE,
            changed_at=changed_at,
        )

    def test_append_and_find_newest_first(self, django_history_repository):
        """Test that entries come back newest first."""
        record_key = new_application().record_key
        first = datetime(2025, 2, 1, tzinfo=timezone.utc)
        django_history_repository.append(self._entry(record_key, first))
        django_history_repository.append(
            self._entry(record_key, first + timedelta(minutes=1), HistoryAction.AWAITING_NOTIFICATION)
        )

        entries = django_history_repository.find_for_application("user-1", record_key)

        assert [e.action for e in entries] == [
            HistoryAction.AWAITING_NOTIFICATION,
            HistoryAction.APPROVE,
        ]
        assert entries[1].changed_at == first

    def test_prefix_does_not_leak_between_applications(self, django_history_repository):
        """Test that history is isolated per application."""
        one = new_application(ea_name="EA").record_key
        other = new_application(ea_name="EA2").record_key
        at = datetime(2025, 2, 1, tzinfo=timezone.utc)
        django_history_repository.append(self._entry(one, at))
        django_history_repository.append(self._entry(other, at))

        assert len(django_history_repository.find_for_application("user-1", one)) == 1

    def test_same_key_entries_are_kept(self, django_history_repository):
        """Test that entries sharing a timestamp are both stored."""
        record_key = new_application().record_key
        at = datetime(2025, 2, 1, tzinfo=timezone.utc)
        django_history_repository.append(self._entry(record_key, at))
        django_history_repository.append(
            self._entry(record_key, at, HistoryAction.AWAITING_NOTIFICATION)
        )

        entries = django_history_repository.find_for_application("user-1", record_key)

        assert [e.action for e in entries] == [
            HistoryAction.AWAITING_NOTIFICATION,
            HistoryAction.APPROVE,
        ]

    def test_set_ttl(self, django_history_repository):
        """Test stamping a TTL on stored entries."""
        record_key = new_application().record_key
        entry = django_history_repository.append(
            self._entry(record_key, datetime(2025, 2, 1, tzinfo=timezone.utc))
        )

        django_history_repository.set_ttl("user-1", entry.history_key, 1750000000)

        assert HistoryModel.objects.get(history_key=entry.history_key).ttl == 1750000000


@pytest.mark.django_db
@pytest.mark.integration
class TestWorkflowOnDatabase:
    """Integration tests for the workflow over the Django repositories."""

    def test_cancel_aligns_history_ttl(self, django_store):
        """Test the terminal TTL invariant in the database."""
        application = django_store.create(new_application())
        django_store.approve(
            "user-1",
            application.record_key,
            approved_by="admin-1",
            expiry_date=django_store.now() + timedelta(days=30),
        )

        cancelled = django_store.cancel("user-1", application.record_key, reason="Changed mind")

        ttls = set(
            HistoryModel.objects.filter(record_key=application.record_key).values_list(
                "ttl", flat=True
            )
        )
        assert cancelled.ttl is not None
        assert ttls == {cancelled.ttl}

    def test_process_dead_letter_batch_task(self, django_store):
        """Test the ingestion task end to end."""
        application = django_store.create(new_application())
        django_store.approve(
            "user-1",
            application.record_key,
            approved_by="admin-1",
            expiry_date=django_store.now() + timedelta(days=30),
        )
        record = DeadLetterRecord(
            message_id="msg-1",
            body=NotificationMessage(
                record_key=application.record_key, owner_id="user-1"
            ).to_json(),
            attributes={"receive_count": "3"},
        )

        outcomes = process_dead_letter_batch([record.to_dict(), record.to_dict()])

        assert [o["outcome"] for o in outcomes] == ["processed", "skipped"]
        failed = django_store.load("user-1", application.record_key)
        assert failed.status == ApplicationStatus.FAILED_NOTIFICATION
        assert failed.failure_count == 1

    def test_expiry_sweep(self, django_store):
        """Test expiring Active applications past their expiry date."""
        application = django_store.create(new_application())
        django_store.approve(
            "user-1",
            application.record_key,
            approved_by="admin-1",
            expiry_date=django_store.now() - timedelta(seconds=1),
        )
        django_store.activate_with_license("user-1", application.record_key, "LICENSE")

        preview = expire_due_applications(django_store, dry_run=True)
        assert preview.checked == 1
        assert preview.expired == 0

        result = expire_applications()

        assert result["expired"] == 1
        assert result["errors"] == 0
        expired = django_store.load("user-1", application.record_key)
        assert expired.status == ApplicationStatus.EXPIRED

    def test_expire_applications_command_dry_run(self, django_store):
        """Test the management command in dry-run mode."""
        application = django_store.create(new_application())
        django_store.approve(
            "user-1",
            application.record_key,
            approved_by="admin-1",
            expiry_date=django_store.now() - timedelta(seconds=1),
        )
        django_store.activate_with_license("user-1", application.record_key, "LICENSE")
        out = StringIO()

        call_command("expire_applications", "--dry-run", stdout=out)

        assert "Found 1 expired application(s)" in out.getvalue()
        assert "DRY RUN" in out.getvalue()
        assert (
            django_store.load("user-1", application.record_key).status
            == ApplicationStatus.ACTIVE
        )
