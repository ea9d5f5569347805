"""
Django implementation of ApplicationRepository port.

This adapter converts between domain entities and Django ORM models.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction

from applications.domain.application import Application
from applications.domain.status import ACTIVE_LICENSE_STATUSES
from applications.infrastructure.models import Application as ApplicationModel
from applications.ports.application_repository import ApplicationRepository
from core.domain.exceptions import ApplicationNotFoundError, StorageConflictError
from core.domain.value_objects import ApplicationStatus

_ENTITY_FIELDS = (
    "owner_id",
    "record_key",
    "ea_name",
    "account_number",
    "broker",
    "email",
    "x_account",
    "applied_at",
    "updated_at",
    "notification_scheduled_at",
    "failure_count",
    "last_failure_reason",
    "last_failed_at",
    "license_key",
    "expiry_date",
    "ttl",
)


class DjangoApplicationRepository(ApplicationRepository):
    """
    Django ORM implementation of ApplicationRepository.

    Conditional writes map onto a filtered UPDATE: the row is only touched
    if it still has the expected status, updated_at and failure_count.
    """

    def _to_domain(self, model: ApplicationModel) -> Application:
        """
        Convert Django model to domain entity.

        Args:
            model: Django Application model

        Returns:
            Application domain entity
        """
        values = {name: getattr(model, name) for name in _ENTITY_FIELDS}
        values["status"] = ApplicationStatus(model.status)
        return Application(**values)

    def _to_columns(self, changes: Dict[str, Any]) -> Dict[str, Any]:
        columns = {}
        for name, value in changes.items():
            if isinstance(value, ApplicationStatus):
                value = value.value
            columns[name] = value
        return columns

    def find(self, owner_id: str, record_key: str) -> Optional[Application]:
        """
        Find an application by owner and record key.

        Args:
            owner_id: Owner id
            record_key: Record key

        Returns:
            Application entity or None if not found
        """
        try:
            model = ApplicationModel.objects.get(owner_id=owner_id, record_key=record_key)
        except ApplicationModel.DoesNotExist:
            return None
        return self._to_domain(model)

    def insert(self, application: Application) -> Application:
        """
        Insert a new application.

        Raises:
            StorageConflictError: If the key is already taken
        """
        values = {name: getattr(application, name) for name in _ENTITY_FIELDS}
        values["status"] = application.status.value
        try:
            with transaction.atomic():
                model = ApplicationModel.objects.create(**values)
        except IntegrityError as e:
            raise StorageConflictError(
                f"Application {application.record_key} already exists"
            ) from e
        return self._to_domain(model)

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

        Raises:
            ApplicationNotFoundError: If the record does not exist
            StorageConflictError: If the record changed concurrently
        """
        columns = self._to_columns(changes)
        conditions = {"status": expected_status.value}
        if expected_updated_at is not None:
            conditions["updated_at"] = expected_updated_at
        if expected_failure_count is not None:
            conditions["failure_count"] = expected_failure_count

        with transaction.atomic():
            updated = ApplicationModel.objects.filter(
                owner_id=owner_id, record_key=record_key, **conditions
            ).update(**columns)

            if updated == 0:
                if ApplicationModel.objects.filter(
                    owner_id=owner_id, record_key=record_key
                ).exists():
                    raise StorageConflictError(
                        f"Application {record_key} changed concurrently"
                    )
                raise ApplicationNotFoundError(f"Application {record_key} not found")

            model = ApplicationModel.objects.get(owner_id=owner_id, record_key=record_key)
        return self._to_domain(model)

    def find_by_owner(self, owner_id: str) -> List[Application]:
        """Find all applications of an owner, newest first."""
        models = ApplicationModel.objects.filter(owner_id=owner_id).order_by("-record_key")
        return [self._to_domain(model) for model in models]

    def find_by_status(
        self, owner_id: str, status: ApplicationStatus
    ) -> List[Application]:
        """Find an owner's applications in a status."""
        models = ApplicationModel.objects.filter(
            owner_id=owner_id, status=status.value
        ).order_by("record_key")
        return [self._to_domain(model) for model in models]

    def find_all_by_status(self, status: ApplicationStatus) -> List[Application]:
        """Find applications in a status across all owners."""
        models = ApplicationModel.objects.filter(status=status.value).order_by(
            "owner_id", "record_key"
        )
        return [self._to_domain(model) for model in models]

    def find_active_by_broker_account(
        self, broker: str, account_number: str, ea_name: str
    ) -> List[Application]:
        """Find Active or AwaitingNotification applications for a broker account and EA."""
        models = ApplicationModel.objects.filter(
            broker=broker,
            account_number=account_number,
            ea_name=ea_name,
            status__in=[status.value for status in ACTIVE_LICENSE_STATUSES],
        )
        return [self._to_domain(model) for model in models]
