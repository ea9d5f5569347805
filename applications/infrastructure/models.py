"""
Application and ApplicationHistory models.
"""
import uuid

from django.db import models

from core.domain.value_objects import ApplicationStatus, HistoryAction

STATUS_CHOICES = [(status.value, status.value) for status in ApplicationStatus]
ACTION_CHOICES = [(action.value, action.value) for action in HistoryAction]


class Application(models.Model):
    """
    One EA license application.

    Identified by (owner_id, record_key); the UUID primary key is internal.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner_id = models.CharField(max_length=255, db_index=True)
    record_key = models.CharField(max_length=512)
    ea_name = models.CharField(max_length=255)
    account_number = models.CharField(max_length=100)
    broker = models.CharField(max_length=255)
    email = models.EmailField()
    x_account = models.CharField(max_length=255, blank=True, default="")
    status = models.CharField(max_length=32, choices=STATUS_CHOICES, db_index=True)
    applied_at = models.DateTimeField()
    updated_at = models.DateTimeField()
    notification_scheduled_at = models.DateTimeField(null=True, blank=True)
    failure_count = models.PositiveIntegerField(default=0)
    last_failure_reason = models.TextField(null=True, blank=True)
    last_failed_at = models.DateTimeField(null=True, blank=True)
    license_key = models.TextField(null=True, blank=True)
    expiry_date = models.DateTimeField(null=True, blank=True)
    ttl = models.BigIntegerField(
        null=True, blank=True, db_index=True, help_text="Epoch seconds after which the record is reaped"
    )

    class Meta:
        db_table = "applications"
        ordering = ["-applied_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["owner_id", "record_key"], name="unique_application_record_key"
            ),
        ]
        indexes = [
            models.Index(fields=["owner_id", "status"]),
            models.Index(fields=["broker", "account_number", "ea_name"]),
        ]

    def __str__(self):
        return f"{self.record_key} ({self.status})"


class ApplicationHistory(models.Model):
    """
    Append-only audit trail entry of an application.

    Entries sharing a history_key are ordered by insertion (id).
    """

    id = models.BigAutoField(primary_key=True)
    owner_id = models.CharField(max_length=255)
    history_key = models.CharField(max_length=600)
    record_key = models.CharField(max_length=512)
    action = models.CharField(max_length=32, choices=ACTION_CHOICES)
    changed_by = models.CharField(max_length=255)
    changed_at = models.DateTimeField()
    previous_status = models.CharField(
        max_length=32, choices=STATUS_CHOICES, null=True, blank=True
    )
    new_status = models.CharField(
        max_length=32, choices=STATUS_CHOICES, null=True, blank=True
    )
    reason = models.TextField(null=True, blank=True)
    error_details = models.TextField(null=True, blank=True)
    retry_count = models.PositiveIntegerField(null=True, blank=True)
    ttl = models.BigIntegerField(null=True, blank=True, db_index=True)

    class Meta:
        db_table = "application_history"
        ordering = ["-history_key", "-id"]
        indexes = [
            models.Index(fields=["owner_id", "history_key"]),
        ]
        verbose_name_plural = "application history"

    def __str__(self):
        return f"{self.history_key} {self.action}"
