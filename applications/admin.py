"""
Django admin configuration for applications app.
"""
from django.contrib import admin

from applications.infrastructure.models import Application, ApplicationHistory


@admin.register(Application)
class ApplicationAdmin(admin.ModelAdmin):
    """Admin interface for Application model."""

    list_display = [
        "record_key",
        "owner_id",
        "ea_name",
        "broker",
        "account_number",
        "status",
        "failure_count",
        "updated_at",
    ]
    list_filter = ["status", "broker", "applied_at"]
    search_fields = ["record_key", "owner_id", "ea_name", "account_number", "email"]
    readonly_fields = [
        "id",
        "owner_id",
        "record_key",
        "status",
        "applied_at",
        "updated_at",
        "ttl",
    ]
    fieldsets = (
        (
            "Application",
            {
                "fields": (
                    "id",
                    "owner_id",
                    "record_key",
                    "ea_name",
                    "account_number",
                    "broker",
                    "email",
                    "x_account",
                    "status",
                ),
            },
        ),
        (
            "License",
            {
                "fields": ("license_key", "expiry_date"),
            },
        ),
        (
            "Notification",
            {
                "fields": (
                    "notification_scheduled_at",
                    "failure_count",
                    "last_failure_reason",
                    "last_failed_at",
                ),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("applied_at", "updated_at", "ttl"),
                "classes": ("collapse",),
            },
        ),
    )


@admin.register(ApplicationHistory)
class ApplicationHistoryAdmin(admin.ModelAdmin):
    """Admin interface for ApplicationHistory model (read-only)."""

    list_display = [
        "history_key",
        "action",
        "previous_status",
        "new_status",
        "changed_by",
        "changed_at",
    ]
    list_filter = ["action", "new_status", "changed_at"]
    search_fields = ["history_key", "record_key", "owner_id", "changed_by"]
    readonly_fields = [
        "id",
        "owner_id",
        "history_key",
        "record_key",
        "action",
        "changed_by",
        "changed_at",
        "previous_status",
        "new_status",
        "reason",
        "error_details",
        "retry_count",
        "ttl",
    ]

    def has_add_permission(self, request):
        """History entries are written by the workflow only."""
        return False

    def has_change_permission(self, request, obj=None):
        """History entries are immutable."""
        return False
