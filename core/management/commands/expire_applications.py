"""
Django management command to mark expired applications.

This command should be run periodically (e.g., via cron or scheduled task).
"""

import logging

from django.core.management.base import BaseCommand

from applications.application.services.expiry_sweep import expire_due_applications
from applications.infrastructure.container import build_application_store

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Command to mark Active applications past their expiry date as Expired."""

    help = "Mark Active applications past their expiry date as Expired"

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Dry run mode - don't actually update applications",
        )

    def handle(self, *args, **options):
        """Execute the command."""
        dry_run = options["dry_run"]
        store = build_application_store()

        result = expire_due_applications(store, dry_run=dry_run)
        self.stdout.write(f"Found {result.checked} expired application(s)")

        if dry_run:
            # pylint: disable=no-member
            self.stdout.write(self.style.WARNING("DRY RUN - No changes will be made"))
            for record_key in result.record_keys[:10]:
                self.stdout.write(f"  - {record_key}")
            return

        if result.errors:
            # pylint: disable=no-member
            self.stdout.write(
                self.style.ERROR(f"Failed to expire {result.errors} application(s)")
            )

        self.stdout.write(
            # pylint: disable=no-member
            self.style.SUCCESS(f"Successfully marked {result.expired} application(s) as expired")
        )
