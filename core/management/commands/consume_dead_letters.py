"""
Django management command to consume the notification dead-letter queue.

Runs until interrupted; every dead letter is handed to Celery for ingestion.
"""

from django.core.management.base import BaseCommand

from applications.infrastructure.container import build_dead_letter_consumer


class Command(BaseCommand):
    """Command to run the dead-letter consumer."""

    help = "Consume dead-lettered notifications and dispatch them for ingestion"

    def handle(self, *args, **options):
        """Execute the command."""
        consumer = build_dead_letter_consumer()
        self.stdout.write("Consuming dead letters (Ctrl+C to stop)")
        try:
            consumer.consume()
        except KeyboardInterrupt:
            # pylint: disable=no-member
            self.stdout.write(self.style.WARNING("Stopped"))
