"""
Django management command to consume the notification queue.

Runs until interrupted; every notification issues and emails a license.
"""

from django.core.management.base import BaseCommand

from applications.infrastructure.container import build_notification_consumer


class Command(BaseCommand):
    """Command to run the notification consumer."""

    help = "Consume notifications, issue licenses and activate applications"

    def handle(self, *args, **options):
        """Execute the command."""
        consumer = build_notification_consumer()
        self.stdout.write("Consuming notifications (Ctrl+C to stop)")
        try:
            consumer.consume()
        except KeyboardInterrupt:
            # pylint: disable=no-member
            self.stdout.write(self.style.WARNING("Stopped"))
