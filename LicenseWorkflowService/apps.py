"""
App configuration for License Workflow Service.
"""

import logging
import sys

from django.apps import AppConfig

logger = logging.getLogger(__name__)

SKIPPED_COMMANDS = {"migrate", "makemigrations", "collectstatic", "check", "createsuperuser"}


class LicenseWorkflowServiceConfig(AppConfig):
    """App configuration for LicenseWorkflowService."""

    name = "LicenseWorkflowService"
    verbose_name = "License Workflow Service"

    def ready(self):
        """Register domain event handlers once apps are loaded."""
        if len(sys.argv) > 1 and sys.argv[1] in SKIPPED_COMMANDS:
            return

        if getattr(self, "_initialized", False):
            return

        from core.infrastructure.event_handlers import register_event_handlers

        register_event_handlers()
        self._initialized = True
