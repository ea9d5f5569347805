"""
Celery configuration for background tasks.

Used for dead-letter ingestion, notification retries and the expiry sweep.
"""
import os

from celery import Celery
from celery.signals import worker_process_init

# Set default Django settings module
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "LicenseWorkflowService.settings.base")

app = Celery("LicenseWorkflowService")

# Load configuration from Django settings
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all installed apps
app.autodiscover_tasks()


@worker_process_init.connect
def init_worker_observability(**kwargs):
    """Configure tracing and metrics in each worker process."""
    from core.instrumentation import setup_opentelemetry

    setup_opentelemetry()
