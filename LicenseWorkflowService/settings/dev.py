"""
Development settings for LicenseWorkflowService.
"""

import os

from .base import *  # noqa: F403, F401

DEBUG = True

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "0.0.0.0"]

# Override with environment variable DB_ENGINE=sqlite for SQLite
if os.environ.get("DB_ENGINE") == "sqlite":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": BASE_DIR / "db.sqlite3",  # noqa: F405
        }
    }

# Publish without the delayed-message plugin unless configured otherwise
NOTIFICATION_QUEUE["EXCHANGE_TYPE"] = os.environ.get(  # noqa: F405
    "NOTIFICATION_EXCHANGE_TYPE", "direct"
)

# License emails go to the console
EMAIL_BACKEND = os.environ.get(
    "EMAIL_BACKEND", "django.core.mail.backends.console.EmailBackend"
)
