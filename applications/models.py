"""
Model registration for the applications app.

The models live in the infrastructure layer; importing them here lets
Django discover them when the app registry loads.
"""
from applications.infrastructure.models import Application, ApplicationHistory  # noqa: F401
