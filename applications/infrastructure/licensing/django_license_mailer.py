"""
LicenseMailer backed by Django's email framework.
"""
import logging

from django.conf import settings
from django.core.mail import send_mail

from applications.domain.application import Application, format_timestamp
from applications.ports.license_mailer import LicenseMailer

logger = logging.getLogger(__name__)

SUBJECT_TEMPLATE = "Your license for {ea_name}"

BODY_TEMPLATE = """Your license for {ea_name} has been issued.

Account: {account_number}
Broker: {broker}
Valid until: {expiry}

License key:
{license_key}
"""


class DjangoLicenseMailer(LicenseMailer):
    """Sends licenses through the configured EMAIL_BACKEND."""

    def __init__(self, from_email: str = None):
        """Initialize mailer (sender defaults to settings.DEFAULT_FROM_EMAIL)."""
        self.from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def send_license(self, application: Application, license_key: str) -> None:
        """
        Email the license.

        Raises:
            Exception: Backend errors propagate so the message is dead-lettered
        """
        send_mail(
            SUBJECT_TEMPLATE.format(ea_name=application.ea_name),
            BODY_TEMPLATE.format(
                ea_name=application.ea_name,
                account_number=application.account_number,
                broker=application.broker,
                expiry=format_timestamp(application.expiry_date),
                license_key=license_key,
            ),
            self.from_email,
            [application.email],
            fail_silently=False,
        )
        logger.info(
            "License email sent",
            extra={"owner_id": application.owner_id, "ea_name": application.ea_name},
        )
