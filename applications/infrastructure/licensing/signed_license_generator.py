"""
LicenseGenerator backed by Django's signing framework.

The payload is a signed, compressed JSON document; the EA verifies it
with the shared signing key.
"""
from datetime import datetime

from django.core import signing

from applications.domain.application import Application, format_timestamp
from applications.ports.license_generator import LicenseGenerator

LICENSE_SALT = "applications.license.v1"
LICENSE_VERSION = "1"


class SignedLicenseGenerator(LicenseGenerator):
    """Signs version 1 license payloads."""

    def __init__(self, key: str = None, salt: str = LICENSE_SALT):
        """
        Initialize generator.

        Args:
            key: Signing key (defaults to settings.SECRET_KEY)
            salt: Namespace of the signature
        """
        self.key = key
        self.salt = salt

    def build_payload(self, application: Application, issued_at: datetime) -> dict:
        """Build the version 1 license payload."""
        return {
            "version": LICENSE_VERSION,
            "eaName": application.ea_name,
            "accountId": application.account_number,
            "expiry": format_timestamp(application.expiry_date),
            "userId": application.owner_id,
            "issuedAt": format_timestamp(issued_at),
        }

    def generate(self, application: Application, issued_at: datetime) -> str:
        """Return the signed license payload."""
        return signing.dumps(
            self.build_payload(application, issued_at),
            key=self.key,
            salt=self.salt,
            compress=True,
        )

    def verify(self, license_key: str) -> dict:
        """
        Return the payload of a license this generator signed.

        Raises:
            django.core.signing.BadSignature: If the license was tampered with
        """
        return signing.loads(license_key, key=self.key, salt=self.salt)
