"""
License mailer port (interface).
"""
from abc import ABC, abstractmethod

from applications.domain.application import Application


class LicenseMailer(ABC):
    """Abstract license delivery by email."""

    @abstractmethod
    def send_license(self, application: Application, license_key: str) -> None:
        """
        Email a generated license to the application's address.

        Args:
            application: Application the license was generated for
            license_key: License payload
        """
        pass
