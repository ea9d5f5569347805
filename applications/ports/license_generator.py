"""
License generator port (interface).

Produces the license payload handed to the trader. How the payload is
protected is up to the implementation.
"""
from abc import ABC, abstractmethod
from datetime import datetime

from applications.domain.application import Application


class LicenseGenerator(ABC):
    """Abstract license generator."""

    @abstractmethod
    def generate(self, application: Application, issued_at: datetime) -> str:
        """
        Generate the license for an approved application.

        Args:
            application: Application awaiting notification
            issued_at: Issue time written into the license

        Returns:
            License payload as text
        """
        pass
