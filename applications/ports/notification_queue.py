"""
Notification queue port (interface).

The license generation and email worker consumes this queue.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from applications.domain.messages import NotificationMessage


class NotificationQueue(ABC):
    """Abstract notification queue."""

    @abstractmethod
    def send(
        self,
        message: NotificationMessage,
        delay_seconds: int = 0,
        attributes: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Send a notification message.

        Args:
            message: Notification payload
            delay_seconds: Delivery delay
            attributes: Extra transport attributes
        """
        pass
