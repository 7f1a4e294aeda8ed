"""Notification Sender Port - Domain interface for outbound notifications.

The verification core only needs to hand a notification request to a sender.
Delivery (email, push) is the adapter's business; failures are logged by the
caller and never retried or surfaced.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict


class NotificationKind(str, Enum):
    """Notification requests emitted by the verification core."""
    DOCUMENT_EXPIRY_REMINDER = "DOCUMENT_EXPIRY_REMINDER"
    DOCUMENT_EXPIRED = "DOCUMENT_EXPIRED"
    VERIFICATION_STATUS_CHANGED = "VERIFICATION_STATUS_CHANGED"


class NotificationSenderPort(ABC):
    """Port interface for fire-and-forget notifications."""

    @abstractmethod
    def notify(self, recipient_id: str, kind: NotificationKind, payload: Dict[str, Any]) -> None:
        """Send one notification.

        Args:
            recipient_id: Identity of the recipient (club owner user id)
            kind: What happened
            payload: Template data (club name, document type, dates, contact email)

        Raises:
            Exception: Any delivery failure; callers log and continue
        """
        pass
