"""After-commit delivery of notification requests."""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from .notification_sender_port import NotificationKind, NotificationSenderPort

logger = logging.getLogger(__name__)


@dataclass
class PendingNotification:
    """A notification collected inside a transaction, sent once it commits."""
    recipient_id: str
    kind: NotificationKind
    payload: Dict[str, Any] = field(default_factory=dict)


def dispatch_notifications(
    notifier: Optional[NotificationSenderPort],
    pending: Iterable[PendingNotification],
) -> int:
    """Send pending notifications, logging failures without raising.

    Returns:
        int: Number of notifications that failed to send
    """
    failures = 0
    if notifier is None:
        return failures

    for notification in pending:
        try:
            notifier.notify(notification.recipient_id, notification.kind, notification.payload)
        except Exception as e:
            failures += 1
            logger.error(
                f"Notification failed: kind={notification.kind.value}, "
                f"recipient={notification.recipient_id}, error={e}",
                exc_info=True,
                extra={"club_id": notification.payload.get("club_id")},
            )
    return failures
