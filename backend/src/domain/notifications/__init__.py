"""Outbound notification contract."""

from .notification_sender_port import NotificationKind, NotificationSenderPort
from .dispatch import PendingNotification, dispatch_notifications

__all__ = [
    "NotificationKind",
    "NotificationSenderPort",
    "PendingNotification",
    "dispatch_notifications",
]
