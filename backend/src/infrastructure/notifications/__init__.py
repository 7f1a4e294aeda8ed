"""Notification delivery adapters."""

from .email_sender import EmailNotificationSender, create_notification_sender

__all__ = ["EmailNotificationSender", "create_notification_sender"]
