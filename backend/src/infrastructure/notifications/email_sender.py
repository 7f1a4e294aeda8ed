"""SMTP notification sender.

Sends plain-text emails for verification events. When SMTP_HOST is unset, or
the payload carries no contact email, the notification is logged and skipped.
"""

import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Dict, Optional, Tuple

from domain.notifications import NotificationKind, NotificationSenderPort

logger = logging.getLogger(__name__)


def render_notification(kind: NotificationKind, payload: Dict[str, Any]) -> Tuple[str, str]:
    """Build (subject, body) for a notification."""
    club_name = payload.get("club_name") or "your club"
    document_type = str(payload.get("document_type", "document")).replace("_", " ").lower()

    if kind == NotificationKind.DOCUMENT_EXPIRY_REMINDER:
        days_left = payload.get("days_left")
        when = "today" if days_left == 0 else f"in {days_left} days"
        subject = f"Safeguarding document expires {when}"
        body = (
            f"The {document_type} for {club_name} expires {when} "
            f"({payload.get('expiry_date')}). Please upload a renewed document "
            "to keep your verification."
        )
    elif kind == NotificationKind.DOCUMENT_EXPIRED:
        subject = "Safeguarding document expired"
        body = (
            f"The {document_type} for {club_name} expired on {payload.get('expiry_date')}. "
            "Upload a renewed document to restore your verification."
        )
    else:
        subject = "Verification status changed"
        body = (
            f"The verification status of {club_name} changed from "
            f"{payload.get('previous_status')} to {payload.get('new_status')}."
        )
    return subject, body


class EmailNotificationSender(NotificationSenderPort):
    """NotificationSenderPort backed by smtplib."""

    def __init__(
        self,
        host: Optional[str],
        port: int = 587,
        sender: str = "noreply@safeguarding.local",
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: bool = True,
        timeout_seconds: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout_seconds = timeout_seconds

    def notify(self, recipient_id: str, kind: NotificationKind, payload: Dict[str, Any]) -> None:
        to_email = payload.get("contact_email")
        if not self.host or not to_email:
            logger.info(
                f"Notification skipped (no SMTP host or recipient email): "
                f"kind={kind.value}, recipient={recipient_id}"
            )
            return

        subject, body = render_notification(kind, payload)
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email
        msg.set_content(body)

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username and self.password:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)

        logger.info(f"Notification sent: kind={kind.value}, recipient={recipient_id}")


def create_notification_sender(settings) -> EmailNotificationSender:
    """Build the sender from application settings."""
    return EmailNotificationSender(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        sender=settings.EMAIL_FROM,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
    )
