"""Expiry Reminder Scheduler - daily scan for expiring and expired evidence.

One cycle does two things for APPROVED documents:
1. Every document whose expiry date has passed is expired through the
   document lifecycle service, which recomputes the owning club.
2. Every document expiring within the largest reminder threshold gets a
   reminder for the tightest threshold it has reached. Firing a threshold
   means inserting a document_reminder row; the unique
   (document_id, threshold_days) constraint makes the check-and-record atomic,
   so re-running a cycle never sends a reminder twice.

Errors on one document are logged and counted; the cycle always continues.
"""

import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from config import ComplianceConfig
from database import Database
from documents.service import DocumentLifecycleService
from domain.documents.document_status import DocumentStatus
from domain.errors import SafeguardingError
from domain.notifications import (
    NotificationKind,
    NotificationSenderPort,
    PendingNotification,
    dispatch_notifications,
)
from models.base import utcnow
from models.club_profile import ClubProfile
from models.document import ComplianceDocument
from models.document_reminder import DocumentReminder
from .schemas import ReminderCycleStatistics

logger = logging.getLogger(__name__)


def select_threshold(days_left: int, thresholds: Sequence[int]) -> Optional[int]:
    """Tightest threshold that days_left has reached, or None.

    Example:
        >>> select_threshold(5, [30, 7, 0])
        7
        >>> select_threshold(31, [30, 7, 0]) is None
        True
    """
    if days_left < 0:
        return None
    reached = [threshold for threshold in thresholds if threshold >= days_left]
    return min(reached) if reached else None


class ReminderScheduler:
    """Runs reminder cycles against the shared record store."""

    def __init__(
        self,
        database: Database,
        documents: DocumentLifecycleService,
        config: ComplianceConfig,
        notifier: Optional[NotificationSenderPort] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.database = database
        self.documents = documents
        self.config = config
        self.notifier = notifier
        self.clock = clock

    def _expired_document_ids(self, now: datetime) -> List[UUID]:
        with self.database.session() as session:
            stmt = (
                select(ComplianceDocument.id)
                .where(
                    ComplianceDocument.status == DocumentStatus.APPROVED,
                    ComplianceDocument.expiry_date.is_not(None),
                    ComplianceDocument.expiry_date < now,
                )
                .order_by(ComplianceDocument.expiry_date, ComplianceDocument.id)
            )
            return list(session.execute(stmt).scalars().all())

    def _expiring_document_ids(self, now: datetime) -> List[UUID]:
        thresholds = self.config.reminder_thresholds_days
        if not thresholds:
            return []
        horizon = now + timedelta(days=max(thresholds) + 1)
        with self.database.session() as session:
            stmt = (
                select(ComplianceDocument.id)
                .where(
                    ComplianceDocument.status == DocumentStatus.APPROVED,
                    ComplianceDocument.expiry_date.is_not(None),
                    ComplianceDocument.expiry_date >= now,
                    ComplianceDocument.expiry_date < horizon,
                )
                .order_by(ComplianceDocument.expiry_date, ComplianceDocument.id)
            )
            return list(session.execute(stmt).scalars().all())

    def _fire_reminder(self, document_id: UUID, now: datetime) -> Optional[PendingNotification]:
        """Record the reminder for the reached threshold and build its notification.

        Returns None when no threshold is reached or the document is no
        longer APPROVED.

        Raises:
            IntegrityError: The threshold already fired for this document
        """
        with self.database.session() as session:
            document = session.get(ComplianceDocument, document_id)
            if document is None or document.status != DocumentStatus.APPROVED:
                return None
            if document.expiry_date is None:
                return None

            days_left = (document.expiry_date.date() - now.date()).days
            threshold = select_threshold(days_left, self.config.reminder_thresholds_days)
            if threshold is None:
                return None

            session.add(DocumentReminder(
                document_id=document.id,
                threshold_days=threshold,
                fired_at=now,
            ))
            session.flush()

            club = session.get(ClubProfile, document.club_id)
            notification = PendingNotification(
                recipient_id=club.owner_user_id,
                kind=NotificationKind.DOCUMENT_EXPIRY_REMINDER,
                payload={
                    "club_id": str(club.id),
                    "club_name": club.name,
                    "contact_email": club.contact_email,
                    "document_id": str(document.id),
                    "document_type": document.document_type.value,
                    "expiry_date": document.expiry_date.date().isoformat(),
                    "days_left": days_left,
                    "threshold_days": threshold,
                },
            )

        logger.info(
            f"Reminder fired: document={document_id}, threshold={threshold}d, "
            f"days_left={days_left}",
            extra={"club_id": str(club.id), "document_id": str(document_id)},
        )
        return notification

    def run_reminder_cycle(self, now: Optional[datetime] = None) -> ReminderCycleStatistics:
        """Expire overdue documents and send due reminders.

        Safe to run more than once for the same day: expiry is idempotent and
        each threshold fires at most once per document.

        Returns:
            ReminderCycleStatistics: Counts for monitoring
        """
        now = now or self.clock()
        started_at = utcnow()
        stats = {
            "documents_expired": 0,
            "reminders_sent": 0,
            "reminders_already_fired": 0,
            "notification_errors": 0,
            "document_errors": 0,
        }
        logger.info(f"Reminder cycle started: now={now.isoformat()}")

        for document_id in self._expired_document_ids(now):
            try:
                self.documents.expire(document_id, now=now)
                stats["documents_expired"] += 1
            except SafeguardingError as e:
                # Changed concurrently (withdrawn, already expired by another cycle)
                logger.warning(
                    f"Skipped expiry: document={document_id}, reason={e.message}",
                    extra={"document_id": str(document_id)},
                )
            except Exception:
                stats["document_errors"] += 1
                logger.error(
                    f"Failed to expire document {document_id}",
                    exc_info=True,
                    extra={"document_id": str(document_id)},
                )

        for document_id in self._expiring_document_ids(now):
            try:
                notification = self._fire_reminder(document_id, now)
            except IntegrityError:
                stats["reminders_already_fired"] += 1
                logger.debug(
                    f"Reminder already fired: document={document_id}",
                    extra={"document_id": str(document_id)},
                )
                continue
            except Exception:
                stats["document_errors"] += 1
                logger.error(
                    f"Failed to process reminder for document {document_id}",
                    exc_info=True,
                    extra={"document_id": str(document_id)},
                )
                continue

            if notification is None:
                continue
            stats["reminders_sent"] += 1
            stats["notification_errors"] += dispatch_notifications(self.notifier, [notification])

        completed_at = utcnow()
        statistics = ReminderCycleStatistics(
            cycle_started_at=started_at,
            cycle_completed_at=completed_at,
            duration_seconds=max((completed_at - started_at).total_seconds(), 0.0),
            **stats,
        )

        logger.info("Reminder cycle completed", extra=stats)
        if statistics.has_errors:
            logger.error(
                "Reminder cycle completed with errors",
                extra={
                    "notification_errors": statistics.notification_errors,
                    "document_errors": statistics.document_errors,
                },
            )
        return statistics
