"""Unit tests for the expiry reminder scheduler

Each cycle expires overdue APPROVED documents and fires at most one reminder
per (document, threshold). Thresholds default to 30, 7 and 0 days.
"""

from datetime import timedelta

import pytest
from sqlalchemy import func, select

from auth.principal import Principal
from auth.roles import UserRole
from config import ComplianceConfig
from conftest import DBS, INSURANCE, NOW, POLICY, upload
from documents.service import DocumentLifecycleService
from domain.documents import DocumentStatus, DocumentType
from domain.notifications import NotificationKind
from domain.verification import SafeguardingTier, VerificationStatus
from models import ClubProfile, ComplianceDocument, DocumentReminder
from reminders.service import ReminderScheduler, select_threshold
from verification.service import VerificationService


async def _approved(document_service, admin, owner, club, document_type, expires_in_days=None):
    expiry = NOW + timedelta(days=expires_in_days) if expires_in_days is not None else None
    document = await upload(document_service, owner, club, document_type, expiry_date=expiry)
    return document_service.decide(admin, document.id, DocumentStatus.APPROVED)


def _reminder_thresholds(database, document_id):
    with database.session() as session:
        return sorted(session.execute(
            select(DocumentReminder.threshold_days).where(DocumentReminder.document_id == document_id)
        ).scalars().all())


def _reminders(notifier):
    return [
        payload for _, kind, payload in notifier.sent
        if kind == NotificationKind.DOCUMENT_EXPIRY_REMINDER
    ]


class TestSelectThreshold:
    """Test the tightest-reached-threshold rule"""

    @pytest.mark.parametrize("days_left,expected", [
        (31, None),
        (30, 30),
        (29, 30),
        (8, 30),
        (7, 7),
        (1, 7),
        (0, 0),
        (-1, None),
    ])
    def test_default_thresholds(self, days_left, expected):
        assert select_threshold(days_left, [30, 7, 0]) == expected

    def test_no_thresholds(self):
        assert select_threshold(3, []) is None

    def test_thresholds_normalized_by_config(self):
        """Duplicates removed and sorted descending"""
        config = ComplianceConfig(reminder_thresholds_days=[7, 30, 7, 0])
        assert config.reminder_thresholds_days == [30, 7, 0]

    def test_negative_threshold_rejected(self):
        with pytest.raises(ValueError):
            ComplianceConfig(reminder_thresholds_days=[30, -1])


class TestReminderCycle:
    """Test reminders fire once per threshold"""

    @pytest.mark.asyncio
    async def test_reminder_fires_once_per_threshold(
        self, reminder_scheduler, document_service, admin_principal, club_principal,
        club, database, notifier,
    ):
        document = await _approved(
            document_service, admin_principal, club_principal, club, INSURANCE, expires_in_days=20
        )

        first = reminder_scheduler.run_reminder_cycle(now=NOW)
        assert first.reminders_sent == 1
        assert _reminder_thresholds(database, document.id) == [30]

        # Same day again: nothing new
        again = reminder_scheduler.run_reminder_cycle(now=NOW + timedelta(hours=6))
        assert again.reminders_sent == 0
        assert again.reminders_already_fired == 1
        assert len(_reminders(notifier)) == 1

        week_before = reminder_scheduler.run_reminder_cycle(now=NOW + timedelta(days=14))
        assert week_before.reminders_sent == 1
        assert _reminder_thresholds(database, document.id) == [7, 30]

        expiry_day = reminder_scheduler.run_reminder_cycle(now=NOW + timedelta(days=20, hours=-1))
        assert expiry_day.reminders_sent == 1
        assert _reminder_thresholds(database, document.id) == [0, 7, 30]

        assert [payload["threshold_days"] for payload in _reminders(notifier)] == [30, 7, 0]

    @pytest.mark.asyncio
    async def test_reminder_payload(
        self, reminder_scheduler, document_service, admin_principal, club_principal, club, notifier
    ):
        document = await _approved(
            document_service, admin_principal, club_principal, club, INSURANCE, expires_in_days=5
        )

        reminder_scheduler.run_reminder_cycle(now=NOW)

        recipient, kind, payload = notifier.sent[-1]
        assert recipient == club.owner_user_id
        assert kind == NotificationKind.DOCUMENT_EXPIRY_REMINDER
        assert payload["document_id"] == str(document.id)
        assert payload["document_type"] == "INSURANCE"
        assert payload["days_left"] == 5
        assert payload["threshold_days"] == 7
        assert payload["contact_email"] == club.contact_email
        assert payload["expiry_date"] == (NOW + timedelta(days=5)).date().isoformat()

    @pytest.mark.asyncio
    async def test_no_backfill_of_missed_thresholds(
        self, reminder_scheduler, document_service, admin_principal, club_principal, club, database
    ):
        """A document first seen 5 days out fires only the 7-day threshold"""
        document = await _approved(
            document_service, admin_principal, club_principal, club, POLICY, expires_in_days=5
        )

        statistics = reminder_scheduler.run_reminder_cycle(now=NOW)

        assert statistics.reminders_sent == 1
        assert _reminder_thresholds(database, document.id) == [7]

    @pytest.mark.asyncio
    async def test_pending_and_far_documents_ignored(
        self, reminder_scheduler, document_service, admin_principal, club_principal, club, notifier
    ):
        await upload(
            document_service, club_principal, club, POLICY, expiry_date=NOW + timedelta(days=3)
        )
        await _approved(
            document_service, admin_principal, club_principal, club, INSURANCE, expires_in_days=90
        )
        await _approved(document_service, admin_principal, club_principal, club, DBS)

        statistics = reminder_scheduler.run_reminder_cycle(now=NOW)

        assert statistics.reminders_sent == 0
        assert statistics.documents_expired == 0
        assert _reminders(notifier) == []

    @pytest.mark.asyncio
    async def test_notification_failure_counted_not_retried(
        self, reminder_scheduler, document_service, admin_principal, club_principal,
        club, database, notifier,
    ):
        document = await _approved(
            document_service, admin_principal, club_principal, club, INSURANCE, expires_in_days=5
        )
        notifier.fail = True

        statistics = reminder_scheduler.run_reminder_cycle(now=NOW)

        assert statistics.reminders_sent == 1
        assert statistics.notification_errors == 1
        assert statistics.has_errors is True
        # The threshold is recorded before sending, so it never fires twice
        assert _reminder_thresholds(database, document.id) == [7]


class TestExpiryCascade:
    """Test overdue documents are expired and clubs recomputed"""

    @pytest.mark.asyncio
    async def test_overdue_document_expired_once(
        self, reminder_scheduler, document_service, admin_principal, club_principal,
        club, database, notifier,
    ):
        await _approved(document_service, admin_principal, club_principal, club, POLICY)
        document = await _approved(
            document_service, admin_principal, club_principal, club, INSURANCE, expires_in_days=10
        )
        later = NOW + timedelta(days=11)

        statistics = reminder_scheduler.run_reminder_cycle(now=later)

        assert statistics.documents_expired == 1
        assert statistics.has_errors is False
        with database.session() as session:
            assert session.get(ComplianceDocument, document.id).status == DocumentStatus.EXPIRED
            club_row = session.get(ClubProfile, club.id)
            assert club_row.verification_status == VerificationStatus.IN_REVIEW
        assert NotificationKind.DOCUMENT_EXPIRED in notifier.kinds()

        rerun = reminder_scheduler.run_reminder_cycle(now=later)
        assert rerun.documents_expired == 0
        assert notifier.kinds().count(NotificationKind.DOCUMENT_EXPIRED) == 1

    @pytest.mark.asyncio
    async def test_premium_club_loses_tier_when_dbs_expires(
        self, database, storage, notifier, clock, admin_principal
    ):
        """APPROVED PREMIUM club whose DBS certificate expires → IN_REVIEW on STANDARD"""
        config = ComplianceConfig()
        verification = VerificationService(database, config, notifier=notifier, clock=clock)
        documents = DocumentLifecycleService(database, storage, config, notifier=notifier, clock=clock)
        scheduler = ReminderScheduler(database, documents, config, notifier=notifier, clock=clock)

        club = verification.register_club("owner-premium", "Premier Gymnastics", "ops@premier.example")
        owner = Principal(identity=club.owner_user_id, role=UserRole.CLUB, owned_profile_id=str(club.id))
        for document_type in config.mandatory_for(SafeguardingTier.PREMIUM):
            expires_in_days = 30 if document_type == DocumentType.DBS_CERTIFICATE else None
            await _approved(documents, admin_principal, owner, club, document_type, expires_in_days)

        verification.set_tier(admin_principal, club.id, SafeguardingTier.PREMIUM, NOW + timedelta(days=365))
        with database.session() as session:
            club_row = session.get(ClubProfile, club.id)
            assert club_row.verification_status == VerificationStatus.APPROVED
            assert club_row.safeguarding_tier == SafeguardingTier.PREMIUM

        statistics = scheduler.run_reminder_cycle(now=NOW + timedelta(days=31))

        assert statistics.documents_expired == 1
        with database.session() as session:
            club_row = session.get(ClubProfile, club.id)
            assert club_row.verification_status == VerificationStatus.IN_REVIEW
            assert club_row.safeguarding_tier == SafeguardingTier.STANDARD
            assert club_row.tier_expiry_date is None

        status_changes = [
            payload for _, kind, payload in notifier.sent
            if kind == NotificationKind.VERIFICATION_STATUS_CHANGED
        ]
        assert status_changes[-1]["previous_status"] == "APPROVED"
        assert status_changes[-1]["new_status"] == "IN_REVIEW"
        assert status_changes[-1]["tier"] == "STANDARD"

    @pytest.mark.asyncio
    async def test_withdrawn_document_not_expired(
        self, reminder_scheduler, document_service, admin_principal, club_principal, club, database
    ):
        first = await _approved(
            document_service, admin_principal, club_principal, club, POLICY, expires_in_days=1
        )
        second = await _approved(
            document_service, admin_principal, club_principal, club, INSURANCE, expires_in_days=2
        )
        await document_service.withdraw(club_principal, first.id)

        statistics = reminder_scheduler.run_reminder_cycle(now=NOW + timedelta(days=3))

        assert statistics.documents_expired == 1
        assert statistics.document_errors == 0
        with database.session() as session:
            assert session.get(ComplianceDocument, second.id).status == DocumentStatus.EXPIRED
            remaining = session.execute(select(func.count(ComplianceDocument.id))).scalar_one()
        assert remaining == 1
