"""Pytest fixtures for the verification core.

Provides reusable test fixtures for:
- A file-backed SQLite record store per test (schema created, disposed after)
- An in-memory storage backend that records every call
- A notification sender that records every request
- A frozen clock shared by all services
- Principals for each role and a registered club

Usage:
    @pytest.mark.asyncio
    async def test_upload(document_service, club_principal, club):
        document = await upload(document_service, club_principal, club, DocumentType.INSURANCE)
        assert document.status == DocumentStatus.PENDING
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Tuple
from uuid import uuid4

# Set environment variables BEFORE any imports to ensure they take effect
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("STORAGE_PROVIDER", "local")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

import pytest

from auth.principal import Principal
from auth.roles import AdminRole, UserRole
from config import ComplianceConfig
from database import Database
from documents.service import DocumentLifecycleService
from domain.documents.document_type import DocumentType
from domain.documents.ports.object_storage_port import (
    ObjectStoragePort,
    StorageError,
    StoredFile,
)
from domain.documents.validation import get_extension
from domain.notifications import NotificationKind, NotificationSenderPort
from domain.verification.verification_status import SafeguardingTier
from models.club_profile import ClubProfile
from reminders.service import ReminderScheduler
from verification.service import VerificationService


# Fixed instant all services see unless a test advances the clock
NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)

PDF_BYTES = b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\nsafeguarding evidence\n"

POLICY = DocumentType.SAFEGUARDING_POLICY
INSURANCE = DocumentType.INSURANCE
DBS = DocumentType.DBS_CERTIFICATE


class FrozenClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class InMemoryStorage(ObjectStoragePort):
    """Storage backend double that records calls and can be made to fail."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.calls: List[Tuple[str, str]] = []
        self.fail_put = False
        self.fail_delete = False

    async def put(self, data: bytes, content_type: str, suggested_name: str) -> StoredFile:
        self.calls.append(("put", suggested_name))
        if self.fail_put:
            raise StorageError("Storage upload timed out")
        handle = f"safeguarding/{uuid4().hex}{get_extension(suggested_name)}"
        self.objects[handle] = data
        return StoredFile(storage_handle=handle, size_bytes=len(data), content_type=content_type)

    async def get_url(self, storage_handle: str, expires_in_seconds: int = 900) -> str:
        self.calls.append(("get_url", storage_handle))
        return f"https://storage.test/{storage_handle}?expires={expires_in_seconds}"

    async def delete(self, storage_handle: str) -> bool:
        self.calls.append(("delete", storage_handle))
        if self.fail_delete:
            raise StorageError("Storage delete failed")
        return self.objects.pop(storage_handle, None) is not None


class RecordingNotifier(NotificationSenderPort):
    """Notification sender double."""

    def __init__(self):
        self.sent: List[Tuple[str, NotificationKind, Dict[str, Any]]] = []
        self.fail = False

    def notify(self, recipient_id: str, kind: NotificationKind, payload: Dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionRefusedError("SMTP server unavailable")
        self.sent.append((recipient_id, kind, payload))

    def kinds(self) -> List[NotificationKind]:
        return [kind for _, kind, _ in self.sent]


async def upload(
    service: DocumentLifecycleService,
    principal: Principal,
    club: ClubProfile,
    document_type: DocumentType,
    expiry_date: Optional[datetime] = None,
    filename: str = "evidence.pdf",
):
    """Ingest a small PDF for a club."""
    return await service.ingest(
        principal,
        club.id,
        document_type,
        PDF_BYTES,
        "application/pdf",
        filename,
        expiry_date=expiry_date,
    )


@pytest.fixture(scope="function")
def database(tmp_path) -> Generator[Database, None, None]:
    """Fresh file-backed SQLite record store for each test.

    A file (not :memory:) so that concurrent threads share one database.
    """
    db = Database(f"sqlite:///{tmp_path / 'safeguarding.db'}")
    db.create_schema()
    try:
        yield db
    finally:
        db.dispose()


@pytest.fixture
def compliance_config() -> ComplianceConfig:
    """Small mandatory sets: POLICY + INSURANCE for STANDARD, plus DBS above it."""
    return ComplianceConfig(
        mandatory_docs={
            SafeguardingTier.STANDARD: [POLICY, INSURANCE],
            SafeguardingTier.ENHANCED: [POLICY, INSURANCE, DBS],
            SafeguardingTier.PREMIUM: [POLICY, INSURANCE, DBS],
        },
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def verification_service(database, compliance_config, notifier, clock) -> VerificationService:
    return VerificationService(database, compliance_config, notifier=notifier, clock=clock)


@pytest.fixture
def document_service(database, storage, compliance_config, notifier, clock) -> DocumentLifecycleService:
    return DocumentLifecycleService(
        database, storage, compliance_config, notifier=notifier, clock=clock
    )


@pytest.fixture
def reminder_scheduler(database, document_service, compliance_config, notifier, clock) -> ReminderScheduler:
    return ReminderScheduler(
        database, document_service, compliance_config, notifier=notifier, clock=clock
    )


@pytest.fixture
def club(verification_service) -> ClubProfile:
    """A freshly registered PENDING club on the STANDARD tier."""
    return verification_service.register_club(
        owner_user_id="club-owner-1",
        name="Riverside Juniors FC",
        contact_email="secretary@riverside.example",
    )


@pytest.fixture
def other_club(verification_service) -> ClubProfile:
    return verification_service.register_club(
        owner_user_id="club-owner-2",
        name="Hilltop Swimming Club",
        contact_email="admin@hilltop.example",
    )


@pytest.fixture
def admin_principal() -> Principal:
    return Principal(identity="admin-1", role=UserRole.ADMIN, admin_sub_role=AdminRole.MODERATOR)


@pytest.fixture
def super_admin_principal() -> Principal:
    return Principal(identity="admin-0", role=UserRole.ADMIN, admin_sub_role=AdminRole.SUPER_ADMIN)


@pytest.fixture
def club_principal(club) -> Principal:
    return Principal(identity=club.owner_user_id, role=UserRole.CLUB, owned_profile_id=str(club.id))


@pytest.fixture
def other_club_principal(other_club) -> Principal:
    return Principal(
        identity=other_club.owner_user_id,
        role=UserRole.CLUB,
        owned_profile_id=str(other_club.id),
    )


@pytest.fixture
def parent_principal() -> Principal:
    return Principal(identity="parent-1", role=UserRole.PARENT, owned_profile_id=str(uuid4()))
