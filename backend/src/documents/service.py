"""Document Lifecycle Manager - ingest, decide, expire and withdraw evidence.

State flow per document:
    (upload) → PENDING → APPROVED | REJECTED
    APPROVED → EXPIRED (scheduler only, once the expiry date has passed)

Every mutating operation locks the owning club row, applies a conditional
UPDATE keyed on the expected current status, and recomputes the club's
verification status in the same transaction. Notifications are sent only
after the transaction commits. The async operations run record store work and
notification delivery in worker threads so the event loop is never blocked.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from audit.service import log_audit_event
from auth.policy import Action, Resource, ResourceKind, enforce
from auth.principal import Principal
from config import ComplianceConfig
from database import Database
from domain.documents.document_status import (
    DECISION_OUTCOMES,
    DocumentStatus,
    validate_transition,
)
from domain.documents.document_type import DocumentType
from domain.documents.ports.object_storage_port import ObjectStoragePort, StorageError, StoredFile
from domain.documents.validation import (
    parse_document_type,
    validate_expiry_date,
    validate_upload,
)
from domain.errors import DocumentValidationError, InvalidTransitionError, NotFoundError
from domain.notifications import (
    NotificationKind,
    NotificationSenderPort,
    PendingNotification,
    dispatch_notifications,
)
from models.base import utcnow
from models.club_profile import ClubProfile
from models.document import ComplianceDocument
from verification.service import lock_club, recompute_club_status, status_notifications

logger = logging.getLogger(__name__)


def _document_payload(club: ClubProfile, document: ComplianceDocument) -> dict:
    return {
        "club_id": str(club.id),
        "club_name": club.name,
        "contact_email": club.contact_email,
        "document_id": str(document.id),
        "document_type": document.document_type.value,
        "expiry_date": document.expiry_date.date().isoformat() if document.expiry_date else None,
    }


class DocumentLifecycleService:
    """Owns every state change of a compliance document.

    Example:
        service = DocumentLifecycleService(database, storage, config, notifier)
        document = await service.ingest(
            principal, club.id, DocumentType.INSURANCE,
            data, "application/pdf", "insurance.pdf",
        )
        service.decide(admin, document.id, DocumentStatus.APPROVED, notes="OK")
    """

    def __init__(
        self,
        database: Database,
        storage: ObjectStoragePort,
        config: ComplianceConfig,
        notifier: Optional[NotificationSenderPort] = None,
        clock: Callable[[], datetime] = utcnow,
        signed_url_expiry_seconds: int = 900,
    ):
        self.database = database
        self.storage = storage
        self.config = config
        self.notifier = notifier
        self.clock = clock
        self.signed_url_expiry_seconds = signed_url_expiry_seconds

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _get_club(
        self,
        session: Session,
        principal: Principal,
        action: Action,
        club_id: UUID,
        lock: bool = False,
    ) -> ClubProfile:
        club = lock_club(session, club_id) if lock else session.get(ClubProfile, club_id)
        if club is None:
            enforce(principal, action, Resource.missing(ResourceKind.CLUB_PROFILE))
            raise NotFoundError("Club", club_id)
        enforce(principal, action, Resource.of(ResourceKind.CLUB_PROFILE, club))
        return club

    def _get_document(
        self,
        session: Session,
        principal: Principal,
        action: Action,
        document_id: UUID,
    ) -> ComplianceDocument:
        document = session.get(ComplianceDocument, document_id)
        if document is None:
            # Unknown and foreign documents look the same to non-admins
            enforce(principal, action, Resource.missing(ResourceKind.DOCUMENT))
            raise NotFoundError("Document", document_id)
        enforce(principal, action, Resource.of(ResourceKind.DOCUMENT, document))
        return document

    def _current_status(self, session: Session, document_id: UUID) -> Optional[DocumentStatus]:
        return session.execute(
            select(ComplianceDocument.status).where(ComplianceDocument.id == document_id)
        ).scalar_one_or_none()

    def _check_club_access(self, principal: Principal, action: Action, club_id: UUID) -> None:
        with self.database.session() as session:
            self._get_club(session, principal, action, club_id)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def ingest(
        self,
        principal: Principal,
        club_id: UUID,
        document_type: Union[DocumentType, str],
        data: bytes,
        content_type: str,
        original_name: str,
        expiry_date: Optional[datetime] = None,
    ) -> ComplianceDocument:
        """Validate, store and record a new PENDING document.

        Validation runs before any storage call. Bytes are written before the
        record is created, so a failure in between leaves at most an orphaned
        blob, never a record pointing at missing bytes. Record store work and
        notification delivery run in worker threads.

        Raises:
            AccessDeniedError: Principal may not upload for this club
            DocumentValidationError: Bad type, size, extension or expiry
            StorageError: Backend write failed; no record was created
        """
        await asyncio.to_thread(self._check_club_access, principal, Action.UPLOAD, club_id)

        doc_type = parse_document_type(document_type)
        validate_upload(
            filename=original_name,
            content_type=content_type,
            size_bytes=len(data),
            max_size=self.config.max_file_size_bytes,
            extension_map=self.config.extension_map(),
        )
        uploaded_at = self.clock()
        validate_expiry_date(expiry_date, uploaded_at)

        stored = await self.storage.put(data, content_type, original_name)

        try:
            document, pending = await asyncio.to_thread(
                self._record_upload,
                principal,
                club_id,
                doc_type,
                stored,
                original_name,
                uploaded_at,
                expiry_date,
            )
        except Exception:
            logger.warning(
                f"Document record not created, removing stored bytes: "
                f"storage_handle={stored.storage_handle}",
                extra={"club_id": str(club_id), "principal_id": principal.identity},
            )
            try:
                await self.storage.delete(stored.storage_handle)
            except StorageError:
                logger.error(
                    f"Failed to remove orphaned upload: storage_handle={stored.storage_handle}",
                    exc_info=True,
                )
            raise

        logger.info(
            f"Document ingested: document={document.id}, club={club_id}, "
            f"type={doc_type.value}, size={stored.size_bytes}",
            extra={
                "club_id": str(club_id),
                "document_id": str(document.id),
                "principal_id": principal.identity,
            },
        )
        await asyncio.to_thread(dispatch_notifications, self.notifier, pending)
        return document

    def _record_upload(
        self,
        principal: Principal,
        club_id: UUID,
        doc_type: DocumentType,
        stored: StoredFile,
        original_name: str,
        uploaded_at: datetime,
        expiry_date: Optional[datetime],
    ) -> Tuple[ComplianceDocument, List[PendingNotification]]:
        pending: List[PendingNotification] = []
        with self.database.session() as session:
            club = self._get_club(session, principal, Action.UPLOAD, club_id, lock=True)
            document = ComplianceDocument(
                club_id=club.id,
                document_type=doc_type,
                storage_handle=stored.storage_handle,
                original_filename=original_name,
                content_type=stored.content_type,
                size_bytes=stored.size_bytes,
                uploaded_at=uploaded_at,
                expiry_date=expiry_date,
                status=DocumentStatus.PENDING,
                uploaded_by=principal.identity,
            )
            session.add(document)
            session.flush()

            log_audit_event(
                db=session,
                action="DOCUMENT_UPLOADED",
                club_id=club.id,
                actor_id=principal.identity,
                entity_type="document",
                entity_id=document.id,
                metadata={
                    "document_type": doc_type.value,
                    "size_bytes": stored.size_bytes,
                    "content_type": stored.content_type,
                },
            )
            change = recompute_club_status(
                session, club, self.config, uploaded_at, principal.identity
            )
            pending.extend(status_notifications(change))
        return document, pending

    def decide(
        self,
        principal: Principal,
        document_id: UUID,
        outcome: Union[DocumentStatus, str],
        notes: Optional[str] = None,
    ) -> ComplianceDocument:
        """Record an admin decision on a PENDING document.

        Exactly one of two concurrent decisions on the same document succeeds;
        the other raises InvalidTransitionError.

        Raises:
            AccessDeniedError: Principal is not an admin
            DocumentValidationError: Outcome is not APPROVED or REJECTED
            InvalidTransitionError: Document is no longer PENDING
            NotFoundError: Unknown document (admins only)
        """
        try:
            outcome = DocumentStatus(outcome)
        except ValueError:
            raise DocumentValidationError(f"Invalid decision outcome: {outcome}", field="outcome")
        if outcome not in DECISION_OUTCOMES:
            raise DocumentValidationError(
                f"Decision outcome must be APPROVED or REJECTED (got {outcome.value})",
                field="outcome",
            )

        pending: List[PendingNotification] = []
        with self.database.session() as session:
            document = self._get_document(
                session, principal, Action.DECIDE_VERIFICATION, document_id
            )
            club = lock_club(session, document.club_id)
            now = self.clock()

            result = session.execute(
                update(ComplianceDocument)
                .where(
                    ComplianceDocument.id == document_id,
                    ComplianceDocument.status == DocumentStatus.PENDING,
                )
                .values(
                    status=outcome,
                    reviewer_id=principal.identity,
                    reviewed_at=now,
                    admin_notes=notes,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                current = self._current_status(session, document_id)
                if current is None:
                    raise NotFoundError("Document", document_id)
                raise InvalidTransitionError(
                    f"Cannot transition document from {current.value} to {outcome.value}",
                    current_status=current.value,
                )

            session.refresh(document)
            log_audit_event(
                db=session,
                action=f"DOCUMENT_{outcome.value}",
                club_id=document.club_id,
                actor_id=principal.identity,
                entity_type="document",
                entity_id=document.id,
                metadata={"from": DocumentStatus.PENDING.value, "to": outcome.value, "notes": notes},
            )
            change = recompute_club_status(session, club, self.config, now, principal.identity)
            pending.extend(status_notifications(change))

        logger.info(
            f"Document decided: document={document_id}, outcome={outcome.value}",
            extra={
                "club_id": str(document.club_id),
                "document_id": str(document_id),
                "principal_id": principal.identity,
            },
        )
        dispatch_notifications(self.notifier, pending)
        return document

    def expire(self, document_id: UUID, now: Optional[datetime] = None) -> ComplianceDocument:
        """Move an APPROVED document past its expiry date to EXPIRED.

        Scheduler-only. Idempotent: an already EXPIRED document is returned
        unchanged without any write.

        Raises:
            InvalidTransitionError: Document is not APPROVED, or not yet expired
            NotFoundError: Unknown document
        """
        now = now or self.clock()
        pending: List[PendingNotification] = []

        with self.database.session() as session:
            document = session.get(ComplianceDocument, document_id)
            if document is None:
                raise NotFoundError("Document", document_id)
            if document.status == DocumentStatus.EXPIRED:
                return document
            validate_transition(document.status, DocumentStatus.EXPIRED)
            if document.expiry_date is None or document.expiry_date >= now:
                raise InvalidTransitionError(
                    "Document has not reached its expiry date",
                    current_status=document.status.value,
                )

            club = lock_club(session, document.club_id)
            result = session.execute(
                update(ComplianceDocument)
                .where(
                    ComplianceDocument.id == document_id,
                    ComplianceDocument.status == DocumentStatus.APPROVED,
                )
                .values(status=DocumentStatus.EXPIRED)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                current = self._current_status(session, document_id)
                if current == DocumentStatus.EXPIRED:
                    session.refresh(document)
                    return document
                if current is None:
                    raise NotFoundError("Document", document_id)
                raise InvalidTransitionError(
                    f"Cannot transition document from {current.value} to EXPIRED",
                    current_status=current.value,
                )

            session.refresh(document)
            log_audit_event(
                db=session,
                action="DOCUMENT_EXPIRED",
                club_id=document.club_id,
                entity_type="document",
                entity_id=document.id,
                metadata={"expiry_date": document.expiry_date.isoformat()},
            )
            change = recompute_club_status(session, club, self.config, now)

            pending.append(PendingNotification(
                recipient_id=club.owner_user_id,
                kind=NotificationKind.DOCUMENT_EXPIRED,
                payload=_document_payload(club, document),
            ))
            pending.extend(status_notifications(change))

        logger.info(
            f"Document expired: document={document_id}",
            extra={"club_id": str(document.club_id), "document_id": str(document_id)},
        )
        dispatch_notifications(self.notifier, pending)
        return document

    async def withdraw(self, principal: Principal, document_id: UUID) -> None:
        """Delete a document and its stored bytes, at any status.

        The record is deleted (and the club recomputed) first; the bytes are
        removed after commit. A failed byte delete raises StorageError and
        leaves an orphaned blob behind.

        Raises:
            AccessDeniedError: Principal neither owns the club nor is an admin
            NotFoundError: Unknown document (admins only)
            StorageError: Record removed but bytes could not be deleted
        """
        storage_handle, club_id, pending = await asyncio.to_thread(
            self._delete_record, principal, document_id
        )

        log_extra = {
            "club_id": str(club_id),
            "document_id": str(document_id),
            "principal_id": principal.identity,
        }
        logger.info(f"Document withdrawn: document={document_id}", extra=log_extra)
        await asyncio.to_thread(dispatch_notifications, self.notifier, pending)

        try:
            await self.storage.delete(storage_handle)
        except StorageError:
            logger.error(
                f"Failed to delete stored bytes of withdrawn document: "
                f"storage_handle={storage_handle}",
                exc_info=True,
                extra=log_extra,
            )
            raise

    def _delete_record(
        self, principal: Principal, document_id: UUID
    ) -> Tuple[str, UUID, List[PendingNotification]]:
        pending: List[PendingNotification] = []
        with self.database.session() as session:
            document = self._get_document(session, principal, Action.DELETE, document_id)
            club = lock_club(session, document.club_id)
            storage_handle = document.storage_handle
            club_id = document.club_id
            document_type = document.document_type
            previous_status = document.status

            session.delete(document)
            session.flush()

            log_audit_event(
                db=session,
                action="DOCUMENT_WITHDRAWN",
                club_id=club_id,
                actor_id=principal.identity,
                entity_type="document",
                entity_id=document_id,
                metadata={
                    "document_type": document_type.value,
                    "status": previous_status.value,
                    "storage_handle": storage_handle,
                },
            )
            if club is not None:
                change = recompute_club_status(
                    session, club, self.config, self.clock(), principal.identity
                )
                pending.extend(status_notifications(change))
        return storage_handle, club_id, pending

    def list_documents(self, principal: Principal, club_id: UUID) -> List[ComplianceDocument]:
        """List a club's documents, newest first."""
        with self.database.session() as session:
            self._get_club(session, principal, Action.VIEW, club_id)
            stmt = (
                select(ComplianceDocument)
                .where(ComplianceDocument.club_id == club_id)
                .order_by(ComplianceDocument.uploaded_at.desc(), ComplianceDocument.id)
            )
            return list(session.execute(stmt).scalars().all())

    async def get_download_url(
        self,
        principal: Principal,
        document_id: UUID,
        expires_in_seconds: Optional[int] = None,
    ) -> str:
        """Return a retrieval URL for the document's bytes."""
        storage_handle = await asyncio.to_thread(self._storage_handle, principal, document_id)
        return await self.storage.get_url(
            storage_handle,
            expires_in_seconds=expires_in_seconds or self.signed_url_expiry_seconds,
        )

    def _storage_handle(self, principal: Principal, document_id: UUID) -> str:
        with self.database.session() as session:
            return self._get_document(session, principal, Action.VIEW, document_id).storage_handle
