"""ComplianceDocument SQLAlchemy model

One piece of safeguarding evidence for one club. Tracks the storage handle of
the uploaded bytes and the review status of the evidence.
"""

import uuid

from sqlalchemy import Column, Text, ForeignKey, BigInteger, Uuid, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship

from domain.documents.document_status import DocumentStatus
from domain.documents.document_type import DocumentType
from domain.verification.policy import DocumentSnapshot
from .base import Base, UTCDateTime, utcnow


class ComplianceDocument(Base):
    """Uploaded evidence and its review state.

    Records are never replaced in place: a club supersedes a rejected or
    expired document by uploading a new one of the same type.
    """
    __tablename__ = "compliance_document"
    __table_args__ = (
        Index("ix_compliance_document_club_id", "club_id"),
        Index("ix_compliance_document_status_expiry", "status", "expiry_date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    club_id = Column(Uuid, ForeignKey("club_profile.id", ondelete="CASCADE"), nullable=False)
    document_type = Column(
        SQLEnum(DocumentType, name="documenttype", native_enum=False, length=40),
        nullable=False,
    )
    storage_handle = Column(Text, nullable=False)
    original_filename = Column(Text, nullable=False)
    content_type = Column(Text, nullable=False)
    size_bytes = Column(BigInteger, nullable=False)
    uploaded_at = Column(UTCDateTime, nullable=False, default=utcnow)
    expiry_date = Column(UTCDateTime, nullable=True)
    status = Column(
        SQLEnum(DocumentStatus, name="documentstatus", native_enum=False, length=20),
        nullable=False,
        default=DocumentStatus.PENDING,
    )
    admin_notes = Column(Text, nullable=True)
    reviewer_id = Column(Text, nullable=True)
    reviewed_at = Column(UTCDateTime, nullable=True)
    uploaded_by = Column(Text, nullable=True)

    # Relationships
    club = relationship("ClubProfile", back_populates="documents")
    reminders = relationship(
        "DocumentReminder",
        back_populates="document",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def snapshot(self) -> DocumentSnapshot:
        """Read-only view used by status recomputation"""
        return DocumentSnapshot(
            id=str(self.id),
            document_type=self.document_type,
            status=self.status,
            uploaded_at=self.uploaded_at,
            expiry_date=self.expiry_date,
        )
