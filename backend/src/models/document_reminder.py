"""DocumentReminder SQLAlchemy model

Records that the expiry reminder for a given threshold has fired for a
document. The unique constraint is the at-most-once guarantee: inserting the
row is the atomic check-and-set performed before a reminder is sent.
"""

import uuid

from sqlalchemy import Column, Integer, ForeignKey, Uuid, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, UTCDateTime, utcnow


class DocumentReminder(Base):
    __tablename__ = "document_reminder"
    __table_args__ = (
        UniqueConstraint("document_id", "threshold_days", name="uq_document_reminder_threshold"),
        Index("ix_document_reminder_document_id", "document_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    document_id = Column(
        Uuid,
        ForeignKey("compliance_document.id", ondelete="CASCADE"),
        nullable=False,
    )
    threshold_days = Column(Integer, nullable=False)
    fired_at = Column(UTCDateTime, nullable=False, default=utcnow)

    document = relationship("ComplianceDocument", back_populates="reminders")
