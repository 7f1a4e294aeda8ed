"""AuditLog SQLAlchemy model"""

import uuid

from sqlalchemy import Column, Text, Uuid, Index

from .base import Base, PortableJSONB, UTCDateTime, utcnow


class AuditLog(Base):
    """AuditLog model for immutable verification event logging.

    Records every decision, expiry, withdrawal and club status override.
    Entries are append-only and should never be updated or deleted.
    """
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_club_id", "club_id"),
        Index("ix_audit_log_club_id_created_at", "club_id", "created_at"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    club_id = Column(Uuid, nullable=True)
    actor_id = Column(Text, nullable=True)
    action = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=True)
    entity_id = Column(Uuid, nullable=True)
    metadata_json = Column(PortableJSONB, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
