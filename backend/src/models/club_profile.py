"""ClubProfile SQLAlchemy model

ClubProfile is the verified entity. Its verification status is derived from
its compliance documents, except SUSPENDED which only an admin sets.
"""

import uuid

from sqlalchemy import Column, Text, Uuid, Enum as SQLEnum, Index
from sqlalchemy.orm import relationship

from domain.verification.verification_status import SafeguardingTier, VerificationStatus
from .base import Base, UTCDateTime, utcnow


class ClubProfile(Base):
    """Club profile owned by exactly one CLUB user.

    Documents cascade on profile deletion.
    """
    __tablename__ = "club_profile"
    __table_args__ = (
        Index("ix_club_profile_owner_user_id", "owner_user_id"),
        Index("ix_club_profile_verification_status", "verification_status"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_user_id = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    contact_email = Column(Text, nullable=True)
    verification_status = Column(
        SQLEnum(VerificationStatus, name="verificationstatus", native_enum=False, length=20),
        nullable=False,
        default=VerificationStatus.PENDING,
    )
    safeguarding_tier = Column(
        SQLEnum(SafeguardingTier, name="safeguardingtier", native_enum=False, length=20),
        nullable=False,
        default=SafeguardingTier.STANDARD,
    )
    tier_expiry_date = Column(UTCDateTime, nullable=True)
    admin_notes = Column(Text, nullable=True)
    status_changed_at = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    documents = relationship(
        "ComplianceDocument",
        back_populates="club",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
