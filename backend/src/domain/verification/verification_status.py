"""Club verification status and safeguarding tier enums."""

from enum import Enum


class VerificationStatus(str, Enum):
    """Club-level verification status.

    PENDING, IN_REVIEW, APPROVED and REJECTED are derived from the club's
    documents. SUSPENDED is only ever set by an admin and overrides the
    derived value until lifted.
    """
    PENDING = "PENDING"
    IN_REVIEW = "IN_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    SUSPENDED = "SUSPENDED"


class SafeguardingTier(str, Enum):
    """Admin-assigned safeguarding tier. Above STANDARD only while APPROVED."""
    STANDARD = "STANDARD"
    ENHANCED = "ENHANCED"
    PREMIUM = "PREMIUM"
