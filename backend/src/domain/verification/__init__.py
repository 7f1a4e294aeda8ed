"""Verification domain module - club status derivation and tier rules"""

from .verification_status import VerificationStatus, SafeguardingTier
from .policy import (
    DocumentSnapshot,
    VerificationOutcome,
    derive_status,
    evaluate_club,
    is_currently_approved,
)

__all__ = [
    "VerificationStatus",
    "SafeguardingTier",
    "DocumentSnapshot",
    "VerificationOutcome",
    "derive_status",
    "evaluate_club",
    "is_currently_approved",
]
