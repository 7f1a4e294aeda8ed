"""Club verification: status recomputation and admin overrides."""

from .service import (
    StatusChange,
    VerificationService,
    lock_club,
    recompute_club_status,
    status_notifications,
)

__all__ = [
    "StatusChange",
    "VerificationService",
    "lock_club",
    "recompute_club_status",
    "status_notifications",
]
