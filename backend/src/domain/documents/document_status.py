"""DocumentStatus state machine for the document review lifecycle

State flow:
    PENDING → APPROVED or REJECTED (admin decision)
    APPROVED → EXPIRED (time-triggered, scheduler only)

REJECTED and EXPIRED are terminal. A club supersedes them by uploading a new
document of the same type; the old record is retained for audit.
"""

from enum import Enum
from typing import Optional, Dict, List

from domain.errors import InvalidTransitionError


class DocumentStatus(str, Enum):
    """Document review status enum"""
    PENDING = "PENDING"      # Uploaded, awaiting admin review
    APPROVED = "APPROVED"    # Accepted by an admin
    REJECTED = "REJECTED"    # Refused by an admin (terminal)
    EXPIRED = "EXPIRED"      # Approved evidence past its expiry date (terminal)


# State transition rules
ALLOWED_TRANSITIONS: Dict[Optional[DocumentStatus], List[DocumentStatus]] = {
    None: [DocumentStatus.PENDING],
    DocumentStatus.PENDING: [DocumentStatus.APPROVED, DocumentStatus.REJECTED],
    DocumentStatus.APPROVED: [DocumentStatus.EXPIRED],
    DocumentStatus.REJECTED: [],  # Terminal
    DocumentStatus.EXPIRED: [],  # Terminal
}

# Outcomes an admin may record on a PENDING document
DECISION_OUTCOMES = (DocumentStatus.APPROVED, DocumentStatus.REJECTED)


def can_transition(from_status: Optional[DocumentStatus], to_status: DocumentStatus) -> bool:
    """Validate if status transition is allowed

    Args:
        from_status: Current status (None for new documents)
        to_status: Target status

    Returns:
        True if transition is allowed, False otherwise

    Example:
        >>> can_transition(DocumentStatus.PENDING, DocumentStatus.APPROVED)
        True
        >>> can_transition(DocumentStatus.REJECTED, DocumentStatus.APPROVED)
        False
    """
    allowed = ALLOWED_TRANSITIONS.get(from_status, [])
    return to_status in allowed


def get_allowed_transitions(from_status: Optional[DocumentStatus]) -> List[DocumentStatus]:
    """Get list of allowed transitions from current status

    Example:
        >>> get_allowed_transitions(DocumentStatus.APPROVED)
        [DocumentStatus.EXPIRED]
    """
    return ALLOWED_TRANSITIONS.get(from_status, [])


def validate_transition(
    from_status: Optional[DocumentStatus],
    to_status: DocumentStatus,
) -> None:
    """Raise InvalidTransitionError unless the transition is allowed."""
    if not can_transition(from_status, to_status):
        current = from_status.value if from_status else "NEW"
        raise InvalidTransitionError(
            f"Cannot transition document from {current} to {to_status.value}",
            current_status=current,
        )
