"""Audit logging service for verification events.

Every state change of a document or a club writes one immutable audit_log row
inside the same transaction as the change itself, so the trail can never
disagree with the data.

Audit Events:
- DOCUMENT_UPLOADED, DOCUMENT_APPROVED, DOCUMENT_REJECTED
- DOCUMENT_EXPIRED, DOCUMENT_WITHDRAWN
- CLUB_REGISTERED, VERIFICATION_STATUS_CHANGED
- CLUB_SUSPENDED, CLUB_SUSPENSION_LIFTED, CLUB_TIER_CHANGED
"""

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from models.audit_log import AuditLog

SYSTEM_ACTOR = "system"


def log_audit_event(
    db: Session,
    action: str,
    club_id: Optional[UUID] = None,
    actor_id: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Create an audit log entry.

    All parameters are stored as-is. This function does not validate action
    names or entity types.

    Args:
        db: Database session (caller owns the transaction)
        action: Event action (e.g., "DOCUMENT_APPROVED")
        club_id: Club the event belongs to
        actor_id: Principal identity, or SYSTEM_ACTOR for scheduled work
        entity_type: Type of entity affected ("document", "club_profile")
        entity_id: ID of affected entity
        metadata: Additional context as JSON (e.g., {"from": "PENDING", "to": "APPROVED"})

    Returns:
        AuditLog: The created audit log entry

    Example:
        log_audit_event(
            db=session,
            action="DOCUMENT_APPROVED",
            club_id=document.club_id,
            actor_id=principal.identity,
            entity_type="document",
            entity_id=document.id,
            metadata={"notes": "Certificate checked"},
        )
    """
    audit_entry = AuditLog(
        club_id=club_id,
        actor_id=actor_id or SYSTEM_ACTOR,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
    )

    db.add(audit_entry)
    db.flush()  # Get ID without committing transaction

    return audit_entry
