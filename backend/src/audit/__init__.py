"""Append-only audit trail."""

from .service import SYSTEM_ACTOR, log_audit_event

__all__ = ["SYSTEM_ACTOR", "log_audit_event"]
