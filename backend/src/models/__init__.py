"""SQLAlchemy Models for the safeguarding verification backend"""

from .base import Base, PortableJSONB, UTCDateTime, utcnow
from .club_profile import ClubProfile
from .document import ComplianceDocument
from .document_reminder import DocumentReminder
from .audit_log import AuditLog
from .principal_activity import PrincipalActivity

__all__ = [
    "Base",
    "PortableJSONB",
    "UTCDateTime",
    "utcnow",
    "ClubProfile",
    "ComplianceDocument",
    "DocumentReminder",
    "AuditLog",
    "PrincipalActivity",
]
