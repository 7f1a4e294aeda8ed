"""Compliance document categories."""

from enum import Enum


class DocumentType(str, Enum):
    """Category of safeguarding evidence a club can upload."""
    SAFEGUARDING_POLICY = "SAFEGUARDING_POLICY"
    INSURANCE = "INSURANCE"
    DBS_CERTIFICATE = "DBS_CERTIFICATE"
    RISK_ASSESSMENT = "RISK_ASSESSMENT"
    STAFF_QUALIFICATIONS = "STAFF_QUALIFICATIONS"
    HEALTH_SAFETY = "HEALTH_SAFETY"
    OTHER = "OTHER"
