"""Documents domain module - evidence validation, review lifecycle, storage port"""

from .document_status import (
    DocumentStatus,
    can_transition,
    get_allowed_transitions,
    validate_transition,
    ALLOWED_TRANSITIONS,
    DECISION_OUTCOMES,
)
from .document_type import DocumentType
from .validation import (
    get_extension,
    parse_document_type,
    validate_content_type,
    validate_expiry_date,
    validate_file_size,
    validate_filename,
    validate_upload,
)

__all__ = [
    "DocumentStatus",
    "DocumentType",
    "can_transition",
    "get_allowed_transitions",
    "validate_transition",
    "ALLOWED_TRANSITIONS",
    "DECISION_OUTCOMES",
    "get_extension",
    "parse_document_type",
    "validate_content_type",
    "validate_expiry_date",
    "validate_file_size",
    "validate_filename",
    "validate_upload",
]
