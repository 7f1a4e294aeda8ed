"""File validation utilities for evidence uploads

All checks run before any byte reaches the storage backend. The declared
content type must be the one implied by the file extension according to the
configured allow-list, which blocks content-type spoofing such as
``policy.pdf.exe`` declared as ``application/pdf``.
"""

import os
from datetime import datetime
from typing import Mapping, Optional, Tuple

from domain.errors import DocumentValidationError
from domain.documents.document_type import DocumentType


def get_extension(filename: str) -> str:
    """Return the lower-cased final extension of a filename ('' when absent)

    Example:
        >>> get_extension('Policy.PDF')
        '.pdf'
        >>> get_extension('policy.pdf.exe')
        '.exe'
    """
    return os.path.splitext(filename or "")[1].lower()


def validate_filename(filename: str) -> Tuple[bool, Optional[str]]:
    """Validate an original filename

    Validation rules:
    - Not empty
    - Max 255 characters
    - No directory separators, and not a bare . or ..
    - No null bytes or control characters

    Example:
        >>> validate_filename('insurance.pdf')
        (True, None)
        >>> validate_filename('../../etc/passwd')
        (False, 'Filename contains path traversal or directory separators')
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > 255:
        return False, f"Filename exceeds 255 characters (got {len(filename)})"

    if '/' in filename or '\\' in filename or filename.strip() in ('.', '..'):
        return False, "Filename contains path traversal or directory separators"

    if '\x00' in filename:
        return False, "Filename contains null bytes"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    return True, None


def validate_file_size(size_bytes: int, max_size: int) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Example:
        >>> validate_file_size(1024, 2048)
        (True, None)
        >>> validate_file_size(0, 2048)
        (False, 'File is empty (0 bytes)')
    """
    if size_bytes == 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def validate_content_type(
    filename: str,
    content_type: str,
    extension_map: Mapping[str, str],
) -> Tuple[bool, Optional[str]]:
    """Check the declared MIME type against the extension-implied one

    Args:
        filename: Original filename supplied by the client
        content_type: MIME type declared by the client
        extension_map: Allow-list mapping extension -> MIME type

    Example:
        >>> validate_content_type('policy.pdf', 'application/pdf', {'.pdf': 'application/pdf'})
        (True, None)
        >>> validate_content_type('policy.pdf.exe', 'application/pdf', {'.pdf': 'application/pdf'})
        (False, 'File extension does not match its content type')
    """
    allowed_mimes = set(extension_map.values())
    if content_type not in allowed_mimes:
        return False, f"Unsupported content type: {content_type or 'unknown'}"

    expected = extension_map.get(get_extension(filename))
    if expected is None or expected != content_type:
        return False, "File extension does not match its content type"

    return True, None


def parse_document_type(value) -> DocumentType:
    """Coerce a raw value into a DocumentType or raise DocumentValidationError."""
    if isinstance(value, DocumentType):
        return value
    try:
        return DocumentType(value)
    except ValueError:
        raise DocumentValidationError(f"Invalid document type: {value}", field="document_type")


def validate_upload(
    *,
    filename: str,
    content_type: str,
    size_bytes: int,
    max_size: int,
    extension_map: Mapping[str, str],
) -> None:
    """Run every upload check, raising DocumentValidationError on the first failure."""
    is_valid, error = validate_filename(filename)
    if not is_valid:
        raise DocumentValidationError(error, field="filename")

    is_valid, error = validate_content_type(filename, content_type, extension_map)
    if not is_valid:
        raise DocumentValidationError(error, field="content_type")

    is_valid, error = validate_file_size(size_bytes, max_size)
    if not is_valid:
        raise DocumentValidationError(error, field="file")


def validate_expiry_date(expiry_date: Optional[datetime], uploaded_at: datetime) -> None:
    """Declared expiry, when present, must fall strictly after the upload time."""
    if expiry_date is None:
        return
    if expiry_date.tzinfo is None:
        raise DocumentValidationError("Expiry date must include a timezone", field="expiry_date")
    if expiry_date <= uploaded_at:
        raise DocumentValidationError("Expiry date must be in the future", field="expiry_date")
