"""Physical object naming shared by every storage backend.

Names combine a sanitized slug of the original filename, a millisecond
timestamp and 16 random hex characters:

    {prefix}/{slug}-{epoch_ms}-{random}{ext}

The caller-supplied filename never reaches the path unsanitized, which rules
out traversal and overwrite attacks.
"""

import os
import re
import secrets
from datetime import datetime, timezone
from typing import Optional

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")
_EXT_CHARS = re.compile(r"[^a-z0-9]")


def slugify_filename(filename: str) -> str:
    """Lower-cased stem with every non-alphanumeric character replaced by '_'

    Example:
        >>> slugify_filename('../Risk Assessment (v2).pdf')
        'risk_assessment__v2_'
    """
    base = os.path.basename((filename or "").replace("\\", "/"))
    stem, _ = os.path.splitext(base)
    slug = _NON_ALNUM.sub("_", stem).lower()
    return slug[:100] or "document"


def safe_extension(filename: str) -> str:
    """Final extension restricted to [a-z0-9], with its leading dot ('' if none)"""
    _, ext = os.path.splitext(os.path.basename((filename or "").replace("\\", "/")))
    ext = _EXT_CHARS.sub("", ext.lower())
    return f".{ext[:10]}" if ext else ""


def generate_object_name(
    suggested_name: str,
    prefix: Optional[str] = None,
    now: Optional[datetime] = None,
) -> str:
    """Generate a collision-resistant physical name for an upload

    Example:
        >>> generate_object_name('Insurance.pdf', prefix='safeguarding')  # doctest: +SKIP
        'safeguarding/insurance-1760896800000-9f1c2b7a4d3e5f60.pdf'
    """
    now = now or datetime.now(timezone.utc)
    timestamp = int(now.timestamp() * 1000)
    random_part = secrets.token_hex(8)
    name = f"{slugify_filename(suggested_name)}-{timestamp}-{random_part}{safe_extension(suggested_name)}"
    if prefix:
        clean_prefix = re.sub(r"[^A-Za-z0-9/_-]", "_", prefix).strip("/")
        return f"{clean_prefix}/{name}" if clean_prefix else name
    return name
