"""Document lifecycle: upload, review, expiry and withdrawal of evidence."""

from .service import DocumentLifecycleService

__all__ = ["DocumentLifecycleService"]
