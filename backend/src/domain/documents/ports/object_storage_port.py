"""Object Storage Port - Domain interface for evidence storage backends.

This port defines the minimal contract for persisting uploaded evidence:
put, get_url and delete. Adapters provide a local filesystem backend and an
S3-compatible backend; one of them is chosen once at process startup.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class StorageError(Exception):
    """Backing medium unavailable, timed out or refused the operation.

    Transient: the whole ingest is safe to retry because every put generates
    a fresh storage handle.
    """

    code = "STORAGE_UNAVAILABLE"


@dataclass
class StoredFile:
    """Metadata for a file written by a storage backend.

    Attributes:
        storage_handle: Opaque locator used later to sign or delete the bytes
        size_bytes: Number of bytes written
        content_type: MIME type recorded with the object
    """
    storage_handle: str
    size_bytes: int
    content_type: str


class ObjectStoragePort(ABC):
    """Port interface for evidence storage.

    Key Design Principles:
    - The physical name is generated by the backend from a random token, a
      timestamp and a sanitized slug of the original name. The caller-supplied
      filename never becomes a path.
    - Every call is bounded by a caller-visible timeout; a timeout surfaces as
      StorageError.
    - delete is idempotent.
    - No business validation lives here.

    Example Usage:
        storage = LocalStorageAdapter(root_dir="uploads")
        stored = await storage.put(data, "application/pdf", "insurance.pdf")
        url = await storage.get_url(stored.storage_handle, expires_in_seconds=900)
        await storage.delete(stored.storage_handle)
    """

    @abstractmethod
    async def put(self, data: bytes, content_type: str, suggested_name: str) -> StoredFile:
        """Durably store bytes under a freshly generated physical name.

        Args:
            data: File content
            content_type: MIME type of the content
            suggested_name: Original filename (used only for slug and extension)

        Returns:
            StoredFile: Handle and metadata of the written object

        Raises:
            StorageError: On I/O error, quota or timeout
        """
        pass

    @abstractmethod
    async def get_url(self, storage_handle: str, expires_in_seconds: int = 900) -> str:
        """Return a retrieval URL for a stored object.

        Remote backends return a time-limited signed URL. The local backend
        returns a stable path that stays valid for the process lifetime.

        Raises:
            StorageError: If URL generation fails
        """
        pass

    @abstractmethod
    async def delete(self, storage_handle: str) -> bool:
        """Delete a stored object.

        Returns:
            bool: True if the object was deleted, False if it did not exist

        Raises:
            StorageError: If deletion fails
        """
        pass
