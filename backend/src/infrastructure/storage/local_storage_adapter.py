"""Local filesystem storage adapter - ObjectStoragePort on a directory tree.

Used in development and single-node deployments. Handles are paths relative
to the configured root directory; URLs are stable paths with no expiry
enforcement.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable, Optional, TypeVar

from domain.documents.ports.object_storage_port import (
    ObjectStoragePort,
    StorageError,
    StoredFile,
)
from .naming import generate_object_name

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LocalStorageAdapter(ObjectStoragePort):
    """Filesystem storage adapter.

    Example:
        storage = LocalStorageAdapter(root_dir="uploads", prefix="safeguarding")
        stored = await storage.put(b"%PDF-1.7 ...", "application/pdf", "policy.pdf")
        # stored.storage_handle == 'safeguarding/policy-1760896800000-9f1c2b7a4d3e5f60.pdf'
    """

    def __init__(
        self,
        root_dir: str,
        prefix: Optional[str] = "safeguarding",
        public_base_url: Optional[str] = None,
        timeout_seconds: float = 30.0,
    ):
        """Initialize local storage adapter.

        Args:
            root_dir: Directory that holds every stored object (created if missing)
            prefix: Sub-directory for evidence files
            public_base_url: If set, get_url returns base_url/handle instead of a path
            timeout_seconds: Bound on every filesystem operation
        """
        self.root = Path(root_dir).resolve()
        self.prefix = prefix
        self.public_base_url = public_base_url
        self.timeout_seconds = timeout_seconds
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create upload directory {self.root}: {e}")

        logger.info(f"Initialized local storage adapter: root={self.root}, prefix={prefix}")

    async def _run(self, operation: str, func: Callable[[], T]) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(f"Local storage {operation} timed out after {self.timeout_seconds}s")
            raise StorageError(f"Storage {operation} timed out")
        except StorageError:
            raise
        except OSError as e:
            logger.error(f"Local storage {operation} failed: {e}")
            raise StorageError(f"Storage {operation} failed: {e.strerror or e}")

    def _resolve(self, storage_handle: str) -> Path:
        path = (self.root / storage_handle).resolve()
        if path == self.root or not path.is_relative_to(self.root):
            raise StorageError("Invalid storage handle")
        return path

    async def put(self, data: bytes, content_type: str, suggested_name: str) -> StoredFile:
        """Write bytes to a new file under the root directory.

        The file is opened in exclusive-create mode so an existing object can
        never be overwritten.
        """
        storage_handle = generate_object_name(suggested_name, prefix=self.prefix)
        path = self._resolve(storage_handle)

        def _write() -> None:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "xb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())

        await self._run("put", _write)

        logger.info(
            f"Stored file: storage_handle={storage_handle}, "
            f"size={len(data)}, content_type={content_type}"
        )
        return StoredFile(
            storage_handle=storage_handle,
            size_bytes=len(data),
            content_type=content_type,
        )

    async def get_url(self, storage_handle: str, expires_in_seconds: int = 900) -> str:
        """Return a stable location; expires_in_seconds is not enforced locally."""
        path = self._resolve(storage_handle)
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{storage_handle}"
        return str(path)

    async def delete(self, storage_handle: str) -> bool:
        """Remove the file; a missing file is not an error."""
        path = self._resolve(storage_handle)

        def _unlink() -> bool:
            try:
                path.unlink()
                return True
            except FileNotFoundError:
                return False

        deleted = await self._run("delete", _unlink)
        if deleted:
            logger.info(f"Deleted file: storage_handle={storage_handle}")
        else:
            logger.info(f"File not found for deletion: storage_handle={storage_handle}")
        return deleted
