"""S3 Storage Adapter - Implementation of ObjectStoragePort using boto3.

Provides S3-compatible storage operations for AWS S3, MinIO, and other
S3-compatible services. Objects are written under a generated key and read
back through short-lived presigned URLs.

Architecture: Hexagonal - Adapter implementation in infrastructure layer
"""

import asyncio
import logging
from typing import Callable, Optional, TypeVar

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError

from domain.documents.ports.object_storage_port import (
    ObjectStoragePort,
    StorageError,
    StoredFile,
)
from .naming import generate_object_name

logger = logging.getLogger(__name__)

T = TypeVar("T")


class S3StorageAdapter(ObjectStoragePort):
    """S3-compatible storage adapter using boto3.

    Features:
    - Collision-free keys: {prefix}/{slug}-{epoch_ms}-{random}.{ext}
    - Presigned GET URLs for downloads
    - Idempotent deletes
    - Every call bounded by timeout_seconds

    Example:
        storage = S3StorageAdapter(
            endpoint_url="http://localhost:9000",
            access_key="minioadmin",
            secret_key="minioadmin",
            bucket_name="safeguarding-documents",
        )
        stored = await storage.put(data, "application/pdf", "insurance.pdf")
        url = await storage.get_url(stored.storage_handle, expires_in_seconds=900)
    """

    def __init__(
        self,
        endpoint_url: Optional[str],
        access_key: str,
        secret_key: str,
        bucket_name: str,
        region: str = "us-east-1",
        prefix: Optional[str] = "safeguarding",
        timeout_seconds: float = 30.0,
    ):
        """Initialize S3 storage adapter.

        Args:
            endpoint_url: S3 endpoint URL (None for AWS S3, URL for MinIO)
            access_key: S3 access key ID
            secret_key: S3 secret access key
            bucket_name: S3 bucket name
            region: AWS region (default: 'us-east-1')
            prefix: Key prefix for evidence files
            timeout_seconds: Bound on every storage call

        Raises:
            StorageError: If S3 client initialization fails
        """
        self.timeout_seconds = timeout_seconds
        try:
            self.s3_client = boto3.client(
                "s3",
                endpoint_url=endpoint_url,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=region,
                config=Config(
                    connect_timeout=timeout_seconds,
                    read_timeout=timeout_seconds,
                    retries={"max_attempts": 2},
                    signature_version="s3v4",
                ),
            )
            self.bucket_name = bucket_name
            self.region = region
            self.prefix = prefix

            logger.info(
                f"Initialized S3 storage adapter: bucket={bucket_name}, "
                f"endpoint={endpoint_url or 'AWS S3'}, region={region}"
            )
        except NoCredentialsError as e:
            raise StorageError(f"Invalid S3 credentials: {e}")
        except Exception as e:
            raise StorageError(f"Failed to initialize S3 client: {e}")

    async def _run(self, operation: str, storage_key: str, func: Callable[[], T]) -> T:
        try:
            return await asyncio.wait_for(asyncio.to_thread(func), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.error(
                f"S3 {operation} timed out: storage_key={storage_key}, "
                f"timeout={self.timeout_seconds}s"
            )
            raise StorageError(f"Storage {operation} timed out")
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            logger.error(
                f"S3 {operation} failed: storage_key={storage_key}, "
                f"error={error_code}, message={e}"
            )
            raise StorageError(f"Failed to {operation} file: {error_code}")
        except BotoCoreError as e:
            logger.error(f"S3 {operation} failed: storage_key={storage_key}, error={e}")
            raise StorageError(f"Failed to {operation} file: {e}")

    async def put(self, data: bytes, content_type: str, suggested_name: str) -> StoredFile:
        """Upload bytes under a freshly generated key.

        Raises:
            StorageError: If upload fails or times out
        """
        storage_key = generate_object_name(suggested_name, prefix=self.prefix)

        await self._run(
            "upload",
            storage_key,
            lambda: self.s3_client.put_object(
                Bucket=self.bucket_name,
                Key=storage_key,
                Body=data,
                ContentType=content_type,
            ),
        )

        logger.info(
            f"Uploaded file: storage_key={storage_key}, "
            f"size={len(data)}, content_type={content_type}"
        )
        return StoredFile(
            storage_handle=storage_key,
            size_bytes=len(data),
            content_type=content_type,
        )

    async def get_url(self, storage_handle: str, expires_in_seconds: int = 900) -> str:
        """Generate a presigned GET URL valid for expires_in_seconds."""
        url = await self._run(
            "sign",
            storage_handle,
            lambda: self.s3_client.generate_presigned_url(
                "get_object",
                Params={"Bucket": self.bucket_name, "Key": storage_handle},
                ExpiresIn=expires_in_seconds,
            ),
        )

        logger.info(
            f"Generated presigned URL: storage_key={storage_handle}, "
            f"expires_in={expires_in_seconds}s"
        )
        return url

    async def delete(self, storage_handle: str) -> bool:
        """Delete an object; returns False if it did not exist.

        Raises:
            StorageError: If deletion fails
        """
        exists = await self._run("check", storage_handle, lambda: self._head(storage_handle))
        if not exists:
            logger.info(f"File not found for deletion: storage_key={storage_handle}")
            return False

        await self._run(
            "delete",
            storage_handle,
            lambda: self.s3_client.delete_object(Bucket=self.bucket_name, Key=storage_handle),
        )

        logger.info(f"Deleted file: storage_key={storage_handle}")
        return True

    def _head(self, storage_key: str) -> bool:
        try:
            self.s3_client.head_object(Bucket=self.bucket_name, Key=storage_key)
            return True
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code in ("404", "NoSuchKey", "NotFound"):
                return False
            raise

    def ensure_bucket_exists(self) -> None:
        """Verify that the configured bucket exists and is reachable.

        Raises:
            StorageError: If bucket doesn't exist or is not accessible
        """
        try:
            self.s3_client.head_bucket(Bucket=self.bucket_name)
            logger.info(f"Bucket verified: {self.bucket_name}")
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            if error_code == "404":
                raise StorageError(
                    f"Bucket does not exist: {self.bucket_name}. "
                    "Create it first or update S3_BUCKET_NAME."
                )
            raise StorageError(f"Failed to verify bucket: {error_code}")
