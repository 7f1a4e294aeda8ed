"""Storage backend selection.

Exactly one backend is chosen at process startup from STORAGE_PROVIDER and
injected into the document lifecycle service.
"""

import logging

from config import Settings
from domain.documents.ports.object_storage_port import ObjectStoragePort
from .local_storage_adapter import LocalStorageAdapter
from .s3_storage_adapter import S3StorageAdapter

logger = logging.getLogger(__name__)

STORAGE_PROVIDERS = ("local", "s3")


def validate_storage_settings(settings: Settings) -> None:
    """Validate storage settings.

    Raises:
        ValueError: If configuration is invalid
    """
    provider = settings.STORAGE_PROVIDER.lower()
    if provider not in STORAGE_PROVIDERS:
        raise ValueError(
            f"Invalid STORAGE_PROVIDER: {settings.STORAGE_PROVIDER}. "
            f"Must be one of: {', '.join(STORAGE_PROVIDERS)}"
        )

    if settings.STORAGE_TIMEOUT_SECONDS <= 0:
        raise ValueError("STORAGE_TIMEOUT_SECONDS must be positive")

    if provider == "local":
        if not settings.UPLOAD_DIR:
            raise ValueError("UPLOAD_DIR is required for the local storage provider")
        return

    if not settings.S3_ACCESS_KEY_ID or not settings.S3_SECRET_ACCESS_KEY:
        raise ValueError("S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY are required")
    if not settings.S3_BUCKET_NAME:
        raise ValueError("S3_BUCKET_NAME is required")
    if settings.S3_ENDPOINT_URL and not settings.S3_ENDPOINT_URL.startswith(("http://", "https://")):
        raise ValueError(
            f"Invalid S3_ENDPOINT_URL: {settings.S3_ENDPOINT_URL}. "
            "Must start with http:// or https://"
        )


def create_storage_adapter(settings: Settings) -> ObjectStoragePort:
    """Build the configured storage backend.

    The S3 bucket is checked once here so a misconfigured deployment fails at
    startup rather than on the first upload.

    Raises:
        ValueError: If configuration is invalid
        StorageError: If the S3 bucket does not exist or is unreachable
    """
    validate_storage_settings(settings)
    provider = settings.STORAGE_PROVIDER.lower()

    if provider == "s3":
        s3_adapter = S3StorageAdapter(
            endpoint_url=settings.S3_ENDPOINT_URL or None,
            access_key=settings.S3_ACCESS_KEY_ID,
            secret_key=settings.S3_SECRET_ACCESS_KEY,
            bucket_name=settings.S3_BUCKET_NAME,
            region=settings.S3_REGION,
            prefix=settings.STORAGE_PREFIX,
            timeout_seconds=settings.STORAGE_TIMEOUT_SECONDS,
        )
        s3_adapter.ensure_bucket_exists()
        adapter: ObjectStoragePort = s3_adapter
    else:
        adapter = LocalStorageAdapter(
            root_dir=settings.UPLOAD_DIR,
            prefix=settings.STORAGE_PREFIX,
            public_base_url=settings.LOCAL_PUBLIC_BASE_URL,
            timeout_seconds=settings.STORAGE_TIMEOUT_SECONDS,
        )

    logger.info(f"Storage provider selected: {provider}")
    return adapter
