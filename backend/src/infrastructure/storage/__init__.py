"""Evidence storage backends."""

from .local_storage_adapter import LocalStorageAdapter
from .s3_storage_adapter import S3StorageAdapter
from .storage_config import create_storage_adapter

__all__ = ["LocalStorageAdapter", "S3StorageAdapter", "create_storage_adapter"]
