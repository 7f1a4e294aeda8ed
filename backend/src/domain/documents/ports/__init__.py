from .object_storage_port import ObjectStoragePort, StorageError

__all__ = ["ObjectStoragePort", "StorageError"]
