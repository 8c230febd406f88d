"""
Object storage integration for focal point photos (AWS S3).

Includes mock mode for local development without credentials.
"""

from .client import (
    DEFAULT_ENVIRONMENT_BUCKETS,
    MockStorageClient,
    S3StorageClient,
    StorageClient,
    StorageConfig,
    StorageEnvironment,
    StorageError,
    create_storage_client,
)

__all__ = [
    "DEFAULT_ENVIRONMENT_BUCKETS",
    "MockStorageClient",
    "S3StorageClient",
    "StorageClient",
    "StorageConfig",
    "StorageEnvironment",
    "StorageError",
    "create_storage_client",
]
