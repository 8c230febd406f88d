"""
Object storage client for focal point photos.

Talks to AWS S3 through boto3, with an in-memory mock for local development
and tests.

Deleting is the dangerous operation here. A photo reference stored on a
household may point at another environment's bucket (a production record
copied into staging, say), so the client only deletes an object when it is
sure the object belongs to this deployment and is being overwritten by the
new upload. Anything else is left in place as an orphan.
"""

import hashlib
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ...core.households.models import StoredPhotoReference

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when storage operations fail."""
    pass


class StorageEnvironment(Enum):
    """Deployment stage a bucket belongs to."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


DEFAULT_ENVIRONMENT_BUCKETS: dict[StorageEnvironment, str] = {
    StorageEnvironment.PRODUCTION: "prod-census-surveyor-0",
    StorageEnvironment.STAGING: "staging-census-surveyor-0",
    StorageEnvironment.DEVELOPMENT: "dev-census-surveyor-0",
}


@dataclass
class StorageConfig:
    """
    Configuration for S3 storage.

    `environment_buckets` is the table of which bucket each deployment
    stage owns. Deletes only happen when `environment` maps to
    `bucket_name` in that table.
    """
    access_key_id: str
    secret_access_key: str
    bucket_name: str
    region: str
    environment: StorageEnvironment = StorageEnvironment.DEVELOPMENT
    environment_buckets: dict[StorageEnvironment, str] = field(
        default_factory=lambda: dict(DEFAULT_ENVIRONMENT_BUCKETS)
    )
    endpoint_url: Optional[str] = None

    @property
    def owns_bucket(self) -> bool:
        return self.environment_buckets.get(self.environment) == self.bucket_name


def is_superseded(
    config: StorageConfig,
    current: Optional[StoredPhotoReference],
    new: StoredPhotoReference,
) -> bool:
    """
    Decide whether `current` may be deleted before `new` is written.

    All of these must hold:
    - current lives in the configured bucket and region
    - the configured environment owns that bucket
    - new overwrites exactly the same slot
    """
    if current is None:
        return False
    if current.bucket != config.bucket_name or current.region != config.region:
        return False
    if not config.owns_bucket:
        return False
    return current == new


class StorageClient(Protocol):
    """
    Protocol for object storage operations.

    Matches core.photos.uploader.ObjectStore; the uploader only depends on
    the protocol.
    """

    def reference_for(self, key: str) -> StoredPhotoReference:
        ...

    async def put_object(
        self,
        reference: StoredPhotoReference,
        data: bytes,
        content_type: str,
    ) -> dict[str, Any]:
        ...

    async def delete_if_superseded(
        self,
        current: Optional[StoredPhotoReference],
        new: StoredPhotoReference,
    ) -> bool:
        ...


class S3StorageClient:
    """
    AWS S3 client.

    Methods are async to match the protocol even though boto3 is
    synchronous. Timeouts and retries are boto3's defaults.
    """

    def __init__(self, config: StorageConfig) -> None:
        self._config = config

        self._s3_client = boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            aws_access_key_id=config.access_key_id,
            aws_secret_access_key=config.secret_access_key,
            region_name=config.region,
            config=Config(signature_version="s3v4"),
        )

        logger.info(
            "Initialized S3 storage client",
            extra={
                "bucket": config.bucket_name,
                "region": config.region,
                "environment": config.environment.value,
            },
        )

    def reference_for(self, key: str) -> StoredPhotoReference:
        return StoredPhotoReference(
            bucket=self._config.bucket_name,
            region=self._config.region,
            key=key,
        )

    async def put_object(
        self,
        reference: StoredPhotoReference,
        data: bytes,
        content_type: str,
    ) -> dict[str, Any]:
        """Upload bytes and return the S3 PutObject response."""
        try:
            response = self._s3_client.put_object(
                Bucket=reference.bucket,
                Key=reference.key,
                Body=data,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to upload object",
                extra={"bucket": reference.bucket, "key": reference.key, "error": str(e)},
            )
            raise StorageError(f"Upload failed: {e}")

        logger.debug(
            "Uploaded object",
            extra={"key": reference.key, "size_bytes": len(data)},
        )

        return response

    async def delete_if_superseded(
        self,
        current: Optional[StoredPhotoReference],
        new: StoredPhotoReference,
    ) -> bool:
        """Delete the previous photo object if the new one replaces it."""
        if not is_superseded(self._config, current, new):
            return False

        try:
            self._s3_client.delete_object(Bucket=current.bucket, Key=current.key)
        except (BotoCoreError, ClientError) as e:
            logger.error(
                "Failed to delete superseded object",
                extra={"bucket": current.bucket, "key": current.key, "error": str(e)},
            )
            raise StorageError(f"Delete failed: {e}")

        logger.info("Deleted superseded object", extra={"key": current.key})
        return True


# ---------------------------------------------------------------------------
# Mock Storage for Local Development
# ---------------------------------------------------------------------------

class MockStorageClient:
    """
    In-memory storage for local development and tests.

    Applies the same delete rules as the S3 client, and records what it
    deleted so tests can assert on it.
    """

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        self._config = config or StorageConfig(
            access_key_id="",
            secret_access_key="",
            bucket_name=DEFAULT_ENVIRONMENT_BUCKETS[StorageEnvironment.DEVELOPMENT],
            region="us-west-2",
        )
        self.objects: dict[StoredPhotoReference, bytes] = {}
        self.deleted: list[StoredPhotoReference] = []
        logger.info("Initialized mock storage client (in-memory)")

    def reference_for(self, key: str) -> StoredPhotoReference:
        return StoredPhotoReference(
            bucket=self._config.bucket_name,
            region=self._config.region,
            key=key,
        )

    async def put_object(
        self,
        reference: StoredPhotoReference,
        data: bytes,
        content_type: str,
    ) -> dict[str, Any]:
        self.objects[reference] = data
        return {
            "ETag": f'"{hashlib.md5(data).hexdigest()}"',
            "ResponseMetadata": {"HTTPStatusCode": 200},
        }

    async def delete_if_superseded(
        self,
        current: Optional[StoredPhotoReference],
        new: StoredPhotoReference,
    ) -> bool:
        if not is_superseded(self._config, current, new):
            return False
        self.objects.pop(current, None)
        self.deleted.append(current)
        return True

    def clear(self) -> None:
        self.objects.clear()
        self.deleted.clear()


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_storage_client(
    config: Optional[StorageConfig] = None,
    mock_mode: bool = False,
) -> StorageClient:
    """
    Create storage client based on configuration.

    Args:
        config: Storage configuration (required if not mock_mode)
        mock_mode: If True, return the in-memory client

    Returns:
        StorageClient implementation (S3 or Mock)
    """
    if mock_mode:
        return MockStorageClient(config)

    if config is None:
        raise ValueError("config is required when not in mock mode")

    return S3StorageClient(config)
