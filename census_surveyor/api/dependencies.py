"""
FastAPI dependency injection.

Dependencies provide repositories, clients, and configuration to route
handlers, so routes never build their own and tests can swap them out.

The MongoDB client is created once per process and closed by the
application lifespan. In mock modes the in-memory database and object store
are shared across requests so data persists for the life of the process.
"""

import logging
from typing import Annotated

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.photos.transcoder import PhotoTranscoder
from ..core.photos.uploader import PhotoUploadConfig, PhotoUploader
from ..infrastructure.mongo.client import MongoConfig, create_mongo_client
from ..infrastructure.mongo.repositories.households import HouseholdRepository
from ..infrastructure.storage.client import StorageClient, StorageConfig, create_storage_client

logger = logging.getLogger(__name__)

# Process-wide instances
_mongo_client = None
_mock_storage_client = None


# ---------------------------------------------------------------------------
# Client Lifecycle
# ---------------------------------------------------------------------------

def get_mongo_client(settings: Settings):
    """Return the shared MongoDB client, creating it on first use."""
    global _mongo_client

    if _mongo_client is None:
        _mongo_client = create_mongo_client(
            config=MongoConfig(
                uri=settings.mongodb_uri,
                database=settings.mongodb_database,
            ),
            mock_mode=settings.mongodb_mock_mode,
        )
    return _mongo_client


def close_clients() -> None:
    """
    Close the shared MongoDB client and drop shared mock instances.

    Called on application shutdown; tests call it to start from empty stores.
    """
    global _mongo_client, _mock_storage_client

    if _mongo_client is not None:
        _mongo_client.close()
        logger.info("Closed MongoDB client")
    _mongo_client = None
    _mock_storage_client = None


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_household_repository(
    settings: Annotated[Settings, Depends(get_settings)],
) -> HouseholdRepository:
    """
    Provide HouseholdRepository backed by the shared client.

    pymongo pools connections internally, so there is nothing to open or
    close per request.
    """
    database = get_mongo_client(settings)[settings.mongodb_database]
    return HouseholdRepository(database)


def build_storage_config(settings: Settings) -> StorageConfig:
    return StorageConfig(
        access_key_id=settings.aws_access_key_id,
        secret_access_key=settings.aws_secret_access_key,
        bucket_name=settings.s3_bucket_name,
        region=settings.aws_region,
        environment=settings.environment,
        environment_buckets=settings.environment_buckets,
        endpoint_url=settings.s3_endpoint_url,
    )


def get_storage_client(
    settings: Annotated[Settings, Depends(get_settings)],
) -> StorageClient:
    """
    Provide storage client for photo uploads.

    Returns either the S3 client or the shared mock client based on settings.
    """
    global _mock_storage_client

    config = build_storage_config(settings)

    if settings.s3_mock_mode:
        if _mock_storage_client is None:
            _mock_storage_client = create_storage_client(config=config, mock_mode=True)
            logger.info("Created shared mock storage client")
        return _mock_storage_client

    client = create_storage_client(config=config)
    logger.debug("Created S3 storage client")
    return client


def get_photo_uploader(
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[StorageClient, Depends(get_storage_client)],
) -> PhotoUploader:
    config = PhotoUploadConfig(
        upload_prefix=settings.s3_upload_path,
        max_size_bytes=settings.max_file_size_to_upload,
        reduce_quality=settings.reduce_image_quality,
    )
    return PhotoUploader(storage, config, PhotoTranscoder())


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

SettingsDep = Annotated[Settings, Depends(get_settings)]
HouseholdRepositoryDep = Annotated[HouseholdRepository, Depends(get_household_repository)]
PhotoUploaderDep = Annotated[PhotoUploader, Depends(get_photo_uploader)]
