"""
Application configuration using Pydantic settings.

Configuration is loaded from environment variables (or a .env file) with
defaults suitable for local development. Mock modes replace MongoDB and S3
with in-memory implementations so the API runs without either.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..infrastructure.storage.client import DEFAULT_ENVIRONMENT_BUCKETS, StorageEnvironment


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For lists (like cors_origins), use comma-separated values in env.
    """

    # API Configuration
    api_title: str = "Census Surveyor API"
    api_version: str = "v1"
    environment: StorageEnvironment = Field(
        default=StorageEnvironment.DEVELOPMENT,
        description="Deployment stage: development, staging or production"
    )

    # MongoDB Configuration
    mongodb_uri: str = Field(
        default="mongodb://localhost:27017/census-surveyor",
        description="MongoDB connection string"
    )
    mongodb_database: str = Field(
        default="census-surveyor",
        description="Database holding the households collection"
    )
    mongodb_mock_mode: bool = Field(
        default=False,
        description="Use an in-memory database instead of MongoDB. Data is lost on restart."
    )

    # S3 Storage Configuration
    aws_access_key_id: str = Field(
        default="",
        description="AWS access key ID"
    )
    aws_secret_access_key: str = Field(
        default="",
        description="AWS secret access key"
    )
    aws_region: str = Field(
        default="us-west-2",
        description="Region of the photo bucket"
    )
    s3_bucket_name: str = Field(
        default=DEFAULT_ENVIRONMENT_BUCKETS[StorageEnvironment.DEVELOPMENT],
        description="Bucket focal point photos are written to"
    )
    s3_endpoint_url: Optional[str] = Field(
        default=None,
        description="Custom S3 endpoint (e.g. a local S3-compatible server)"
    )
    s3_upload_path: str = Field(
        default="focal-point-photos",
        description="Key prefix for uploaded photos"
    )
    s3_mock_mode: bool = Field(
        default=False,
        description="Use in-memory object storage instead of S3."
    )

    # Bucket owned by each deployment stage. Old photos are only deleted
    # when `environment` owns `s3_bucket_name`.
    s3_bucket_production: str = DEFAULT_ENVIRONMENT_BUCKETS[StorageEnvironment.PRODUCTION]
    s3_bucket_staging: str = DEFAULT_ENVIRONMENT_BUCKETS[StorageEnvironment.STAGING]
    s3_bucket_development: str = DEFAULT_ENVIRONMENT_BUCKETS[StorageEnvironment.DEVELOPMENT]

    # Uploads
    max_file_size_to_upload: int = Field(
        default=5_000_000,
        description="Maximum photo size in bytes"
    )
    reduce_image_quality: bool = Field(
        default=True,
        description="Re-encode large photos at reduced quality before storing them"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins. Use * for development only."
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def environment_buckets(self) -> dict[StorageEnvironment, str]:
        return {
            StorageEnvironment.PRODUCTION: self.s3_bucket_production,
            StorageEnvironment.STAGING: self.s3_bucket_staging,
            StorageEnvironment.DEVELOPMENT: self.s3_bucket_development,
        }

    def validate_required_fields(self) -> list[str]:
        """
        Validate that required fields are set based on mock mode settings.

        Returns list of missing required fields.
        """
        missing = []

        if not self.mongodb_mock_mode and not self.mongodb_uri:
            missing.append("MONGODB_URI")

        if not self.s3_mock_mode:
            if not self.aws_access_key_id:
                missing.append("AWS_ACCESS_KEY_ID")
            if not self.aws_secret_access_key:
                missing.append("AWS_SECRET_ACCESS_KEY")
            if not self.s3_bucket_name:
                missing.append("S3_BUCKET_NAME")

        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    For tests, call get_settings.cache_clear() to reset.
    """
    return Settings()
