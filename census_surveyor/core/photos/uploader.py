"""
Focal point photo upload pipeline.

validate -> (optional) transcode -> (optional) delete old -> put new

Each step runs only if the previous one succeeded, and the household record
is not touched here: the caller persists the returned reference only after
the upload went through, so a failure leaves the stored reference as it was.
"""

import asyncio
import logging
import mimetypes
import os
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from ..errors import CensusError, UploadError, ValidationError
from ..households.models import Household, StoredPhotoReference
from .transcoder import PhotoTranscoder

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1_000_000


class ObjectStore(Protocol):
    """
    What the uploader needs from object storage.

    The real implementation is S3; tests and local development use the
    in-memory client. Errors raised here are reported as UploadError.
    """

    def reference_for(self, key: str) -> StoredPhotoReference:
        """Reference to `key` in the configured bucket and region."""
        ...

    async def put_object(
        self,
        reference: StoredPhotoReference,
        data: bytes,
        content_type: str,
    ) -> dict[str, Any]:
        """Store bytes and return the raw provider response."""
        ...

    async def delete_if_superseded(
        self,
        current: Optional[StoredPhotoReference],
        new: StoredPhotoReference,
    ) -> bool:
        """Delete `current` if `new` overwrites it in this environment."""
        ...


@dataclass
class PhotoUploadConfig:
    upload_prefix: str = "focal-point-photos"
    max_size_bytes: int = 5_000_000
    reduce_quality: bool = True

    @property
    def max_size_mb(self) -> float:
        return self.max_size_bytes / BYTES_PER_MB


@dataclass
class PhotoFile:
    """An uploaded file as received from the multipart form."""
    data: bytes
    content_type: str
    filename: str = ""
    size_bytes: Optional[int] = None

    @property
    def size(self) -> int:
        return len(self.data) if self.size_bytes is None else self.size_bytes


@dataclass
class PhotoUploadResult:
    filename: str
    reference: StoredPhotoReference
    provider_response: dict[str, Any]
    transcoded: bool = False

    @property
    def url(self) -> str:
        return self.reference.url


class PhotoUploader:
    """
    Stores a household's focal point photo.

    Storage keys are derived from the household id, so every upload for
    the same household lands in the same slot and replaces the last one.
    """

    def __init__(
        self,
        store: ObjectStore,
        config: PhotoUploadConfig,
        transcoder: Optional[PhotoTranscoder] = None,
    ) -> None:
        self._store = store
        self._config = config
        self._transcoder = transcoder or PhotoTranscoder()

    def validate(self, photo: Optional[PhotoFile]) -> None:
        """Reject missing, non-image and oversized files."""
        if photo is None or not photo.data:
            raise ValidationError.for_field("file", "Please upload a file")

        if not (photo.content_type or "").lower().startswith("image/"):
            raise ValidationError.for_field("file", "Please upload an image file")

        if photo.size > self._config.max_size_bytes:
            raise ValidationError.for_field(
                "file",
                f"Please upload an image less than {self._config.max_size_mb:g}MB",
            )

    def build_filename(self, record_id: str, photo: PhotoFile) -> str:
        """photo_{record_id}{ext}, keeping the uploaded file's extension."""
        ext = os.path.splitext(photo.filename or "")[1].lower()
        if not ext:
            mime = photo.content_type.split(";", 1)[0].strip().lower()
            ext = mimetypes.guess_extension(mime) or ""
        return f"photo_{record_id}{ext}"

    def build_key(self, filename: str) -> str:
        prefix = self._config.upload_prefix.strip("/")
        return f"{prefix}/{filename}" if prefix else filename

    async def upload_focal_point_photo(
        self,
        household: Household,
        photo: Optional[PhotoFile],
    ) -> PhotoUploadResult:
        """
        Run the pipeline for one upload.

        Raises:
            ValidationError: file missing, not an image, or too large
            TranscodeError: image could not be re-encoded
            UploadError: object storage failed
        """
        self.validate(photo)

        if household.id is None:
            raise ValueError("Household must be saved before uploading a photo")

        filename = self.build_filename(household.id, photo)
        reference = self._store.reference_for(self.build_key(filename))

        data = photo.data
        transcoded = False
        if self._config.reduce_quality:
            result = await asyncio.to_thread(
                self._transcoder.transcode,
                photo.data,
                photo.content_type,
                photo.size,
            )
            data = result.data
            transcoded = result.transcoded

        try:
            await self._store.delete_if_superseded(household.focal_point.picture, reference)
            response = await self._store.put_object(reference, data, photo.content_type)
        except CensusError:
            raise
        except Exception as e:
            logger.error(
                "Photo upload to object storage failed",
                extra={
                    "household_id": household.id,
                    "key": reference.key,
                    "error": str(e),
                },
                exc_info=e,
            )
            raise UploadError("Failed to upload photo") from e

        logger.info(
            "Uploaded focal point photo",
            extra={
                "household_id": household.id,
                "key": reference.key,
                "size_bytes": len(data),
                "transcoded": transcoded,
            },
        )

        return PhotoUploadResult(
            filename=filename,
            reference=reference,
            provider_response=response,
            transcoded=transcoded,
        )
