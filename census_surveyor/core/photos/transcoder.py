"""
Image quality reduction before storage.

Phone cameras produce multi-megabyte photos; the admin panel only ever shows
them as avatars. Larger files get a lower quality setting. Small files and
GIFs (which may be animated) are stored as uploaded.

Pillow does the decoding, so input is treated as untrusted: the pixel count
is checked before any pixel data is loaded, and oversized images are scaled
down to fit an 8000x8000 box. PNG and other formats without a quality
setting are only re-saved with optimization.
"""

import io
import logging
from dataclasses import dataclass
from typing import Optional

from PIL import Image, ImageOps, UnidentifiedImageError

from ..errors import TranscodeError

logger = logging.getLogger(__name__)

# (minimum declared size in bytes, JPEG/WEBP quality to keep), largest first
QUALITY_TIERS: tuple[tuple[int, int], ...] = (
    (3_000_000, 40),
    (2_000_000, 45),
    (1_000_000, 50),
    (200_000, 75),
)

MAX_DIMENSION = 8000
MAX_PIXELS = 500_000_000

PIXEL_LIMIT_HINT = "Try to resize the image or reduce its quality before upload"

# Formats whose encoder understands the `quality` option
_QUALITY_FORMATS = {"JPEG", "WEBP"}


def select_quality(size_bytes: int) -> Optional[int]:
    """Return the quality to keep for a file of this size, or None to skip."""
    for threshold, quality in QUALITY_TIERS:
        if size_bytes >= threshold:
            return quality
    return None


@dataclass
class TranscodeResult:
    """
    Output of the transcoder.

    `quality` is what the encoder was asked for; it stays None when bytes
    pass through or the format has no quality setting.
    """
    data: bytes
    transcoded: bool = False
    quality: Optional[int] = None
    width: Optional[int] = None
    height: Optional[int] = None


class PhotoTranscoder:
    """
    Re-encodes images at a size-dependent quality.

    Limits are constructor arguments so tests can exercise the guards with
    small images.
    """

    def __init__(
        self,
        max_dimension: int = MAX_DIMENSION,
        max_pixels: int = MAX_PIXELS,
    ) -> None:
        self._max_dimension = max_dimension
        self._max_pixels = max_pixels

    def transcode(
        self,
        data: bytes,
        content_type: str,
        size_bytes: Optional[int] = None,
    ) -> TranscodeResult:
        """
        Reduce image quality if the declared size calls for it.

        Args:
            data: Raw uploaded bytes
            content_type: Declared MIME type, e.g. "image/jpeg"
            size_bytes: Declared upload size; defaults to len(data)

        Raises:
            TranscodeError: the image cannot be decoded or is too large
        """
        size = len(data) if size_bytes is None else size_bytes
        quality = select_quality(size)

        if quality is None or content_type.lower() == "image/gif":
            logger.debug(
                "Skipping transcode",
                extra={"content_type": content_type, "size_bytes": size},
            )
            return TranscodeResult(data=data)

        try:
            return self._reencode(data, quality)
        except TranscodeError:
            raise
        except Image.DecompressionBombError:
            raise TranscodeError(
                f"Input image exceeds pixel limit of {self._max_pixels} pixels. {PIXEL_LIMIT_HINT}"
            )
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.error(
                "Image transcode failed",
                extra={"content_type": content_type, "error": str(e)},
            )
            raise TranscodeError(f"Could not process image: {e}")

    def _reencode(self, data: bytes, quality: int) -> TranscodeResult:
        # Pillow's own bomb guard must not be stricter than the configured limit
        if Image.MAX_IMAGE_PIXELS is not None and Image.MAX_IMAGE_PIXELS < self._max_pixels:
            Image.MAX_IMAGE_PIXELS = self._max_pixels

        with Image.open(io.BytesIO(data)) as source:
            # Multi-picture JPEGs from phones are written back as plain JPEG
            image_format = "JPEG" if source.format == "MPO" else source.format
            width, height = source.size

            if width * height > self._max_pixels:
                raise TranscodeError(
                    f"Input image exceeds pixel limit ({width}x{height}). {PIXEL_LIMIT_HINT}"
                )

            # Applies the EXIF Orientation tag and drops it from the result
            image = ImageOps.exif_transpose(source)

            if image.width > self._max_dimension or image.height > self._max_dimension:
                image.thumbnail((self._max_dimension, self._max_dimension))

            save_options: dict = {"optimize": True}
            applied_quality = quality if image_format in _QUALITY_FORMATS else None
            if applied_quality is not None:
                save_options["quality"] = applied_quality
            if image_format == "JPEG" and image.mode not in ("RGB", "L", "CMYK"):
                image = image.convert("RGB")

            output = io.BytesIO()
            image.save(output, format=image_format, **save_options)

        logger.info(
            "Transcoded image",
            extra={
                "format": image_format,
                "quality": applied_quality,
                "original_size": (width, height),
                "new_size": image.size,
                "bytes_in": len(data),
                "bytes_out": output.tell(),
            },
        )

        return TranscodeResult(
            data=output.getvalue(),
            transcoded=True,
            quality=applied_quality,
            width=image.width,
            height=image.height,
        )
