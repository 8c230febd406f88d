"""
Photo pipeline: quality reduction and upload orchestration.
"""

from .transcoder import PhotoTranscoder, TranscodeResult, select_quality
from .uploader import (
    ObjectStore,
    PhotoFile,
    PhotoUploadConfig,
    PhotoUploader,
    PhotoUploadResult,
)

__all__ = [
    "ObjectStore",
    "PhotoFile",
    "PhotoTranscoder",
    "PhotoUploadConfig",
    "PhotoUploader",
    "PhotoUploadResult",
    "TranscodeResult",
    "select_quality",
]
