"""
Unit tests for photo quality reduction.

Images are generated in memory with Pillow. The quality tier comes from the
declared upload size, so tests declare a size rather than building
multi-megabyte files.
"""

import io

import pytest
from PIL import Image

from census_surveyor.core.errors import TranscodeError
from census_surveyor.core.photos.transcoder import MAX_PIXELS, PhotoTranscoder, select_quality

ORIENTATION_TAG = 0x0112


def make_image(fmt: str = "JPEG", size=(64, 32), color=(200, 30, 30), exif=None) -> bytes:
    mode = "P" if fmt == "GIF" else "RGB"
    image = Image.new("RGB", size, color)
    if mode == "P":
        image = image.convert("P")
    buffer = io.BytesIO()
    options = {}
    if exif is not None:
        options["exif"] = exif.tobytes()
    image.save(buffer, format=fmt, **options)
    return buffer.getvalue()


def open_image(data: bytes) -> Image.Image:
    image = Image.open(io.BytesIO(data))
    image.load()
    return image


@pytest.fixture
def saved_options(monkeypatch):
    """Record the keyword options of every Image.save call."""
    calls = []
    original_save = Image.Image.save

    def recording_save(self, fp, format=None, **params):
        calls.append(params)
        return original_save(self, fp, format=format, **params)

    monkeypatch.setattr(Image.Image, "save", recording_save)
    return calls


# ---------------------------------------------------------------------------
# Quality tiers
# ---------------------------------------------------------------------------

class TestSelectQuality:

    @pytest.mark.parametrize("size, expected", [
        (0, None),
        (199_999, None),
        (200_000, 75),
        (999_999, 75),
        (1_000_000, 50),
        (1_999_999, 50),
        (2_000_000, 45),
        (3_000_000, 40),
        (12_000_000, 40),
    ])
    def test_tiers(self, size, expected):
        assert select_quality(size) == expected

    def test_quality_never_increases_with_size(self):
        sizes = range(0, 5_000_001, 50_000)
        qualities = [select_quality(s) or 100 for s in sizes]
        assert qualities == sorted(qualities, reverse=True)


# ---------------------------------------------------------------------------
# Transcoding
# ---------------------------------------------------------------------------

class TestPhotoTranscoder:

    def test_small_file_passes_through_unchanged(self):
        data = make_image()

        result = PhotoTranscoder().transcode(data, "image/jpeg")

        assert result.data == data
        assert not result.transcoded

    def test_gif_is_never_transcoded(self):
        data = make_image("GIF")

        result = PhotoTranscoder().transcode(data, "image/gif", size_bytes=4_000_000)

        assert result.data == data
        assert result.quality is None

    def test_large_jpeg_is_reencoded_at_tier_quality(self):
        data = make_image("JPEG", size=(120, 80))

        result = PhotoTranscoder().transcode(data, "image/jpeg", size_bytes=2_500_000)

        assert result.transcoded
        assert result.quality == 45
        image = open_image(result.data)
        assert image.format == "JPEG"
        assert image.size == (120, 80)

    @pytest.mark.parametrize("size_bytes, expected", [
        (3_000_000, 40),
        (300_000, 75),
    ])
    def test_encoder_receives_tier_quality(self, saved_options, size_bytes, expected):
        data = make_image("JPEG", size=(120, 80))

        result = PhotoTranscoder().transcode(data, "image/jpeg", size_bytes=size_bytes)

        assert saved_options[-1]["quality"] == expected
        assert result.quality == expected

    def test_png_stays_png(self, saved_options):
        data = make_image("PNG")

        result = PhotoTranscoder().transcode(data, "image/png", size_bytes=500_000)

        assert result.transcoded
        assert result.quality is None
        assert "quality" not in saved_options[-1]
        assert open_image(result.data).format == "PNG"

    def test_oversized_image_is_scaled_to_fit(self):
        data = make_image("JPEG", size=(300, 150))

        result = PhotoTranscoder(max_dimension=100).transcode(
            data, "image/jpeg", size_bytes=1_500_000
        )

        assert open_image(result.data).size == (100, 50)
        assert (result.width, result.height) == (100, 50)

    def test_image_within_limits_keeps_dimensions(self):
        data = make_image("JPEG", size=(90, 60))

        result = PhotoTranscoder(max_dimension=100).transcode(
            data, "image/jpeg", size_bytes=1_500_000
        )

        assert open_image(result.data).size == (90, 60)

    def test_exif_orientation_is_applied_and_dropped(self):
        exif = Image.Exif()
        exif[ORIENTATION_TAG] = 6  # rotate 90 degrees clockwise
        data = make_image("JPEG", size=(40, 20), exif=exif)

        result = PhotoTranscoder().transcode(data, "image/jpeg", size_bytes=300_000)

        image = open_image(result.data)
        assert image.size == (20, 40)
        assert image.getexif().get(ORIENTATION_TAG) is None

    def test_pixel_limit_rejects_with_hint(self):
        data = make_image("JPEG", size=(20, 20))

        with pytest.raises(TranscodeError, match="pixel limit") as exc_info:
            PhotoTranscoder(max_pixels=100).transcode(data, "image/jpeg", size_bytes=300_000)

        assert "resize the image" in exc_info.value.message

    def test_pillow_limit_is_raised_to_configured_limit(self, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1_000)
        data = make_image("PNG", size=(200, 200))

        result = PhotoTranscoder(max_pixels=100_000).transcode(
            data, "image/png", size_bytes=1_500_000
        )

        assert (result.width, result.height) == (200, 200)
        assert Image.MAX_IMAGE_PIXELS == 100_000

    def test_default_limit_overrides_pillow_default(self, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 89_478_485)

        PhotoTranscoder().transcode(make_image(), "image/jpeg", size_bytes=300_000)

        assert Image.MAX_IMAGE_PIXELS == MAX_PIXELS

    def test_far_oversized_image_reports_configured_limit(self, monkeypatch):
        monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 1_000)
        data = make_image("PNG", size=(200, 200))

        with pytest.raises(TranscodeError, match="pixel limit of 10000 pixels") as exc_info:
            PhotoTranscoder(max_pixels=10_000).transcode(data, "image/png", size_bytes=300_000)

        assert ".." not in exc_info.value.message
        assert "resize the image" in exc_info.value.message

    def test_undecodable_bytes_raise_transcode_error(self):
        with pytest.raises(TranscodeError, match="Could not process image"):
            PhotoTranscoder().transcode(b"definitely not an image", "image/jpeg", size_bytes=300_000)

    def test_declared_size_defaults_to_byte_length(self):
        data = make_image()
        assert len(data) < 200_000

        result = PhotoTranscoder().transcode(data, "image/jpeg", size_bytes=None)

        assert not result.transcoded
