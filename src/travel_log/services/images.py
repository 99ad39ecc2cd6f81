"""Image normalization, compression and thumbnail derivation."""

import io
import logging
from dataclasses import dataclass
from pathlib import PurePath

from PIL import Image, ImageOps, UnidentifiedImageError
from pillow_heif import register_heif_opener

from travel_log.domain.errors import CodecError
from travel_log.domain.locations import EncodedImage

_logger = logging.getLogger(__name__)

register_heif_opener()

JPEG_MIME_TYPE = "image/jpeg"

_HEIF_MIME_TYPES = {
    "image/heic",
    "image/heif",
    "image/heic-sequence",
    "image/heif-sequence",
}
_HEIF_SUFFIXES = {".heic", ".heif"}
_HEIF_BRANDS = {b"heic", b"heix", b"hevc", b"hevx", b"heim", b"heis", b"mif1", b"msf1"}

# Errors Pillow raises for unreadable, truncated or oversized input.
_DECODE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    ValueError,
    SyntaxError,
    RuntimeError,
)


@dataclass(frozen=True)
class ImageCodec:
    """Turns an uploaded photo into a capped primary JPEG and a square thumbnail."""

    max_edge: int = 800
    quality: int = 85
    thumbnail_size: int = 100
    thumbnail_quality: int = 70

    def encode(
        self, data: bytes, mime_type: str | None, filename: str | None
    ) -> EncodedImage:
        """Normalize, compress and thumbnail an uploaded image.

        Format conversion and decoding failures raise ``CodecError``.
        Compression and thumbnail failures degrade: the primary falls back to
        the normalized source bytes and the thumbnail is omitted.
        """
        if not data:
            raise CodecError("Image file is empty")
        source = self._normalize_format(data, mime_type, filename)
        source_mime_type = sniff_mime_type(source)

        try:
            primary = self.compress(source)
            primary_mime_type = JPEG_MIME_TYPE
        except CodecError:
            _logger.warning(
                "Image compression failed, storing original bytes",
                exc_info=True,
                extra={"mime_type": source_mime_type, "size": len(source)},
            )
            primary, primary_mime_type = source, source_mime_type

        try:
            thumbnail = self.make_thumbnail(primary)
        except CodecError:
            _logger.warning("Thumbnail generation failed", exc_info=True)
            thumbnail = None

        _logger.info(
            "Encoded image: %s bytes -> %s bytes (%s), thumbnail=%s",
            len(data),
            len(primary),
            primary_mime_type,
            thumbnail is not None,
        )
        return EncodedImage(
            data=primary, mime_type=primary_mime_type, thumbnail=thumbnail
        )

    def make_thumbnail(self, data: bytes) -> bytes:
        """Return a center-cropped square JPEG thumbnail."""
        size = (self.thumbnail_size, self.thumbnail_size)
        try:
            with Image.open(io.BytesIO(data)) as image:
                oriented = ImageOps.exif_transpose(image)
                cropped = ImageOps.fit(
                    oriented, size, Image.Resampling.LANCZOS, centering=(0.5, 0.5)
                )
                return _to_jpeg(cropped, self.thumbnail_quality)
        except _DECODE_ERRORS as exc:
            raise CodecError("Could not create thumbnail") from exc

    def compress(self, data: bytes) -> bytes:
        """Re-encode as JPEG with the longest edge capped at ``max_edge``."""
        try:
            return self._compress(data)
        except _DECODE_ERRORS as exc:
            raise CodecError("Could not compress image") from exc

    def _normalize_format(
        self, data: bytes, mime_type: str | None, filename: str | None
    ) -> bytes:
        if not is_heif(data, mime_type, filename):
            return data
        try:
            with Image.open(io.BytesIO(data)) as image:
                converted = _to_jpeg(ImageOps.exif_transpose(image), self.quality)
        except _DECODE_ERRORS as exc:
            raise CodecError("Could not convert HEIC/HEIF image to JPEG") from exc
        _logger.info("Converted HEIC/HEIF upload to JPEG (%s bytes)", len(converted))
        return converted

    def _compress(self, data: bytes) -> bytes:
        with Image.open(io.BytesIO(data)) as image:
            oriented = ImageOps.exif_transpose(image)
            # thumbnail() keeps the aspect ratio and never upscales.
            oriented.thumbnail((self.max_edge, self.max_edge), Image.Resampling.LANCZOS)
            return _to_jpeg(oriented, self.quality)


def sniff_mime_type(data: bytes) -> str:
    """Decode the image and return its MIME type from the detected format."""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image.load()
            image_format = image.format
    except _DECODE_ERRORS as exc:
        raise CodecError("Unsupported or corrupt image") from exc
    mime_type = Image.MIME.get(image_format or "")
    if not mime_type or not mime_type.startswith("image/"):
        raise CodecError(f"Unsupported image format: {image_format}")
    return mime_type


def is_heif(data: bytes, mime_type: str | None, filename: str | None) -> bool:
    """Detect HEIC/HEIF input from the declared type, filename or file signature."""
    if mime_type and mime_type.lower() in _HEIF_MIME_TYPES:
        return True
    if filename and PurePath(filename).suffix.lower() in _HEIF_SUFFIXES:
        return True
    return data[4:8] == b"ftyp" and data[8:12] in _HEIF_BRANDS


def _to_jpeg(image: Image.Image, quality: int) -> bytes:
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    output = io.BytesIO()
    image.save(output, format="JPEG", quality=quality, optimize=True)
    return output.getvalue()
