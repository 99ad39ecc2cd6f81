"""Location upload pipeline and image accessors."""

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Protocol

from travel_log.domain.errors import (
    CodecError,
    NotFoundError,
    PayloadTooLargeError,
    ValidationError,
)
from travel_log.domain.locations import (
    EncodedImage,
    ImageUpload,
    Location,
    LocationDraft,
    LocationForm,
    StoredImage,
)
from travel_log.services.images import JPEG_MIME_TYPE, ImageCodec

_logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 15 * 1024 * 1024


class LocationRepository(Protocol):
    """Persistence interface for locations and their image payloads."""

    def create(self, draft: LocationDraft, image: EncodedImage) -> Location:
        """Persist a location with its images and return the created record."""

    def get_by_id(self, location_id: int) -> Location | None:
        """Return location metadata by id, if present."""

    def list_locations(self) -> list[Location]:
        """Return metadata for all locations, newest first."""

    def get_image(self, location_id: int) -> StoredImage | None:
        """Return the primary image of a location, if present."""

    def get_thumbnail(self, location_id: int) -> StoredImage | None:
        """Return the thumbnail of a location, if one was stored."""

    def delete(self, location_id: int) -> bool:
        """Delete a location and return true when a row was removed."""

    def update(
        self, location_id: int, draft: LocationDraft, image: EncodedImage | None
    ) -> Location | None:
        """Overwrite metadata and, when given, the image pair and thumbnail.

        Returns ``None`` when no row matched.
        """

    def replace_image(self, location_id: int, data: bytes, mime_type: str) -> None:
        """Swap the primary image for a re-encoded copy of the same picture."""

    def save_thumbnail(self, location_id: int, thumbnail: bytes) -> None:
        """Store a thumbnail generated after creation."""

    def list_missing_thumbnails(self) -> list[int]:
        """Return ids of locations stored without a thumbnail."""

    def count(self) -> int:
        """Return the number of stored locations."""


@dataclass
class LocationService:
    """Validates uploads, runs the codec and serves stored images."""

    repository: LocationRepository
    codec: ImageCodec
    max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES

    async def create_location(
        self, form: LocationForm, upload: ImageUpload | None
    ) -> Location:
        """Validate an upload, encode its photo and persist the location."""
        self._check_size(upload)
        draft = validate_form(form)
        if upload is None or not upload.data:
            raise ValidationError("image", "A photo is required")

        encoded = await asyncio.to_thread(
            self.codec.encode, upload.data, upload.content_type, upload.filename
        )
        location = self.repository.create(draft, encoded)
        _logger.info(
            "Created location %s (%s, %s bytes)",
            location.id,
            encoded.mime_type,
            len(encoded.data),
        )
        return location

    async def update_location(
        self, location_id: int, form: LocationForm, upload: ImageUpload | None
    ) -> Location:
        """Update metadata and optionally replace the photo.

        Without a new photo the stored image pair is left as is. A new photo
        goes through the same codec as an upload and replaces the thumbnail.
        """
        self._check_size(upload)
        draft = validate_form(form)
        if self.repository.get_by_id(location_id) is None:
            raise NotFoundError("Location not found")

        encoded = None
        if upload is not None and upload.data:
            encoded = await asyncio.to_thread(
                self.codec.encode, upload.data, upload.content_type, upload.filename
            )
        location = self.repository.update(location_id, draft, encoded)
        if location is None:
            raise NotFoundError("Location not found")
        _logger.info(
            "Updated location %s (photo replaced=%s)", location_id, encoded is not None
        )
        return location

    def list_locations(self) -> list[Location]:
        return self.repository.list_locations()

    def get_location(self, location_id: int) -> Location:
        location = self.repository.get_by_id(location_id)
        if location is None:
            raise NotFoundError("Location not found")
        return location

    def delete_location(self, location_id: int) -> None:
        if not self.repository.delete(location_id):
            raise NotFoundError("Location not found")
        _logger.info("Deleted location %s", location_id)

    def get_image(self, location_id: int) -> StoredImage:
        """Return the primary image; shared by binary and envelope responses."""
        image = self.repository.get_image(location_id)
        if image is None:
            raise NotFoundError("Image not found")
        return image

    async def get_thumbnail(self, location_id: int) -> StoredImage:
        """Return the thumbnail, generating and storing it when missing."""
        thumbnail = self.repository.get_thumbnail(location_id)
        if thumbnail is not None:
            return thumbnail
        image = self.get_image(location_id)
        try:
            data = await asyncio.to_thread(self.codec.make_thumbnail, image.data)
        except CodecError as exc:
            _logger.warning(
                "Thumbnail backfill failed",
                extra={"location_id": location_id},
                exc_info=True,
            )
            raise NotFoundError("Thumbnail not available") from exc
        self.repository.save_thumbnail(location_id, data)
        _logger.info("Backfilled thumbnail for location %s", location_id)
        return StoredImage(data=data, mime_type=JPEG_MIME_TYPE)

    def _check_size(self, upload: ImageUpload | None) -> None:
        if upload is not None and len(upload.data) > self.max_upload_bytes:
            raise PayloadTooLargeError(self.max_upload_bytes)


def validate_form(form: LocationForm) -> LocationDraft:
    """Check required fields and parse coordinates."""
    title = (form.title or "").strip()
    if not title:
        raise ValidationError("title", "Title is required")
    return LocationDraft(
        title=title,
        latitude=_parse_coordinate(form.latitude, "latitude"),
        longitude=_parse_coordinate(form.longitude, "longitude"),
        description=(form.description or "").strip(),
        date=(form.date or "").strip(),
        highlight=(form.highlight or "").strip(),
    )


def _parse_coordinate(raw: str | None, field: str) -> float:
    if raw is None or not raw.strip():
        raise ValidationError(field, f"{field.capitalize()} is required")
    try:
        value = float(raw.strip())
    except ValueError:
        raise ValidationError(field, f"{field.capitalize()} must be a number") from None
    if not math.isfinite(value):
        raise ValidationError(field, f"{field.capitalize()} must be a number")
    return value
