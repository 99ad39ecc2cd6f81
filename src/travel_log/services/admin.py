"""Admin service for storage maintenance."""

import logging
from dataclasses import dataclass

from travel_log.domain.errors import CodecError, StorageError
from travel_log.services.images import JPEG_MIME_TYPE, ImageCodec
from travel_log.services.locations import LocationRepository

_logger = logging.getLogger(__name__)


@dataclass
class AdminService:
    """Reports storage statistics and repairs stored images in bulk."""

    repository: LocationRepository
    codec: ImageCodec

    def stats(self) -> dict[str, object]:
        """Return location and thumbnail counts."""
        return {
            "locationCount": self.repository.count(),
            "missingThumbnails": len(self.repository.list_missing_thumbnails()),
        }

    def generate_missing_thumbnails(self) -> int:
        """Create thumbnails for every location stored without one."""
        generated = 0
        for location_id in self.repository.list_missing_thumbnails():
            try:
                image = self.repository.get_image(location_id)
                if image is None:
                    continue
                thumbnail = self.codec.make_thumbnail(image.data)
                self.repository.save_thumbnail(location_id, thumbnail)
            except (CodecError, StorageError):
                _logger.exception(
                    "Thumbnail generation failed", extra={"location_id": location_id}
                )
                continue
            generated += 1
        _logger.info("Generated %s missing thumbnails", generated)
        return generated

    def optimize_images(self) -> int:
        """Re-compress stored images, keeping a new copy only when it is smaller."""
        optimized = 0
        for location in self.repository.list_locations():
            if not location.has_image:
                continue
            try:
                image = self.repository.get_image(location.id)
                if image is None:
                    continue
                compressed = self.codec.compress(image.data)
                if len(compressed) >= len(image.data):
                    continue
                self.repository.replace_image(location.id, compressed, JPEG_MIME_TYPE)
            except (CodecError, StorageError):
                _logger.exception(
                    "Image optimization failed", extra={"location_id": location.id}
                )
                continue
            optimized += 1
        _logger.info("Optimized %s stored images", optimized)
        return optimized
