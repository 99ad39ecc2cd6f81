"""Tests for admin statistics, thumbnail backfill and image optimization."""

import asyncio
import io

from fastapi.testclient import TestClient
from PIL import Image

from tests.conftest import (
    InMemoryLocationRepository,
    SpyImageCodec,
    image_size,
    make_image_bytes,
)
from travel_log.domain.locations import ImageUpload, LocationForm
from travel_log.services.admin import AdminService
from travel_log.services.locations import LocationService


def _seed(
    repository: InMemoryLocationRepository, codec: SpyImageCodec, count: int
) -> None:
    service = LocationService(repository=repository, codec=codec)
    for index in range(count):
        asyncio.run(
            service.create_location(
                LocationForm(title=f"Stop {index}", latitude="10", longitude="20"),
                ImageUpload(make_image_bytes(), "image/jpeg", "stop.jpg"),
            )
        )


def test_generate_missing_thumbnails_fills_gaps() -> None:
    repository = InMemoryLocationRepository()
    codec = SpyImageCodec()
    _seed(repository, codec, 3)
    repository.rows[1].thumbnail_data = None
    repository.rows[3].thumbnail_data = None
    service = AdminService(repository=repository, codec=codec)

    generated = service.generate_missing_thumbnails()

    assert generated == 2
    assert repository.list_missing_thumbnails() == []
    assert service.stats() == {"locationCount": 3, "missingThumbnails": 0}


def test_generate_missing_thumbnails_skips_undecodable_rows() -> None:
    repository = InMemoryLocationRepository()
    codec = SpyImageCodec()
    _seed(repository, codec, 2)
    repository.rows[1].thumbnail_data = None
    repository.rows[1].image_data = b"garbage"
    repository.rows[2].thumbnail_data = None
    service = AdminService(repository=repository, codec=codec)

    generated = service.generate_missing_thumbnails()

    assert generated == 1
    assert repository.list_missing_thumbnails() == [1]


def test_admin_stats_requires_session(client: TestClient) -> None:
    response = client.get("/api/admin/stats")

    assert response.status_code == 401


def test_admin_endpoints_report_and_backfill(
    client: TestClient,
    session_id: str,
    location_repository: InMemoryLocationRepository,
    codec: SpyImageCodec,
) -> None:
    _seed(location_repository, codec, 2)
    location_repository.rows[2].thumbnail_data = None

    stats = client.get("/api/admin/stats", params={"sessionId": session_id})
    backfill = client.post(
        "/api/admin/generate-thumbnails", params={"sessionId": session_id}
    )

    assert stats.json() == {"locationCount": 2, "missingThumbnails": 1}
    assert backfill.json() == {"success": True, "generatedCount": 1}
    assert location_repository.rows[2].thumbnail_data is not None


def _noise(size: tuple[int, int], image_format: str, **options: object) -> bytes:
    output = io.BytesIO()
    Image.effect_noise(size, 64).convert("RGB").save(
        output, format=image_format, **options
    )
    return output.getvalue()


def test_optimize_images_keeps_only_smaller_copies() -> None:
    repository = InMemoryLocationRepository()
    codec = SpyImageCodec()
    _seed(repository, codec, 3)
    bulky = _noise((1600, 1200), "PNG")
    already_small = _noise((200, 200), "JPEG", quality=5)
    repository.replace_image(1, bulky, "image/png")
    repository.replace_image(2, already_small, "image/jpeg")
    repository.replace_image(3, b"garbage", "image/jpeg")
    service = AdminService(repository=repository, codec=codec)

    optimized = service.optimize_images()

    assert optimized == 1
    first = repository.get_image(1)
    assert first is not None
    assert first.mime_type == "image/jpeg"
    assert len(first.data) < len(bulky)
    assert image_size(first.data) == (800, 600)
    second = repository.get_image(2)
    assert second is not None
    assert second.data == already_small
    assert repository.rows[1].location.image_type == "image/jpeg"


def test_optimize_images_endpoint(
    client: TestClient,
    session_id: str,
    location_repository: InMemoryLocationRepository,
    codec: SpyImageCodec,
) -> None:
    _seed(location_repository, codec, 1)
    location_repository.replace_image(1, _noise((1200, 900), "PNG"), "image/png")

    response = client.post(
        "/api/admin/optimize-images", params={"sessionId": session_id}
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "optimizedCount": 1}
