"""Shared test fixtures."""

import io
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from travel_log.api.app import create_app
from travel_log.config import Settings
from travel_log.containers import AppContainer
from travel_log.domain.locations import (
    EncodedImage,
    Location,
    LocationDraft,
    StoredImage,
)
from travel_log.services.access import InMemorySessionStore
from travel_log.services.admin import AdminService
from travel_log.services.images import JPEG_MIME_TYPE, ImageCodec
from travel_log.services.locations import LocationRepository, LocationService

ACCESS_CODE = "open-sesame"


def make_image_bytes(
    size: tuple[int, int] = (64, 48),
    image_format: str = "JPEG",
    color: tuple[int, int, int] = (200, 40, 40),
) -> bytes:
    """Render a solid-color test image in memory."""
    mode = "RGBA" if image_format == "PNG" else "RGB"
    fill = (*color, 255) if mode == "RGBA" else color
    image = Image.new(mode, size, fill)
    output = io.BytesIO()
    image.save(output, format=image_format)
    return output.getvalue()


def image_size(data: bytes) -> tuple[int, int]:
    with Image.open(io.BytesIO(data)) as image:
        return image.size


@dataclass
class _StoredRow:
    location: Location
    image_data: bytes
    image_type: str
    thumbnail_data: bytes | None


@dataclass
class InMemoryLocationRepository(LocationRepository):
    """In-memory location repository for tests."""

    rows: dict[int, _StoredRow] = field(default_factory=dict)
    next_id: int = 1

    def create(self, draft: LocationDraft, image: EncodedImage) -> Location:
        location = Location(
            id=self.next_id,
            title=draft.title,
            latitude=draft.latitude,
            longitude=draft.longitude,
            description=draft.description,
            date=draft.date,
            highlight=draft.highlight,
            image_type=image.mime_type,
            created_at=datetime.now(tz=UTC),
        )
        self.next_id += 1
        self.rows[location.id] = _StoredRow(
            location=location,
            image_data=image.data,
            image_type=image.mime_type,
            thumbnail_data=image.thumbnail,
        )
        return location

    def get_by_id(self, location_id: int) -> Location | None:
        row = self.rows.get(location_id)
        return row.location if row else None

    def list_locations(self) -> list[Location]:
        return [self.rows[key].location for key in sorted(self.rows, reverse=True)]

    def get_image(self, location_id: int) -> StoredImage | None:
        row = self.rows.get(location_id)
        if row is None:
            return None
        return StoredImage(data=row.image_data, mime_type=row.image_type)

    def get_thumbnail(self, location_id: int) -> StoredImage | None:
        row = self.rows.get(location_id)
        if row is None or row.thumbnail_data is None:
            return None
        return StoredImage(data=row.thumbnail_data, mime_type=JPEG_MIME_TYPE)

    def delete(self, location_id: int) -> bool:
        return self.rows.pop(location_id, None) is not None

    def update(
        self, location_id: int, draft: LocationDraft, image: EncodedImage | None
    ) -> Location | None:
        row = self.rows.get(location_id)
        if row is None:
            return None
        row.location = replace(
            row.location,
            title=draft.title,
            latitude=draft.latitude,
            longitude=draft.longitude,
            description=draft.description,
            date=draft.date,
            highlight=draft.highlight,
            image_type=image.mime_type if image else row.location.image_type,
            updated_at=datetime.now(tz=UTC),
        )
        if image is not None:
            row.image_data = image.data
            row.image_type = image.mime_type
            row.thumbnail_data = image.thumbnail
        return row.location

    def replace_image(self, location_id: int, data: bytes, mime_type: str) -> None:
        row = self.rows[location_id]
        row.image_data = data
        row.image_type = mime_type
        row.location = replace(row.location, image_type=mime_type)

    def save_thumbnail(self, location_id: int, thumbnail: bytes) -> None:
        self.rows[location_id].thumbnail_data = thumbnail

    def list_missing_thumbnails(self) -> list[int]:
        return sorted(
            key for key, row in self.rows.items() if row.thumbnail_data is None
        )

    def count(self) -> int:
        return len(self.rows)


@dataclass(frozen=True)
class SpyImageCodec(ImageCodec):
    """Image codec that records how often it was invoked."""

    calls: list[str] = field(default_factory=list, compare=False)

    def encode(
        self, data: bytes, mime_type: str | None, filename: str | None
    ) -> EncodedImage:
        self.calls.append("encode")
        return super().encode(data, mime_type, filename)

    def make_thumbnail(self, data: bytes) -> bytes:
        self.calls.append("make_thumbnail")
        return super().make_thumbnail(data)

    def compress(self, data: bytes) -> bytes:
        self.calls.append("compress")
        return super().compress(data)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        access_code=ACCESS_CODE,
    )


@pytest.fixture
def location_repository() -> InMemoryLocationRepository:
    return InMemoryLocationRepository()


@pytest.fixture
def codec() -> SpyImageCodec:
    return SpyImageCodec()


@pytest.fixture
def session_store(settings: Settings) -> InMemorySessionStore:
    return InMemorySessionStore(access_code=settings.access_code)


@pytest.fixture
def container(
    settings: Settings,
    location_repository: InMemoryLocationRepository,
    codec: SpyImageCodec,
    session_store: InMemorySessionStore,
) -> AppContainer:
    return AppContainer(
        settings=settings,
        session_store=session_store,
        location_service=LocationService(
            repository=location_repository,
            codec=codec,
            max_upload_bytes=settings.max_upload_bytes,
        ),
        admin_service=AdminService(repository=location_repository, codec=codec),
    )


@pytest.fixture
def client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


@pytest.fixture
def session_id(session_store: InMemorySessionStore) -> str:
    """An authenticated session id."""
    created = session_store.create()
    assert session_store.authenticate(created, ACCESS_CODE)
    return created
