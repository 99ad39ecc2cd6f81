"""Domain models for travel locations and their images."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class LocationForm:
    """Raw, unvalidated form fields of an upload request."""

    title: str | None
    latitude: str | None
    longitude: str | None
    description: str = ""
    date: str = ""
    highlight: str = ""


@dataclass(frozen=True)
class LocationDraft:
    """Validated fields for a location that is about to be created."""

    title: str
    latitude: float
    longitude: float
    description: str = ""
    date: str = ""
    highlight: str = ""


@dataclass(frozen=True)
class Location:
    """Location metadata without image payloads."""

    id: int
    title: str
    latitude: float
    longitude: float
    description: str
    date: str
    highlight: str
    image_type: str | None
    created_at: datetime
    updated_at: datetime | None = None

    @property
    def has_image(self) -> bool:
        return self.image_type is not None


@dataclass(frozen=True)
class ImageUpload:
    """Uploaded file as received from the client."""

    data: bytes
    content_type: str | None
    filename: str | None


@dataclass(frozen=True)
class EncodedImage:
    """Codec output: normalized primary image and optional thumbnail."""

    data: bytes
    mime_type: str
    thumbnail: bytes | None


@dataclass(frozen=True)
class StoredImage:
    """Decoded image payload read back from storage."""

    data: bytes
    mime_type: str
