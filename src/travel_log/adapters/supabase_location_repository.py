"""Supabase-backed location repository."""

import base64
import binascii
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
from postgrest.exceptions import APIError
from postgrest.types import CountMethod, ReturnMethod
from supabase import Client

from travel_log.domain.errors import StorageError
from travel_log.domain.locations import (
    EncodedImage,
    Location,
    LocationDraft,
    StoredImage,
)
from travel_log.services.images import JPEG_MIME_TYPE
from travel_log.services.locations import LocationRepository

_TABLE = "locations"
# Inserts the row and returns only its metadata columns.
_CREATE_FUNCTION = "create_location"
# Metadata only; image_data and thumbnail_data are never selected for lists.
_METADATA_COLUMNS = (
    "id, title, latitude, longitude, description, date, highlight, "
    "image_type, created_at, updated_at"
)


@dataclass
class SupabaseLocationRepository(LocationRepository):
    """Supabase implementation storing images as base64 text columns."""

    client: Client

    def create(self, draft: LocationDraft, image: EncodedImage) -> Location:
        """Insert a location row and return its metadata."""
        params = {
            "p_title": draft.title,
            "p_latitude": draft.latitude,
            "p_longitude": draft.longitude,
            "p_description": draft.description,
            "p_date": draft.date,
            "p_highlight": draft.highlight,
            "p_image_data": encode_payload(image.data),
            "p_image_type": image.mime_type,
            "p_thumbnail_data": (
                encode_payload(image.thumbnail) if image.thumbnail else None
            ),
        }
        response = _execute(self.client.rpc(_CREATE_FUNCTION, params), "create")
        if not response.data:
            raise StorageError("create")
        return _to_location(response.data[0])

    def update(
        self, location_id: int, draft: LocationDraft, image: EncodedImage | None
    ) -> Location | None:
        """Overwrite metadata and, when given, the image pair and thumbnail."""
        payload: dict[str, object] = {
            "title": draft.title,
            "latitude": draft.latitude,
            "longitude": draft.longitude,
            "description": draft.description,
            "date": draft.date,
            "highlight": draft.highlight,
            "updated_at": datetime.now(tz=UTC).isoformat(),
        }
        if image is not None:
            payload["image_data"] = encode_payload(image.data)
            payload["image_type"] = image.mime_type
            # A thumbnail of the old photo must not outlive it.
            payload["thumbnail_data"] = (
                encode_payload(image.thumbnail) if image.thumbnail else None
            )
        response = _execute(
            self.client.table(_TABLE)
            .update(payload, count=CountMethod.exact, returning=ReturnMethod.minimal)
            .eq("id", location_id),
            "update",
            location_id,
        )
        if not response.count:
            return None
        return self.get_by_id(location_id)

    def replace_image(self, location_id: int, data: bytes, mime_type: str) -> None:
        """Overwrite the primary image pair, leaving the thumbnail in place."""
        _execute(
            self.client.table(_TABLE)
            .update(
                {"image_data": encode_payload(data), "image_type": mime_type},
                returning=ReturnMethod.minimal,
            )
            .eq("id", location_id),
            "replace_image",
            location_id,
        )

    def get_by_id(self, location_id: int) -> Location | None:
        """Return location metadata by id."""
        response = _execute(
            self.client.table(_TABLE)
            .select(_METADATA_COLUMNS)
            .eq("id", location_id)
            .limit(1),
            "get_by_id",
            location_id,
        )
        if not response.data:
            return None
        return _to_location(response.data[0])

    def list_locations(self) -> list[Location]:
        """Return metadata for all locations, newest first."""
        response = _execute(
            self.client.table(_TABLE)
            .select(_METADATA_COLUMNS)
            .order("id", desc=True),
            "list",
        )
        return [_to_location(row) for row in response.data or []]

    def get_image(self, location_id: int) -> StoredImage | None:
        """Return the decoded primary image."""
        response = _execute(
            self.client.table(_TABLE)
            .select("image_data, image_type")
            .eq("id", location_id)
            .limit(1),
            "get_image",
            location_id,
        )
        if not response.data:
            return None
        row = response.data[0]
        if not row.get("image_data") or not row.get("image_type"):
            return None
        return StoredImage(
            data=decode_payload(row["image_data"], "get_image", location_id),
            mime_type=row["image_type"],
        )

    def get_thumbnail(self, location_id: int) -> StoredImage | None:
        """Return the decoded thumbnail, if one was stored."""
        response = _execute(
            self.client.table(_TABLE)
            .select("thumbnail_data")
            .eq("id", location_id)
            .limit(1),
            "get_thumbnail",
            location_id,
        )
        if not response.data or not response.data[0].get("thumbnail_data"):
            return None
        return StoredImage(
            data=decode_payload(
                response.data[0]["thumbnail_data"], "get_thumbnail", location_id
            ),
            mime_type=JPEG_MIME_TYPE,
        )

    def delete(self, location_id: int) -> bool:
        """Delete a location row."""
        response = _execute(
            self.client.table(_TABLE)
            .delete(count=CountMethod.exact, returning=ReturnMethod.minimal)
            .eq("id", location_id),
            "delete",
            location_id,
        )
        return bool(response.count)

    def save_thumbnail(self, location_id: int, thumbnail: bytes) -> None:
        """Store a thumbnail on an existing row."""
        _execute(
            self.client.table(_TABLE)
            .update(
                {"thumbnail_data": encode_payload(thumbnail)},
                returning=ReturnMethod.minimal,
            )
            .eq("id", location_id),
            "save_thumbnail",
            location_id,
        )

    def list_missing_thumbnails(self) -> list[int]:
        """Return ids of rows without a thumbnail."""
        response = _execute(
            self.client.table(_TABLE)
            .select("id")
            .is_("thumbnail_data", "null")
            .order("id"),
            "list_missing_thumbnails",
        )
        return [int(row["id"]) for row in response.data or []]

    def count(self) -> int:
        """Return the total number of location rows."""
        response = _execute(
            self.client.table(_TABLE).select("id", count=CountMethod.exact).limit(1),
            "count",
        )
        return response.count or 0


def encode_payload(data: bytes) -> str:
    """Encode binary image data for a text column."""
    return base64.b64encode(data).decode("ascii")


def decode_payload(
    value: str, operation: str, location_id: int | None = None
) -> bytes:
    """Decode a base64 text column back into bytes."""
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise StorageError(operation, location_id) from exc


def _execute(query, operation: str, location_id: int | None = None):  # type: ignore[no-untyped-def]
    try:
        return query.execute()
    except (APIError, httpx.HTTPError) as exc:
        raise StorageError(operation, location_id) from exc


def _to_location(row: dict[str, object]) -> Location:
    return Location(
        id=int(row["id"]),
        title=str(row["title"]),
        latitude=float(row["latitude"]),
        longitude=float(row["longitude"]),
        description=str(row.get("description") or ""),
        date=str(row.get("date") or ""),
        highlight=str(row.get("highlight") or ""),
        image_type=row.get("image_type") or None,
        created_at=_parse_timestamp(row.get("created_at")),
        updated_at=_parse_timestamp(row.get("updated_at")),
    )


def _parse_timestamp(value):  # type: ignore[no-untyped-def]
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    return value
