"""Location and image endpoints gated by an authenticated session."""

from __future__ import annotations

import base64
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, File, Form, Header, Request, UploadFile, status
from fastapi.responses import Response

from travel_log.api.auth import require_session
from travel_log.domain.errors import PayloadTooLargeError
from travel_log.domain.locations import ImageUpload, Location, LocationForm

if TYPE_CHECKING:
    from travel_log.containers import AppContainer
    from travel_log.services.locations import LocationService

router = APIRouter(
    prefix="/api/locations",
    tags=["locations"],
    dependencies=[Depends(require_session)],
)

# Primary images may be replaced or deleted at any time. Thumbnails are cached
# for a year; clients add the location's updatedAt to the URL after a replace.
IMAGE_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
    "Expires": "0",
}
THUMBNAIL_CACHE_HEADERS = {
    "Cache-Control": "private, max-age=31536000, immutable",
}

# Room for multipart boundaries and the text fields next to the file.
_MULTIPART_OVERHEAD_BYTES = 64 * 1024


def _service(request: Request) -> LocationService:
    container: AppContainer = request.app.state.container
    return container.location_service


async def enforce_upload_limit(
    request: Request, content_length: int | None = Header(default=None)
) -> None:
    """Reject oversized requests by their declared length.

    The multipart body has already been spooled when route dependencies run,
    so this only keeps oversized files from being read into memory and decoded.
    """
    limit = _service(request).max_upload_bytes
    if content_length is not None and content_length > limit + _MULTIPART_OVERHEAD_BYTES:
        raise PayloadTooLargeError(limit)


async def _read_upload(image: UploadFile | None) -> ImageUpload | None:
    if image is None:
        return None
    return ImageUpload(
        data=await image.read(),
        content_type=image.content_type,
        filename=image.filename,
    )


@router.get("")
async def list_locations(request: Request) -> list[dict[str, object]]:
    """Return location metadata, newest first."""
    return [serialize_location(item) for item in _service(request).list_locations()]


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_upload_limit)],
)
async def create_location(  # noqa: PLR0913
    request: Request,
    title: str | None = Form(default=None),
    latitude: str | None = Form(default=None),
    longitude: str | None = Form(default=None),
    description: str = Form(default=""),
    date: str = Form(default=""),
    highlight: str = Form(default=""),
    image: UploadFile | None = File(default=None),
) -> dict[str, object]:
    """Create a location from a multipart form with a mandatory photo."""
    location = await _service(request).create_location(
        LocationForm(
            title=title,
            latitude=latitude,
            longitude=longitude,
            description=description,
            date=date,
            highlight=highlight,
        ),
        await _read_upload(image),
    )
    return serialize_location(location)


@router.get("/{location_id}")
async def get_location(location_id: int, request: Request) -> dict[str, object]:
    """Return metadata for a single location."""
    return serialize_location(_service(request).get_location(location_id))


@router.put("/{location_id}", dependencies=[Depends(enforce_upload_limit)])
async def update_location(  # noqa: PLR0913
    location_id: int,
    request: Request,
    title: str | None = Form(default=None),
    latitude: str | None = Form(default=None),
    longitude: str | None = Form(default=None),
    description: str = Form(default=""),
    date: str = Form(default=""),
    highlight: str = Form(default=""),
    image: UploadFile | None = File(default=None),
) -> dict[str, object]:
    """Update a location; the photo is replaced only when a new one is sent."""
    location = await _service(request).update_location(
        location_id,
        LocationForm(
            title=title,
            latitude=latitude,
            longitude=longitude,
            description=description,
            date=date,
            highlight=highlight,
        ),
        await _read_upload(image),
    )
    return serialize_location(location)


@router.delete("/{location_id}")
async def delete_location(location_id: int, request: Request) -> dict[str, object]:
    """Delete a location and its images."""
    _service(request).delete_location(location_id)
    return {"success": True, "message": "Location deleted"}


@router.get("/{location_id}/image")
async def get_image(location_id: int, request: Request) -> Response:
    """Stream the primary image as raw bytes."""
    image = _service(request).get_image(location_id)
    return Response(
        content=image.data, media_type=image.mime_type, headers=IMAGE_CACHE_HEADERS
    )


@router.get("/{location_id}/image/base64")
async def get_image_envelope(location_id: int, request: Request) -> dict[str, object]:
    """Return the primary image wrapped in a JSON envelope."""
    image = _service(request).get_image(location_id)
    return {
        "success": True,
        "imageData": base64.b64encode(image.data).decode("ascii"),
        "imageType": image.mime_type,
    }


@router.get("/{location_id}/thumbnail")
async def get_thumbnail(location_id: int, request: Request) -> Response:
    """Stream the thumbnail with long-lived cache headers."""
    thumbnail = await _service(request).get_thumbnail(location_id)
    return Response(
        content=thumbnail.data,
        media_type=thumbnail.mime_type,
        headers=THUMBNAIL_CACHE_HEADERS,
    )


def serialize_location(location: Location) -> dict[str, object]:
    """Serialize location metadata; image payloads are never included."""
    return {
        "id": location.id,
        "title": location.title,
        "latitude": location.latitude,
        "longitude": location.longitude,
        "description": location.description,
        "date": location.date,
        "highlight": location.highlight,
        "imageType": location.image_type,
        "hasImage": location.has_image,
        "createdAt": location.created_at.isoformat(),
        "updatedAt": location.updated_at.isoformat() if location.updated_at else None,
    }
