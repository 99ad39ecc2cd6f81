"""Dependency container wiring for the application."""

from dataclasses import dataclass

from supabase import Client, create_client

from travel_log.adapters.supabase_location_repository import (
    SupabaseLocationRepository,
)
from travel_log.adapters.supabase_session_store import SupabaseSessionStore
from travel_log.config import Settings
from travel_log.services.access import InMemorySessionStore, SessionStore
from travel_log.services.admin import AdminService
from travel_log.services.images import ImageCodec
from travel_log.services.locations import LocationService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    session_store: SessionStore
    location_service: LocationService
    admin_service: AdminService


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    codec = ImageCodec(
        max_edge=resolved_settings.image_max_edge,
        quality=resolved_settings.image_quality,
        thumbnail_size=resolved_settings.thumbnail_size,
        thumbnail_quality=resolved_settings.thumbnail_quality,
    )
    location_repository = SupabaseLocationRepository(supabase_client)
    location_service = LocationService(
        repository=location_repository,
        codec=codec,
        max_upload_bytes=resolved_settings.max_upload_bytes,
    )
    admin_service = AdminService(repository=location_repository, codec=codec)

    return AppContainer(
        settings=resolved_settings,
        session_store=build_session_store(resolved_settings, supabase_client),
        location_service=location_service,
        admin_service=admin_service,
    )


def build_session_store(settings: Settings, client: Client) -> SessionStore:
    """Select the session backend configured for this deployment."""
    if settings.session_backend == "supabase":
        return SupabaseSessionStore(
            client=client,
            access_code=settings.access_code,
            ttl_seconds=settings.session_ttl_seconds,
        )
    if settings.session_backend == "memory":
        return InMemorySessionStore(
            access_code=settings.access_code,
            ttl_seconds=settings.session_ttl_seconds,
        )
    raise ValueError(f"Unknown session backend: {settings.session_backend}")
