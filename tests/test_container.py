"""Tests for container wiring."""

import pytest

from travel_log.adapters.supabase_session_store import SupabaseSessionStore
from travel_log.config import Settings, parse_cors_origins
from travel_log.containers import build_container
from travel_log.services.access import InMemorySessionStore


def test_build_container_creates_services(settings: Settings) -> None:
    container = build_container(settings)

    assert isinstance(container.session_store, InMemorySessionStore)
    assert container.location_service.max_upload_bytes == settings.max_upload_bytes
    assert container.location_service.codec.max_edge == 800
    assert container.admin_service.repository is container.location_service.repository


def test_build_container_selects_supabase_sessions(settings: Settings) -> None:
    container = build_container(settings.model_copy(update={"session_backend": "supabase"}))

    assert isinstance(container.session_store, SupabaseSessionStore)
    assert container.session_store.ttl_seconds == settings.session_ttl_seconds


def test_build_container_rejects_unknown_session_backend(settings: Settings) -> None:
    with pytest.raises(ValueError, match="redis"):
        build_container(settings.model_copy(update={"session_backend": "redis"}))


def test_settings_require_access_code(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("ACCESS_CODE", raising=False)

    with pytest.raises(ValueError):
        Settings(
            _env_file=None,
            supabase_url="https://example.supabase.co",
            supabase_service_key="header.payload.signature",
        )


def test_parse_cors_origins() -> None:
    assert parse_cors_origins(None) == []
    assert parse_cors_origins(" https://a.example, ,https://b.example ") == [
        "https://a.example",
        "https://b.example",
    ]
