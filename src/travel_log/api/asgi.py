"""ASGI entrypoint for the travel log API."""

from travel_log.api.app import create_app
from travel_log.containers import build_container

app = create_app(build_container())
