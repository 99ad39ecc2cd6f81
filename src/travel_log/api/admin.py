"""Admin maintenance endpoints, gated by the same session as everything else."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Request

from travel_log.api.auth import require_session

if TYPE_CHECKING:
    from travel_log.containers import AppContainer

router = APIRouter(
    prefix="/api/admin",
    tags=["admin"],
    dependencies=[Depends(require_session)],
)


@router.get("/stats")
async def admin_stats(request: Request) -> dict[str, object]:
    """Return storage statistics."""
    container: AppContainer = request.app.state.container
    return container.admin_service.stats()


@router.post("/generate-thumbnails")
async def generate_thumbnails(request: Request) -> dict[str, object]:
    """Backfill thumbnails for locations stored without one."""
    container: AppContainer = request.app.state.container
    generated = await asyncio.to_thread(
        container.admin_service.generate_missing_thumbnails
    )
    return {"success": True, "generatedCount": generated}


@router.post("/optimize-images")
async def optimize_images(request: Request) -> dict[str, object]:
    """Re-compress stored images that shrink under the current settings."""
    container: AppContainer = request.app.state.container
    optimized = await asyncio.to_thread(container.admin_service.optimize_images)
    return {"success": True, "optimizedCount": optimized}
