"""FastAPI application factory."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from travel_log.api.admin import router as admin_router
from travel_log.api.auth import router as auth_router
from travel_log.api.locations import router as locations_router
from travel_log.app_logging import configure_logging
from travel_log.config import parse_cors_origins
from travel_log.containers import AppContainer
from travel_log.domain.errors import (
    CodecError,
    StorageError,
    TravelLogError,
    ValidationError,
)


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    app = FastAPI(title="Travel Log API")
    app.state.container = container

    cors_origins = parse_cors_origins(container.settings.cors_origins)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(auth_router)
    app.include_router(locations_router)
    app.include_router(admin_router)

    @app.exception_handler(TravelLogError)
    async def handle_travel_log_error(
        request: Request, exc: TravelLogError
    ) -> JSONResponse:
        """Translate service errors into JSON failure responses."""
        if isinstance(exc, StorageError):
            logger.error(
                "Storage operation failed: %s",
                exc.operation,
                exc_info=exc,
                extra={"operation": exc.operation, "location_id": exc.location_id},
            )
        elif isinstance(exc, CodecError):
            logger.warning(
                "Rejected image upload: %s",
                exc.message,
                exc_info=exc,
                extra={"path": request.url.path},
            )
        content: dict[str, object] = {"success": False, "message": exc.message}
        if isinstance(exc, ValidationError):
            content["field"] = exc.field
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Report malformed requests as plain 400s."""
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "Invalid request",
                "errors": [
                    {"loc": list(error.get("loc", ())), "msg": error.get("msg", "")}
                    for error in exc.errors()
                ],
            },
        )

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    return app
