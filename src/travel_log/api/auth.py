"""Access-code login, logout and the session dependency for protected routes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Cookie, Depends, Header, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from travel_log.domain.errors import AuthenticationError
from travel_log.services.access import SessionStore  # noqa: TC001

if TYPE_CHECKING:
    from travel_log.containers import AppContainer

SESSION_COOKIE = "sessionId"

router = APIRouter(prefix="/api", tags=["auth"])
_logger = logging.getLogger(__name__)


class LoginRequest(BaseModel):
    """Login payload carrying the shared access code."""

    model_config = ConfigDict(populate_by_name=True)

    access_code: str = Field(alias="accessCode", min_length=1)
    session_id: str | None = Field(default=None, alias="sessionId")


def get_session_store(request: Request) -> SessionStore:
    container: AppContainer = request.app.state.container
    return container.session_store


async def require_session(
    session_query: str | None = Query(default=None, alias="sessionId"),
    x_session_id: str | None = Header(default=None),
    session_cookie: str | None = Cookie(default=None, alias=SESSION_COOKIE),
    store: SessionStore = Depends(get_session_store),
) -> str:
    """Resolve the caller's session and reject anything not authenticated.

    Unknown, expired and unauthenticated sessions all fail the same way.
    """
    session_id = session_query or x_session_id or session_cookie
    if not session_id or not store.is_valid(session_id):
        raise AuthenticationError()
    return session_id


@router.post("/sessions")
async def create_session(
    store: SessionStore = Depends(get_session_store),
) -> dict[str, str]:
    """Register a new unauthenticated session."""
    return {"sessionId": store.create()}


@router.post("/login")
@router.post("/access-codes/validate")
async def login(
    payload: LoginRequest,
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> JSONResponse:
    """Authenticate a session with the shared access code.

    A session minted for this request is discarded again when the code is
    wrong, so failed logins leave nothing behind.
    """
    minted = not payload.session_id
    session_id = payload.session_id or store.create()
    if not store.authenticate(session_id, payload.access_code):
        if minted:
            store.invalidate(session_id)
        _logger.info("Access code rejected")
        raise AuthenticationError("Invalid access code")

    container: AppContainer = request.app.state.container
    response = JSONResponse({"success": True, "sessionId": session_id})
    response.set_cookie(
        SESSION_COOKIE,
        session_id,
        max_age=container.settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
    )
    return response


@router.get("/logout")
async def logout(
    session_query: str | None = Query(default=None, alias="sessionId"),
    x_session_id: str | None = Header(default=None),
    session_cookie: str | None = Cookie(default=None, alias=SESSION_COOKIE),
    store: SessionStore = Depends(get_session_store),
) -> JSONResponse:
    """Invalidate the caller's session."""
    session_id = session_query or x_session_id or session_cookie
    if session_id:
        store.invalidate(session_id)
    response = JSONResponse({"success": True})
    response.delete_cookie(SESSION_COOKIE)
    return response
