"""Login page and OAuth handshake endpoints."""
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from api.dependencies import (
    get_app_settings,
    get_auth_state,
    get_client,
    get_session_store,
    request_origin,
)
from api.middleware import mark_session_handled
from core.client import ServiceClient
from core.config import Settings
from core.session import SessionStore
from schemas.auth import AuthState
from services.auth_flow import AuthFlowController

router = APIRouter(tags=["auth"])

APP_NAME = "Bookmarks"


class LoginPageResponse(BaseModel):
    """What the login screen needs to render."""

    app_name: str
    sign_in_url: str
    error: str | None = None


@router.get("/login", response_model=LoginPageResponse)
async def login_page(
    error: str | None = Query(default=None, description="Error indicator from a failed sign-in"),
) -> LoginPageResponse:
    """Unauthenticated entry point; the sign-in button links to /auth/login."""
    return LoginPageResponse(app_name=APP_NAME, sign_in_url="/auth/login", error=error)


@router.get("/auth/login")
async def start_sign_in(
    request: Request,
    client: ServiceClient = Depends(get_client),
    store: SessionStore = Depends(get_session_store),
    settings: Settings = Depends(get_app_settings),
) -> RedirectResponse:
    """Send the browser to the identity provider."""
    initiation = AuthFlowController(client).initiate(request_origin(request, settings))
    response = RedirectResponse(initiation.location, status_code=307)
    if initiation.code_verifier is not None:
        store.write_verifier(response, initiation.code_verifier)
    return response


@router.get("/auth/callback")
async def auth_callback(
    request: Request,
    code: str | None = Query(default=None),
    client: ServiceClient = Depends(get_client),
    store: SessionStore = Depends(get_session_store),
) -> RedirectResponse:
    """
    Provider redirect target.

    Exchanges `code` for a session and redirects to the dashboard, or back to
    /login with `error=auth` (bad or missing code) or `error=config` (provider
    not configured).
    """
    result = await AuthFlowController(client).complete(code, store.read_verifier(request.cookies))
    response = RedirectResponse(result.location, status_code=307)
    store.clear_verifier(response)
    if result.session is not None:
        store.write(response, result.session, request.cookies)
        mark_session_handled(request)
    return response


@router.post("/auth/signout")
async def sign_out(
    request: Request,
    client: ServiceClient = Depends(get_client),
    store: SessionStore = Depends(get_session_store),
    auth: AuthState = Depends(get_auth_state),
) -> RedirectResponse:
    """Invalidate the session with the provider, then always go to /login."""
    session = auth.session or store.read(request.cookies)
    location = await AuthFlowController(client).sign_out(session)
    response = RedirectResponse(location, status_code=303)
    store.clear(response, request.cookies)
    mark_session_handled(request)
    return response
