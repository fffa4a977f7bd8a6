"""FastAPI dependencies for injection."""
from fastapi import Depends, HTTPException, Request

from core.client import ServiceClient
from core.config import Settings
from core.session import SessionStore
from schemas.auth import AuthState, Identity


def get_client(request: Request) -> ServiceClient:
    """The service client chosen at start-up."""
    return request.app.state.client


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


async def get_auth_state(
    request: Request,
    client: ServiceClient = Depends(get_client),
    store: SessionStore = Depends(get_session_store),
) -> AuthState:
    """
    Auth state for the request.

    Reuses what the authorization gate already resolved; only paths the gate
    skips fall back to asking the provider here.
    """
    auth = getattr(request.state, "auth", None)
    if auth is None:
        auth = await client.auth.get_user(store.read(request.cookies))
        request.state.auth = auth
    return auth


async def get_current_identity(auth: AuthState = Depends(get_auth_state)) -> Identity:
    """Signed-in identity, or 401."""
    if auth.identity is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return auth.identity


def request_origin(request: Request, settings: Settings) -> str:
    """Public origin of the app: SITE_URL when set, otherwise the request's own."""
    if settings.site_url:
        return settings.site_url.rstrip("/")
    return str(request.base_url).rstrip("/")


__all__ = [
    "get_app_settings",
    "get_auth_state",
    "get_client",
    "get_current_identity",
    "get_session_store",
    "request_origin",
]
