"""Authorization gate middleware."""
import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import RedirectResponse, Response

from core.client import ServiceClient
from core.gate import is_gated, redirect_target
from core.session import SessionStore
from schemas.auth import AuthState

logger = logging.getLogger(__name__)


def mark_session_handled(request: Request) -> None:
    """Tell the gate a handler already wrote or cleared the session cookies itself."""
    request.state.session_handled = True


def persist_auth_state(
    store: SessionStore, request: Request, response: Response, auth: AuthState,
) -> None:
    """Write refreshed session cookies, or clear them if the session was rejected."""
    if not auth.session_changed or getattr(request.state, "session_handled", False):
        return
    if auth.session is None:
        store.clear(response, request.cookies)
    else:
        store.write(response, auth.session, request.cookies)


class AuthorizationGate(BaseHTTPMiddleware):
    """
    Runs before every request.

    1. Resolves the user from the session cookies, refreshing expired tokens.
    2. Redirects signed-out users away from the dashboard and signed-in users
       away from the login page.
    3. Copies refreshed (or cleared) session cookies onto whatever response goes
       back, so the browser's stored session stays current.

    The resolved AuthState is left on `request.state.auth` for the handlers.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not is_gated(request.url.path):
            return await call_next(request)

        client: ServiceClient = request.app.state.client
        store: SessionStore = request.app.state.session_store

        if not client.configured:
            logger.warning(
                "Authorization gate: skipping session update because the identity "
                "provider is not configured (%s).",
                client.config_error,
            )
            return await call_next(request)

        auth = await client.auth.get_user(store.read(request.cookies))
        request.state.auth = auth

        target = redirect_target(request.url.path, auth.authenticated)
        if target is not None:
            response: Response = RedirectResponse(target, status_code=307)
        else:
            response = await call_next(request)

        persist_auth_state(store, request, response, auth)
        return response
