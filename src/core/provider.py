"""
Identity provider clients.

GoTrueAuth talks to a GoTrue-compatible auth API (Supabase Auth) over httpx.
DisabledAuth exposes the same interface for deployments without provider
credentials: nobody is ever signed in and nothing is sent anywhere.
"""
import base64
import hashlib
import logging
import secrets
from urllib.parse import urlencode

import httpx

from core.exceptions import AuthExchangeError, ConfigurationError
from schemas.auth import ANONYMOUS, AuthState, Identity, Session

logger = logging.getLogger(__name__)

# Refresh a little before the access token actually expires so a request
# doesn't race the expiry on the provider side.
EXPIRY_MARGIN_SECONDS = 10


def generate_code_verifier() -> str:
    """Random PKCE code verifier (86 URL-safe characters)."""
    return secrets.token_urlsafe(64)


def code_challenge_for(verifier: str) -> str:
    """S256 PKCE challenge for a verifier."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class GoTrueAuth:
    """Async client for the provider's OAuth, token, user and logout endpoints."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        base_url: str,
        api_key: str,
        oauth_provider: str = "google",
    ) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self.oauth_provider = oauth_provider

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {access_token or self._api_key}",
        }

    def authorize_url(self, redirect_to: str, code_challenge: str) -> str:
        """URL that starts the redirect-based OAuth handshake."""
        query = urlencode({
            "provider": self.oauth_provider,
            "redirect_to": redirect_to,
            "code_challenge": code_challenge,
            "code_challenge_method": "s256",
        })
        return f"{self._base_url}/authorize?{query}"

    async def _token_request(self, grant_type: str, payload: dict[str, str]) -> Session:
        try:
            response = await self._http.post(
                f"{self._base_url}/token",
                params={"grant_type": grant_type},
                json=payload,
                headers=self._headers(),
            )
        except httpx.RequestError as e:
            raise AuthExchangeError(f"Token request failed: {e}") from e

        if not response.is_success:
            raise AuthExchangeError(
                f"Provider rejected {grant_type} grant: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return Session.from_token_response(response.json())
        except (KeyError, TypeError, ValueError) as e:
            raise AuthExchangeError(
                f"Malformed token response: {e}", status_code=response.status_code,
            ) from e

    async def exchange_code(self, code: str, code_verifier: str) -> Session:
        """Exchange a one-time authorization code for a session."""
        return await self._token_request(
            "pkce", {"auth_code": code, "code_verifier": code_verifier},
        )

    async def refresh(self, refresh_token: str) -> Session:
        """Trade a refresh token for a new session."""
        return await self._token_request("refresh_token", {"refresh_token": refresh_token})

    async def _fetch_user(self, access_token: str) -> Identity | None:
        """Current user for an access token, or None if the token was rejected."""
        try:
            response = await self._http.get(
                f"{self._base_url}/user", headers=self._headers(access_token),
            )
        except httpx.RequestError as e:
            raise AuthExchangeError(f"User lookup failed: {e}") from e

        if response.status_code in (401, 403):
            return None
        if not response.is_success:
            raise AuthExchangeError(
                f"User lookup failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )
        try:
            return Identity.model_validate(response.json())
        except ValueError as e:
            raise AuthExchangeError(
                f"Malformed user response: {e}", status_code=response.status_code,
            ) from e

    async def get_user(
        self, session: Session | None, allow_refresh: bool = True,
    ) -> AuthState:
        """
        Resolve the identity behind a session, refreshing the tokens when needed.

        The access token is refreshed up front when it is about to expire, and
        once more if the provider rejects it anyway. Any error response from the
        provider invalidates the session (`session=None, session_changed=True`).
        A network failure only makes this lookup anonymous; the stored session is
        left as it is so a transient outage doesn't sign the user out.

        With `allow_refresh=False` the tokens are never renewed: an expiring or
        rejected access token resolves to no identity and the stored session is
        left for a caller that can write cookies to refresh.
        """
        if session is None:
            return ANONYMOUS

        current = session
        changed = False
        if not allow_refresh and current.expires_within(EXPIRY_MARGIN_SECONDS):
            logger.info("session_needs_refresh")
            return AuthState(identity=None, session=session)
        try:
            if current.expires_within(EXPIRY_MARGIN_SECONDS):
                current = await self.refresh(current.refresh_token)
                changed = True
            identity = await self._fetch_user(current.access_token)
            if identity is None and not changed and allow_refresh:
                current = await self.refresh(current.refresh_token)
                changed = True
                identity = await self._fetch_user(current.access_token)
        except AuthExchangeError as e:
            if e.status_code is None:
                logger.warning("auth_provider_unreachable", extra={"error": str(e)})
                return AuthState(identity=None, session=session)
            logger.info("session_rejected", extra={"error": str(e)})
            return AuthState(identity=None, session=None, session_changed=True)

        if identity is None and not allow_refresh:
            logger.info("session_needs_refresh")
            return AuthState(identity=None, session=session)
        if identity is None:
            logger.info("session_rejected", extra={"error": "access token not accepted"})
            return AuthState(identity=None, session=None, session_changed=True)

        current = current.model_copy(update={"user": identity})
        return AuthState(identity=identity, session=current, session_changed=changed)

    async def sign_out(self, session: Session) -> None:
        """Invalidate the session's refresh tokens on the provider."""
        try:
            response = await self._http.post(
                f"{self._base_url}/logout",
                params={"scope": "global"},
                headers=self._headers(session.access_token),
            )
        except httpx.RequestError as e:
            raise AuthExchangeError(f"Sign-out request failed: {e}") from e
        # 401/404 mean the session is already gone, which is what we wanted
        if not response.is_success and response.status_code not in (401, 403, 404):
            raise AuthExchangeError(
                f"Sign-out failed: HTTP {response.status_code}",
                status_code=response.status_code,
            )


class DisabledAuth:
    """Identity provider stand-in used when the provider is not configured."""

    def __init__(self, reason: str) -> None:
        self.reason = reason

    def authorize_url(self, redirect_to: str, code_challenge: str) -> str:  # noqa: ARG002
        raise ConfigurationError(self.reason)

    async def exchange_code(self, code: str, code_verifier: str) -> Session:  # noqa: ARG002
        raise ConfigurationError(self.reason)

    async def get_user(
        self, session: Session | None, allow_refresh: bool = True,  # noqa: ARG002
    ) -> AuthState:
        return ANONYMOUS

    async def sign_out(self, session: Session) -> None:  # noqa: ARG002
        return None
