"""
OAuth handshake orchestration.

Initiate sends the browser to the identity provider with a PKCE challenge and
the callback address. Complete exchanges the one-time code that comes back on
the callback for a session. Each callback is a single attempt: on failure the
user goes back to the login page and has to start over.
"""
import logging
from dataclasses import dataclass

from core.client import ServiceClient
from core.exceptions import AuthExchangeError, ConfigurationError
from core.gate import CALLBACK_PATH, HOME_PATH, LOGIN_PATH, login_error_path
from core.provider import code_challenge_for, generate_code_verifier
from schemas.auth import Session

logger = logging.getLogger(__name__)

AUTH_ERROR = "auth"
CONFIG_ERROR = "config"


@dataclass(frozen=True)
class Initiation:
    """Where to send the browser, and the PKCE verifier to remember until the callback."""

    location: str
    code_verifier: str | None = None


@dataclass(frozen=True)
class CallbackResult:
    """Terminal redirect of the callback, plus the new session when sign-in worked."""

    location: str
    session: Session | None = None


class AuthFlowController:
    """Initiate, complete and end the redirect-based sign-in."""

    def __init__(self, client: ServiceClient) -> None:
        self._client = client

    def initiate(self, origin: str) -> Initiation:
        """Start the handshake, declaring `<origin>/auth/callback` as the return target."""
        if not self._client.configured:
            logger.warning("oauth_initiate_unconfigured", extra={"reason": self._client.config_error})
            return Initiation(location=login_error_path(CONFIG_ERROR))

        verifier = generate_code_verifier()
        redirect_to = f"{origin.rstrip('/')}{CALLBACK_PATH}"
        try:
            location = self._client.auth.authorize_url(redirect_to, code_challenge_for(verifier))
        except ConfigurationError as e:
            logger.warning("oauth_initiate_unconfigured", extra={"reason": str(e)})
            return Initiation(location=login_error_path(CONFIG_ERROR))
        logger.info("oauth_initiated", extra={"redirect_to": redirect_to})
        return Initiation(location=location, code_verifier=verifier)

    async def complete(self, code: str | None, code_verifier: str | None) -> CallbackResult:
        """Exchange the callback code for a session and pick the terminal redirect."""
        if not code:
            logger.info("oauth_callback_without_code")
            return CallbackResult(location=login_error_path(AUTH_ERROR))

        if not self._client.configured:
            logger.warning("oauth_callback_unconfigured", extra={"reason": self._client.config_error})
            return CallbackResult(location=login_error_path(CONFIG_ERROR))

        if not code_verifier:
            logger.warning("oauth_callback_missing_verifier")
            return CallbackResult(location=login_error_path(AUTH_ERROR))

        try:
            session = await self._client.auth.exchange_code(code, code_verifier)
        except ConfigurationError as e:
            logger.warning("oauth_callback_unconfigured", extra={"reason": str(e)})
            return CallbackResult(location=login_error_path(CONFIG_ERROR))
        except AuthExchangeError as e:
            logger.warning(
                "oauth_exchange_failed", extra={"error": str(e), "status": e.status_code},
            )
            return CallbackResult(location=login_error_path(AUTH_ERROR))

        logger.info(
            "oauth_signed_in", extra={"user_id": session.user.id if session.user else None},
        )
        return CallbackResult(location=HOME_PATH, session=session)

    async def sign_out(self, session: Session | None) -> str:
        """
        Invalidate the session with the provider and return the login path.

        The provider call is fire-and-forget: the caller navigates to the login
        page whether or not it succeeded.
        """
        if session is not None:
            try:
                await self._client.auth.sign_out(session)
            except AuthExchangeError as e:
                logger.warning("sign_out_failed", extra={"error": str(e)})
        return LOGIN_PATH
