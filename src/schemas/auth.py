"""Schemas for identities, sessions and resolved auth state."""
import time
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict


class Identity(BaseModel):
    """The signed-in user as reported by the identity provider."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None


class Session(BaseModel):
    """Renewable token pair bound to an identity."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str
    expires_at: int  # Unix timestamp (seconds) when the access token expires
    token_type: str = "bearer"
    user: Identity | None = None

    @classmethod
    def from_token_response(cls, data: dict[str, Any]) -> "Session":
        """
        Build a session from a provider token response.

        The provider returns `expires_at` on newer versions; older ones only send
        `expires_in`, so the absolute expiry is derived from it.
        """
        expires_at = data.get("expires_at")
        if expires_at is None:
            expires_at = int(time.time()) + int(data.get("expires_in") or 0)
        return cls(
            access_token=data["access_token"],
            refresh_token=data["refresh_token"],
            expires_at=int(expires_at),
            token_type=data.get("token_type") or "bearer",
            user=data.get("user"),
        )

    def expires_within(self, seconds: int, now: float | None = None) -> bool:
        """True if the access token expires within `seconds` from `now`."""
        current = time.time() if now is None else now
        return self.expires_at - current <= seconds


@dataclass(frozen=True)
class AuthState:
    """
    Result of resolving the current user for one request or connection.

    `session` is the session that should be persisted after the lookup:
    a refreshed one when the provider renewed the tokens, or None when the
    provider rejected them. `session_changed` tells the caller whether the
    stored cookies need rewriting.
    """

    identity: Identity | None
    session: Session | None
    session_changed: bool = False

    @property
    def authenticated(self) -> bool:
        return self.identity is not None


ANONYMOUS = AuthState(identity=None, session=None)
