"""
Service client: the identity provider and the bookmarks datastore behind one object.

`create_client()` picks the variant once, from configuration:

- configured: GoTrueAuth over httpx and SqlBookmarkStore over SQLAlchemy/Redis;
- disabled: DisabledAuth and DisabledBookmarkStore, which expose the same
  methods but never sign anyone in and never touch a backend.

The instance lives on `app.state.client` and is handed to the gate, the routes
and the sync engine explicitly.
"""
import logging
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import Settings
from core.provider import DisabledAuth, GoTrueAuth
from core.redis import RedisClient
from schemas.auth import AuthState, Identity, Session
from schemas.bookmark import BookmarkRecord, NewBookmark
from services.bookmark_store import DisabledBookmarkStore, SqlBookmarkStore
from services.change_feed import ChangeFeed

logger = logging.getLogger(__name__)


class AuthApi(Protocol):
    """Identity provider capability."""

    def authorize_url(self, redirect_to: str, code_challenge: str) -> str:
        ...

    async def exchange_code(self, code: str, code_verifier: str) -> Session:
        ...

    async def get_user(
        self, session: Session | None, allow_refresh: bool = True,
    ) -> AuthState:
        ...

    async def sign_out(self, session: Session) -> None:
        ...


class BookmarkStore(Protocol):
    """Owner-scoped datastore capability."""

    async def list_for_owner(self, owner: Identity) -> list[BookmarkRecord]:
        ...

    async def insert(self, owner: Identity, data: NewBookmark) -> BookmarkRecord:
        ...

    async def delete(self, owner: Identity, bookmark_id: UUID) -> None:
        ...

    async def subscribe(self, owner: Identity) -> ChangeFeed:
        ...


@dataclass
class ServiceClient:
    """Capabilities the application consumes from its external collaborators."""

    auth: AuthApi
    bookmarks: BookmarkStore
    configured: bool
    config_error: str | None = None


def disabled_client(reason: str) -> ServiceClient:
    """Client variant that degrades every operation to a safe default."""
    return ServiceClient(
        auth=DisabledAuth(reason),
        bookmarks=DisabledBookmarkStore(reason),
        configured=False,
        config_error=reason,
    )


def create_client(
    settings: Settings,
    *,
    http: httpx.AsyncClient,
    session_factory: async_sessionmaker[AsyncSession],
    redis: RedisClient | None = None,
) -> ServiceClient:
    """Build the configured client, or the disabled one if provider settings are unusable."""
    if not settings.provider_configured:
        problem = settings.provider_config_error
        logger.warning(
            "Identity provider not configured (%s); authentication is disabled "
            "and every request is treated as signed out.",
            problem,
        )
        return disabled_client(problem)

    return ServiceClient(
        auth=GoTrueAuth(
            http,
            settings.auth_base_url,
            settings.auth_provider_key,
            oauth_provider=settings.oauth_provider,
        ),
        bookmarks=SqlBookmarkStore(session_factory, redis),
        configured=True,
    )
