"""Shared fixtures: settings, fake collaborators, the app and an HTTP client."""
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from api.main import create_app
from core.client import ServiceClient, disabled_client
from core.config import Settings
from core.session import encode_session
from fakes import OTHER_USER, USER, FakeAuth, InMemoryBookmarkStore, make_session
from schemas.auth import Session


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,  # Don't load from .env file
        auth_provider_url="https://auth.example.test",
        auth_provider_key="anon-key",
        redis_enabled=False,
    )


@pytest.fixture
def fake_auth() -> FakeAuth:
    auth = FakeAuth()
    auth.tokens["valid-token"] = USER
    auth.tokens["other-token"] = OTHER_USER
    return auth


@pytest.fixture
def store() -> InMemoryBookmarkStore:
    return InMemoryBookmarkStore()


@pytest.fixture
def service_client(fake_auth: FakeAuth, store: InMemoryBookmarkStore) -> ServiceClient:
    return ServiceClient(auth=fake_auth, bookmarks=store, configured=True)


@pytest.fixture
def valid_session() -> Session:
    return make_session("valid-token")


@pytest.fixture
def app(settings: Settings, service_client: ServiceClient):
    return create_app(settings, client=service_client)


@pytest.fixture
def unconfigured_app():
    settings = Settings(_env_file=None, redis_enabled=False)
    return create_app(settings, client=disabled_client(settings.provider_config_error))


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient]:
    """HTTP client that does not follow redirects, so tests can inspect them."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


@pytest.fixture
async def unconfigured_client(unconfigured_app) -> AsyncGenerator[AsyncClient]:
    transport = ASGITransport(app=unconfigured_app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def cookie_name(settings: Settings) -> str:
    return settings.session_cookie_name


@pytest.fixture
def signed_in(client: AsyncClient, cookie_name: str, valid_session: Session) -> AsyncClient:
    """The HTTP client carrying a valid session cookie."""
    client.cookies.set(cookie_name, encode_session(valid_session))
    return client
