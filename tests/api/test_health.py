"""Tests for the health check endpoint."""
from collections.abc import AsyncGenerator

import fakeredis.aioredis
import pytest
from fastapi import FastAPI
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.pool import StaticPool

from core.redis import RedisClient
from db.session import create_engine, create_session_factory
from fakes import FakeAuth


@pytest.fixture
async def db_engine() -> AsyncGenerator[AsyncEngine]:
    engine = create_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


async def test__health_endpoint__returns_200(client: AsyncClient) -> None:
    """Test that the health endpoint returns 200 OK."""
    response = await client.get("/health")
    assert response.status_code == 200


async def test__health_endpoint__healthy_with_database_and_redis(
    app: FastAPI, client: AsyncClient, db_engine: AsyncEngine,
) -> None:
    """Test that the health endpoint reports every dependency as up."""
    app.state.session_factory = create_session_factory(db_engine)
    app.state.redis = RedisClient.from_client(fakeredis.aioredis.FakeRedis())

    response = await client.get("/health")

    assert response.json() == {
        "status": "healthy",
        "database": "healthy",
        "redis": "connected",
        "auth_provider": "configured",
    }
    await app.state.redis.close()


async def test__health_endpoint__redis_unavailable_is_still_healthy(
    app: FastAPI, client: AsyncClient, db_engine: AsyncEngine,
) -> None:
    """Without Redis the app runs degraded but reports healthy."""
    app.state.session_factory = create_session_factory(db_engine)
    disabled = RedisClient("redis://localhost:6379", enabled=False)
    await disabled.connect()
    app.state.redis = disabled

    data = (await client.get("/health")).json()

    assert data["status"] == "healthy"
    assert data["redis"] == "unavailable"


async def test__health_endpoint__without_database(client: AsyncClient) -> None:
    """Test that a missing database is reported as degraded."""
    data = (await client.get("/health")).json()
    assert data["status"] == "degraded"
    assert data["database"] == "unavailable"


async def test__health_endpoint__unconfigured_provider(
    unconfigured_client: AsyncClient,
) -> None:
    """Test that an unconfigured identity provider is reported, not fatal."""
    response = await unconfigured_client.get("/health")
    assert response.status_code == 200
    assert response.json()["auth_provider"] == "unconfigured"


async def test__health_endpoint__skips_authorization(
    client: AsyncClient, fake_auth: FakeAuth,
) -> None:
    await client.get("/health")
    assert fake_auth.get_user_calls == 0
