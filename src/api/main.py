"""FastAPI application entry point."""
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from api.middleware import AuthorizationGate
from api.routers import auth, bookmarks, dashboard, health
from core.client import ServiceClient, create_client, disabled_client
from core.config import Settings, get_settings
from core.redis import RedisClient
from core.session import SessionStore
from db.session import create_engine, create_session_factory, create_tables


logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    client: ServiceClient | None = None,
) -> FastAPI:
    """
    Build the application.

    Pass `client` to run against an already-built service client (tests do);
    otherwise the lifespan handler builds one from `settings` on start-up and
    releases its connections on shutdown.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if client is not None:
            yield
            return

        engine = create_engine(settings.database_url)
        await create_tables(engine)
        session_factory = create_session_factory(engine)
        redis = RedisClient(settings.redis_url, enabled=settings.redis_enabled)
        await redis.connect()

        async with httpx.AsyncClient(timeout=settings.provider_timeout) as http:
            app.state.client = create_client(
                settings, http=http, session_factory=session_factory, redis=redis,
            )
            app.state.session_factory = session_factory
            app.state.redis = redis
            logger.info(
                "Bookmarks API started",
                extra={"auth_configured": app.state.client.configured},
            )
            try:
                yield
            finally:
                await redis.close()
                await engine.dispose()

    app = FastAPI(
        title="Bookmarks API",
        description="Per-user bookmarks with OAuth sign-in and live sync across sessions.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.session_store = SessionStore(
        settings.session_cookie_name, secure=settings.cookie_secure,
    )
    app.state.client = client or disabled_client("application has not started")

    app.add_middleware(AuthorizationGate)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(bookmarks.router)
    app.include_router(dashboard.router)
    return app


app = create_app()
