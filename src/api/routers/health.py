"""Health check endpoints."""
import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str
    redis: str
    auth_provider: str


async def check_database_health(request: Request) -> str:
    """Run a trivial query. Returns 'healthy' or 'unhealthy'."""
    session_factory = getattr(request.app.state, "session_factory", None)
    if session_factory is None:
        return "unavailable"
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        return "unhealthy"
    return "healthy"


async def check_redis_health(request: Request) -> str:
    """Check Redis connectivity. Returns 'connected' or 'unavailable'."""
    redis_client = getattr(request.app.state, "redis", None)
    if redis_client is None:
        return "unavailable"
    if await redis_client.ping():
        return "connected"
    return "unavailable"


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """
    Check application, database and change-feed health.

    Note: App returns 'healthy' even if Redis is unavailable (degraded mode).
    Without Redis, live updates stop crossing sessions but every request still works.
    An unconfigured identity provider is reported, not treated as a failure.
    """
    db_status = await check_database_health(request)
    redis_status = await check_redis_health(request)
    client = request.app.state.client

    return HealthResponse(
        status="healthy" if db_status == "healthy" else "degraded",
        database=db_status,
        redis=redis_status,
        auth_provider="configured" if client.configured else "unconfigured",
    )
