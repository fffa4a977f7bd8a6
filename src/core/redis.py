"""Redis client for the bookmark change feed, with connection pooling and graceful fallback."""
import logging

from redis.asyncio import ConnectionPool, Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

logger = logging.getLogger(__name__)

CHANGE_CHANNEL_PREFIX = "bookmarks:changes"


def change_channel(owner_id: str) -> str:
    """Pub/sub channel carrying one owner's bookmark changes."""
    return f"{CHANGE_CHANNEL_PREFIX}:{owner_id}"


class RedisClient:
    """
    Pooled connection used to publish and subscribe to bookmark change channels.

    Every method degrades instead of raising when Redis is disabled or down:
    publishing reports False and no pub/sub connection is handed out, so the
    app keeps serving requests without live updates across sessions.
    """

    def __init__(self, url: str, enabled: bool = True) -> None:
        self._url = url
        self._enabled = enabled
        self._pool: ConnectionPool | None = None
        self._client: Redis | None = None

    @classmethod
    def from_client(cls, client: Redis) -> "RedisClient":
        """Wrap an already-connected redis client (used with fakeredis in tests)."""
        instance = cls("", enabled=True)
        instance._client = client
        return instance

    async def connect(self) -> None:
        """Open the pool and make sure the server answers; stay disconnected otherwise."""
        if not self._enabled:
            logger.info("Change feed disabled: REDIS_ENABLED is false")
            return
        pool = ConnectionPool.from_url(self._url, max_connections=50)
        client = Redis(connection_pool=pool)
        try:
            await client.ping()
        except RedisError as e:
            logger.warning("Change feed unavailable, Redis did not answer: %s", e)
            await client.aclose()
            await pool.disconnect()
            return
        self._pool, self._client = pool, client
        logger.info("Change feed connected to Redis")

    async def close(self) -> None:
        """Release the pool. Safe to call when never connected."""
        if self._client is None:
            return
        await self._client.aclose()
        self._client, self._pool = None, None
        logger.info("Change feed Redis connection closed")

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    async def ping(self) -> bool:
        """True if Redis answers a PING."""
        if self._client is None:
            return False
        try:
            return await self._client.ping()
        except RedisError:
            return False

    async def publish(self, channel: str, message: str) -> bool:
        """Publish a change event. Returns False if it could not be sent."""
        if self._client is None:
            return False
        try:
            await self._client.publish(channel, message)
        except RedisError as e:
            logger.warning("change_publish_failed", extra={"channel": channel, "error": str(e)})
            return False
        return True

    def pubsub(self) -> PubSub | None:
        """Dedicated pub/sub connection, or None when Redis is unavailable."""
        if self._client is None:
            return None
        return self._client.pubsub(ignore_subscribe_messages=True)
