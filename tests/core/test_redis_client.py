"""
Tests for the Redis client wrapper.

Basic Redis commands are not tested here as they just wrap redis.asyncio. We
test the change channel naming and the fallback behavior when Redis is off.
"""
import fakeredis.aioredis
import pytest

from core.redis import RedisClient, change_channel


@pytest.fixture
async def redis_client():
    client = RedisClient.from_client(fakeredis.aioredis.FakeRedis())
    yield client
    await client.close()


def test__change_channel__is_per_owner() -> None:
    assert change_channel("user-1") == "bookmarks:changes:user-1"
    assert change_channel("user-1") != change_channel("user-2")


class TestRedisFallback:
    """Behavior when Redis is disabled or unreachable."""

    async def test__disabled__never_connects(self) -> None:
        client = RedisClient("redis://localhost:6379", enabled=False)
        await client.connect()
        assert client.is_connected is False
        assert await client.ping() is False
        assert await client.publish("channel", "message") is False
        assert client.pubsub() is None

    async def test__unreachable__falls_back(self) -> None:
        """A server that refuses connections leaves the client disconnected."""
        client = RedisClient("redis://127.0.0.1:1", enabled=True)
        await client.connect()
        assert client.is_connected is False
        await client.close()


class TestRedisConnected:
    """Behavior against a (fake) server."""

    async def test__ping(self, redis_client: RedisClient) -> None:
        assert redis_client.is_connected is True
        assert await redis_client.ping() is True

    async def test__publish__succeeds_without_subscribers(
        self, redis_client: RedisClient,
    ) -> None:
        assert await redis_client.publish(change_channel("user-1"), "{}") is True

    async def test__pubsub__ignores_subscribe_confirmations(
        self, redis_client: RedisClient,
    ) -> None:
        pubsub = redis_client.pubsub()
        assert pubsub is not None
        assert pubsub.ignore_subscribe_messages is True
        await pubsub.aclose()
