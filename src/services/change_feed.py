"""
Live change feed for bookmark rows.

A ChangeFeed is an async iterator of ChangeEvent objects. Consumers drain it
with `async for` and release it with `close()` (or by using it as an async
context manager). After close, iteration stops and nothing else is delivered.
"""
import asyncio
import contextlib
import logging

from pydantic import ValidationError
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from core.exceptions import SubscriptionError
from schemas.bookmark import ChangeEvent

logger = logging.getLogger(__name__)


class ChangeFeed:
    """
    Queue-backed change feed.

    On its own it never produces events, which is what a feed without a
    transport (Redis disabled or unreachable) should do. Subclasses and
    in-process publishers put events on it with `push()`.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def open(self) -> "ChangeFeed":
        """Start delivering events."""
        return self

    def push(self, event: ChangeEvent) -> None:
        """Queue an event for the consumer. Ignored once the feed is closed."""
        if not self._closed:
            self._queue.put_nowait(event)

    def __aiter__(self) -> "ChangeFeed":
        return self

    async def __anext__(self) -> ChangeEvent:
        if self._closed:
            raise StopAsyncIteration
        event = await self._queue.get()
        if event is None or self._closed:
            raise StopAsyncIteration
        return event

    async def close(self) -> None:
        """Stop the feed. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)

    async def __aenter__(self) -> "ChangeFeed":
        return await self.open()

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()


class RedisChangeFeed(ChangeFeed):
    """Change feed fed by a Redis pub/sub subscription on one channel."""

    def __init__(self, pubsub: PubSub, channel: str) -> None:
        super().__init__()
        self._pubsub = pubsub
        self._channel = channel
        self._reader: asyncio.Task | None = None

    async def open(self) -> "RedisChangeFeed":
        """
        Subscribe and start the reader task.

        Raises:
            SubscriptionError: If the subscription could not be established.
        """
        try:
            await self._pubsub.subscribe(self._channel)
        except RedisError as e:
            raise SubscriptionError(f"Could not subscribe to {self._channel}: {e}") from e
        self._reader = asyncio.create_task(self._read())
        return self

    async def _read(self) -> None:
        try:
            async for message in self._pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    event = ChangeEvent.model_validate_json(message["data"])
                except ValidationError:
                    logger.warning("change_event_malformed", extra={"channel": self._channel})
                    continue
                self.push(event)
        except RedisError as e:
            logger.warning(
                "change_feed_interrupted", extra={"channel": self._channel, "error": str(e)},
            )

    async def close(self) -> None:
        """Cancel the reader, unsubscribe and release the pub/sub connection."""
        if self._closed:
            return
        await super().close()
        if self._reader is not None:
            self._reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._reader
        try:
            await self._pubsub.unsubscribe(self._channel)
            await self._pubsub.aclose()
        except RedisError as e:
            logger.warning(
                "change_feed_close_failed", extra={"channel": self._channel, "error": str(e)},
            )
