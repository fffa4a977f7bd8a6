"""
Owner-scoped access to the bookmarks table.

Every operation takes the caller's identity and is restricted to rows that
identity owns, the same way a row-level security policy would restrict it:

- reads only ever see the caller's rows;
- an insert whose `user_id` is not the caller is rejected;
- deleting somebody else's row affects nothing and is not an error.

Successful inserts and deletes are published on the owner's change channel.
"""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.exceptions import DataOperationError, SubscriptionError
from core.redis import RedisClient, change_channel
from models.bookmark import Bookmark
from schemas.auth import Identity
from schemas.bookmark import BookmarkRecord, ChangeEvent, NewBookmark
from services.change_feed import ChangeFeed, RedisChangeFeed

logger = logging.getLogger(__name__)


class SqlBookmarkStore:
    """Bookmark datastore on SQLAlchemy async with a Redis change feed."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        redis: RedisClient | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._redis = redis

    async def list_for_owner(self, owner: Identity) -> list[BookmarkRecord]:
        """All of the owner's bookmarks, newest first."""
        query = (
            select(Bookmark)
            .where(Bookmark.user_id == owner.id)
            .order_by(Bookmark.created_at.desc())
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                rows = result.scalars().all()
        except SQLAlchemyError as e:
            logger.exception("bookmark_query_failed", extra={"user_id": owner.id})
            raise DataOperationError(f"Could not load bookmarks: {e}") from e
        return [BookmarkRecord.model_validate(row) for row in rows]

    async def insert(self, owner: Identity, data: NewBookmark) -> BookmarkRecord:
        """
        Insert a bookmark and return the stored record.

        Raises:
            DataOperationError: If `data.user_id` is not the owner or the insert failed.
        """
        if data.user_id != owner.id:
            raise DataOperationError(
                'new row violates row-level security policy for table "bookmarks"',
            )
        bookmark = Bookmark(user_id=owner.id, title=data.title, url=data.url)
        try:
            async with self._session_factory() as session:
                session.add(bookmark)
                await session.commit()
                await session.refresh(bookmark)
        except SQLAlchemyError as e:
            logger.exception("bookmark_insert_failed", extra={"user_id": owner.id})
            raise DataOperationError(f"Could not save bookmark: {e}") from e

        record = BookmarkRecord.model_validate(bookmark)
        await self._publish(ChangeEvent(type="insert", record=record))
        return record

    async def delete(self, owner: Identity, bookmark_id: UUID) -> None:
        """
        Delete one of the owner's bookmarks.

        Raises:
            DataOperationError: If the delete failed.
        """
        query = select(Bookmark).where(
            Bookmark.id == bookmark_id, Bookmark.user_id == owner.id,
        )
        try:
            async with self._session_factory() as session:
                result = await session.execute(query)
                removed = result.scalars().all()
                for row in removed:
                    await session.delete(row)
                await session.commit()
        except SQLAlchemyError as e:
            logger.exception(
                "bookmark_delete_failed",
                extra={"user_id": owner.id, "bookmark_id": str(bookmark_id)},
            )
            raise DataOperationError(f"Could not delete bookmark: {e}") from e

        for row in removed:
            await self._publish(
                ChangeEvent(type="delete", record=BookmarkRecord.model_validate(row)),
            )

    async def subscribe(self, owner: Identity) -> ChangeFeed:
        """
        Open a live feed of the owner's inserts and deletes.

        Without Redis the feed is silent: it stays open and delivers nothing.
        """
        pubsub = self._redis.pubsub() if self._redis is not None else None
        if pubsub is None:
            logger.warning("redis_unavailable", extra={"operation": "subscribe"})
            return await ChangeFeed().open()
        try:
            return await RedisChangeFeed(pubsub, change_channel(owner.id)).open()
        except SubscriptionError as e:
            logger.warning("change_feed_unavailable", extra={"error": str(e)})
            return await ChangeFeed().open()

    async def _publish(self, event: ChangeEvent) -> None:
        if self._redis is None:
            return
        published = await self._redis.publish(
            change_channel(event.record.user_id), event.model_dump_json(),
        )
        if not published:
            logger.warning(
                "change_event_not_published",
                extra={"type": event.type, "bookmark_id": str(event.record.id)},
            )


class DisabledBookmarkStore:
    """Datastore stand-in used when the service client is not configured."""

    def __init__(self, reason: str) -> None:
        self.reason = reason

    async def list_for_owner(self, owner: Identity) -> list[BookmarkRecord]:  # noqa: ARG002
        return []

    async def insert(self, owner: Identity, data: NewBookmark) -> BookmarkRecord:  # noqa: ARG002
        raise DataOperationError(f"Datastore unavailable: {self.reason}")

    async def delete(self, owner: Identity, bookmark_id: UUID) -> None:  # noqa: ARG002
        raise DataOperationError(f"Datastore unavailable: {self.reason}")

    async def subscribe(self, owner: Identity) -> ChangeFeed:  # noqa: ARG002
        return await ChangeFeed().open()
