"""
Bookmark sync engine.

Holds one user's bookmarks in memory, newest first, and keeps them in step
with the datastore through three inputs:

1. one authoritative fetch when the engine starts;
2. local mutations: adds are merged once the server confirms them, deletes are
   applied immediately (optimistically);
3. the live change feed, whose inserts and deletes are merged as they arrive.

Every merge is keyed on bookmark id, so the collection never holds the same id
twice no matter how the confirmation of a local add and its echo on the feed
interleave.

An engine belongs to a single consumer (one WebSocket connection, one page
render). Nothing is shared between engines; other sessions of the same user
converge through the feed.
"""
import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from uuid import UUID

from core.client import ServiceClient
from core.exceptions import DataOperationError
from schemas.auth import AuthState, Identity, Session
from schemas.bookmark import BookmarkRecord, ChangeEvent, NewBookmark
from services.change_feed import ChangeFeed

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[tuple[BookmarkRecord, ...]], Awaitable[None] | None]
ErrorCallback = Callable[[str], Awaitable[None] | None]


class SyncState(Enum):
    """Lifecycle of an engine."""

    LOADING = "loading"
    READY = "ready"
    CLOSED = "closed"


async def _call(callback: Callable | None, *args: object) -> None:
    if callback is None:
        return
    result = callback(*args)
    if inspect.isawaitable(result):
        await result


class BookmarkSyncEngine:
    """Local bookmark collection for one signed-in session."""

    def __init__(
        self,
        client: ServiceClient,
        session: Session | None,
        on_change: ChangeCallback | None = None,
        on_error: ErrorCallback | None = None,
    ) -> None:
        self._client = client
        self._session = session
        self._on_change = on_change
        self._on_error = on_error
        self._bookmarks: list[BookmarkRecord] = []
        self._feed: ChangeFeed | None = None
        self._consumer: asyncio.Task | None = None
        self.identity: Identity | None = None
        self.state = SyncState.LOADING

    @property
    def bookmarks(self) -> tuple[BookmarkRecord, ...]:
        """Snapshot of the collection, newest first."""
        return tuple(self._bookmarks)

    def _contains(self, bookmark_id: UUID) -> bool:
        return any(b.id == bookmark_id for b in self._bookmarks)

    async def _changed(self) -> None:
        await _call(self._on_change, self.bookmarks)

    async def start(self, live: bool = True, auth: AuthState | None = None) -> None:
        """
        Resolve the user, load their bookmarks, then subscribe to changes.

        The subscription is only opened after the initial fetch has finished.
        With no signed-in user the engine becomes READY with an empty collection
        and never subscribes. Pass `auth` when the caller already resolved the
        user for this request, to skip a second provider round trip.
        """
        auth_state = auth if auth is not None else await self._client.auth.get_user(self._session)
        if self.state is SyncState.CLOSED:
            return
        self.identity = auth_state.identity
        if self.identity is None:
            self.state = SyncState.READY
            await self._changed()
            return

        try:
            fetched = await self._client.bookmarks.list_for_owner(self.identity)
        except DataOperationError as e:
            logger.error(
                "bookmark_fetch_failed", extra={"user_id": self.identity.id, "error": str(e)},
            )
            fetched = []

        if self.state is SyncState.CLOSED:
            return
        # Sort here rather than trusting the datastore's order; sorted() is stable
        # so rows with equal timestamps keep the order they were returned in.
        self._bookmarks = sorted(fetched, key=lambda b: b.created_at, reverse=True)
        self.state = SyncState.READY
        await self._changed()

        if live:
            feed = await self._client.bookmarks.subscribe(self.identity)
            if self.state is SyncState.CLOSED:
                await feed.close()
                return
            self._feed = feed
            self._consumer = asyncio.create_task(self._consume(feed))

    async def _consume(self, feed: ChangeFeed) -> None:
        async for event in feed:
            if self.state is SyncState.CLOSED:
                break
            try:
                await self.apply_event(event)
            except Exception:
                # One bad event or listener must not end live sync
                logger.exception(
                    "live_change_failed",
                    extra={"user_id": self.identity.id if self.identity else None},
                )

    async def apply_event(self, event: ChangeEvent) -> None:
        """Merge one live change into the collection."""
        if self.state is SyncState.CLOSED:
            return
        record = event.record
        if event.type == "insert":
            if self._contains(record.id):
                return
            self._bookmarks.insert(0, record)
        else:
            if not self._contains(record.id):
                return
            self._bookmarks = [b for b in self._bookmarks if b.id != record.id]
        await self._changed()

    async def add(self, title: str, url: str) -> BookmarkRecord | None:
        """
        Create a bookmark and merge the server's record at the front.

        Blank title or url (after trimming) is a no-op and sends nothing. Nothing
        is inserted locally before the server confirms. Failures are logged and
        reported through `on_error`; the collection is left unchanged.
        """
        title = title.strip()
        url = url.strip()
        if not title or not url or self.identity is None:
            return None
        if self.state is not SyncState.READY:
            return None

        data = NewBookmark(title=title, url=url, user_id=self.identity.id)
        try:
            record = await self._client.bookmarks.insert(self.identity, data)
        except DataOperationError as e:
            logger.error(
                "bookmark_add_failed", extra={"user_id": self.identity.id, "error": str(e)},
            )
            if self.state is not SyncState.CLOSED:
                await _call(self._on_error, f"Failed to add bookmark: {e}")
            return None

        # The consumer may have gone away while the insert was in flight
        if self.state is SyncState.CLOSED:
            return record
        # The live feed may already have delivered this row
        if not self._contains(record.id):
            self._bookmarks.insert(0, record)
            await self._changed()
        return record

    async def delete(self, bookmark_id: UUID) -> None:
        """
        Remove a bookmark locally, then ask the datastore to delete it.

        A failed delete is logged but NOT rolled back, so the collection can stay
        out of step with the datastore until the next full load.
        """
        if self.identity is None or self.state is not SyncState.READY:
            return
        if self._contains(bookmark_id):
            self._bookmarks = [b for b in self._bookmarks if b.id != bookmark_id]
            await self._changed()

        try:
            await self._client.bookmarks.delete(self.identity, bookmark_id)
        except DataOperationError as e:
            logger.error(
                "bookmark_delete_failed",
                extra={
                    "user_id": self.identity.id,
                    "bookmark_id": str(bookmark_id),
                    "error": str(e),
                },
            )

    async def close(self) -> None:
        """Release the live subscription. No events are processed afterwards."""
        if self.state is SyncState.CLOSED:
            return
        self.state = SyncState.CLOSED
        if self._feed is not None:
            await self._feed.close()
        if self._consumer is not None:
            self._consumer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._consumer
        self._feed = None
        self._consumer = None

    async def __aenter__(self) -> "BookmarkSyncEngine":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
