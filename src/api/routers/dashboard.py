"""
Dashboard endpoints.

`GET /` returns a one-off snapshot of the signed-in user's bookmarks.
`/ws/bookmarks` keeps a sync engine mounted for as long as the socket is open:
it pushes a snapshot after every change and accepts add/delete commands.
"""
import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, ValidationError

from api.dependencies import get_auth_state, get_client
from core.client import ServiceClient
from core.session import SessionStore
from schemas.auth import AuthState, Identity
from schemas.bookmark import AddCommand, BookmarkRecord, sync_command_adapter
from services.bookmark_sync import BookmarkSyncEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])

# Policy violation: the socket was opened without a signed-in session
CLOSE_NOT_AUTHENTICATED = 1008


class DashboardResponse(BaseModel):
    """Signed-in user and their bookmarks, newest first."""

    user: Identity | None
    bookmarks: list[BookmarkRecord]


@router.get("/", response_model=DashboardResponse)
async def dashboard(
    client: ServiceClient = Depends(get_client),
    auth: AuthState = Depends(get_auth_state),
) -> DashboardResponse:
    """
    Protected home route.

    The gate has already redirected signed-out users when auth is configured;
    without configuration this renders the empty signed-out state.
    """
    engine = BookmarkSyncEngine(client, auth.session)
    try:
        await engine.start(live=False, auth=auth)
        return DashboardResponse(user=engine.identity, bookmarks=list(engine.bookmarks))
    finally:
        await engine.close()


def snapshot_message(
    identity: Identity | None, bookmarks: tuple[BookmarkRecord, ...],
) -> dict[str, Any]:
    return {
        "type": "snapshot",
        "user": identity.model_dump(mode="json") if identity else None,
        "bookmarks": [b.model_dump(mode="json") for b in bookmarks],
    }


@router.websocket("/ws/bookmarks")
async def bookmarks_socket(websocket: WebSocket) -> None:
    """Live bookmark list for one browser tab."""
    client: ServiceClient = websocket.app.state.client
    store: SessionStore = websocket.app.state.session_store
    send_lock = asyncio.Lock()

    async def send(message: dict[str, Any]) -> None:
        # Engine callbacks and the command loop both send; keep frames whole.
        async with send_lock:
            try:
                await websocket.send_json(message)
            except (WebSocketDisconnect, RuntimeError):
                logger.debug("websocket_send_after_close")

    engine: BookmarkSyncEngine

    async def on_change(bookmarks: tuple[BookmarkRecord, ...]) -> None:
        await send(snapshot_message(engine.identity, bookmarks))

    async def on_error(message: str) -> None:
        await send({"type": "error", "message": message})

    session = store.read(websocket.cookies)
    engine = BookmarkSyncEngine(client, session, on_change=on_change, on_error=on_error)

    await websocket.accept()
    try:
        # Renewed tokens cannot reach the browser over a socket; the gate
        # refreshes an expired session on the next page load.
        auth = await client.auth.get_user(session, allow_refresh=False)
        await engine.start(auth=auth)
        if engine.identity is None:
            await websocket.close(code=CLOSE_NOT_AUTHENTICATED)
            return

        while True:
            raw = await websocket.receive_text()
            try:
                command = sync_command_adapter.validate_json(raw)
            except ValidationError:
                await send({"type": "error", "message": "Unrecognized command"})
                continue
            if isinstance(command, AddCommand):
                await engine.add(command.title, command.url)
            else:
                await engine.delete(command.id)
    except WebSocketDisconnect:
        logger.debug("websocket_disconnected", extra={"user_id": getattr(engine.identity, "id", None)})
    finally:
        await engine.close()
