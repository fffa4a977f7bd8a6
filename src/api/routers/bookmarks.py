"""Bookmark REST endpoints."""
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_client, get_current_identity
from core.client import ServiceClient
from core.exceptions import DataOperationError
from schemas.auth import Identity
from schemas.bookmark import BookmarkCreate, BookmarkRecord, NewBookmark

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


@router.get("/", response_model=list[BookmarkRecord])
async def list_bookmarks(
    current_user: Identity = Depends(get_current_identity),
    client: ServiceClient = Depends(get_client),
) -> list[BookmarkRecord]:
    """List all bookmarks for the current user, newest first."""
    try:
        return await client.bookmarks.list_for_owner(current_user)
    except DataOperationError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e


@router.post("/", response_model=BookmarkRecord, status_code=201)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: Identity = Depends(get_current_identity),
    client: ServiceClient = Depends(get_client),
) -> BookmarkRecord:
    """
    Create a new bookmark.

    Open live sessions pick it up from the change feed.
    """
    new_bookmark = NewBookmark(title=data.title, url=data.url, user_id=current_user.id)
    try:
        return await client.bookmarks.insert(current_user, new_bookmark)
    except DataOperationError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e


@router.delete("/{bookmark_id}", status_code=204)
async def delete_bookmark(
    bookmark_id: UUID,
    current_user: Identity = Depends(get_current_identity),
    client: ServiceClient = Depends(get_client),
) -> None:
    """Delete a bookmark. Deleting an id the user doesn't own changes nothing."""
    try:
        await client.bookmarks.delete(current_user, bookmark_id)
    except DataOperationError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e
