"""Pydantic schemas for bookmarks and change events."""
from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


def require_text(value: str) -> str:
    """Strip surrounding whitespace and reject values that end up empty."""
    stripped = value.strip()
    if not stripped:
        raise ValueError("must not be blank")
    return stripped


class BookmarkCreate(BaseModel):
    """Schema for creating a new bookmark from the REST API."""

    title: str
    url: str

    @field_validator("title", "url")
    @classmethod
    def strip_and_require(cls, v: str) -> str:
        """Trim and require non-blank text."""
        return require_text(v)


class NewBookmark(BookmarkCreate):
    """A create request tagged with its owner, as submitted to the datastore."""

    user_id: str


class BookmarkRecord(BaseModel):
    """A stored bookmark as returned by the datastore."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    user_id: str
    title: str
    url: str
    created_at: datetime


class ChangeEvent(BaseModel):
    """
    One row-level change delivered by the live change feed.

    Delete events carry the full old record so subscribers can match on id.
    """

    type: Literal["insert", "delete"]
    record: BookmarkRecord


class AddCommand(BaseModel):
    """Live-session request to add a bookmark. Blank fields are ignored by the engine."""

    action: Literal["add"]
    title: str = ""
    url: str = ""


class DeleteCommand(BaseModel):
    """Live-session request to delete a bookmark."""

    action: Literal["delete"]
    id: UUID


SyncCommand = Annotated[AddCommand | DeleteCommand, Field(discriminator="action")]
sync_command_adapter: TypeAdapter[AddCommand | DeleteCommand] = TypeAdapter(SyncCommand)
