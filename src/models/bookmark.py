"""Bookmark model."""
import uuid
from datetime import datetime

from sqlalchemy import DateTime, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, utcnow


class Bookmark(Base):
    """
    A saved link owned by one identity.

    Rows are never updated in place: they are created and deleted only.
    `user_id` is the identity provider's opaque user id, so there is no local
    users table to reference.
    """

    __tablename__ = "bookmarks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[str] = mapped_column(
        String(255),
        index=True,
        comment="Identity provider user id of the owner",
    )
    title: Mapped[str] = mapped_column(Text)
    url: Mapped[str] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        index=True,
    )
