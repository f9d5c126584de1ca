"""Gallery media records and their tag links."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from gallery.db.base_class import Base
from gallery.utils.datetime import utcnow

TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
TAG_MAX_LENGTH = 64


def _new_id() -> str:
    return uuid.uuid4().hex


class MediaType(str, enum.Enum):
    """Supported media kinds for gallery records."""
    IMAGE = "image"
    VIDEO = "video"


class MediaItem(Base):
    """A gallery entry; ``is_active`` false marks a soft-deleted record."""
    __table_args__ = (
        Index("ix_media_items_type_created", "media_type", "created_at"),
        Index("ix_media_items_active_created", "is_active", "created_at"),
    )

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=_new_id)
    title: Mapped[str] = mapped_column(String(TITLE_MAX_LENGTH), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    url: Mapped[str] = mapped_column(String(2048), nullable=False)
    thumbnail_url: Mapped[str] = mapped_column(String(2048), nullable=False)
    # Persist the enum values (lowercase) instead of names so they match the wire format
    media_type: Mapped[MediaType] = mapped_column(
        Enum(MediaType, name="media_type", values_callable=lambda enum_cls: [e.value for e in enum_cls]),
        nullable=False,
    )
    width: Mapped[int | None] = mapped_column(Integer)
    height: Mapped[int | None] = mapped_column(Integer)
    size_bytes: Mapped[int | None] = mapped_column(Integer)
    format: Mapped[str | None] = mapped_column(String(32))
    duration_seconds: Mapped[float | None] = mapped_column(Float)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    tag_links: Mapped[list["MediaTag"]] = relationship(
        back_populates="media_item",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tags(self) -> list[str]:
        return sorted(link.name for link in self.tag_links)

    @property
    def media_metadata(self) -> dict[str, Any]:
        return {
            "width": self.width,
            "height": self.height,
            "size": self.size_bytes,
            "format": self.format,
            "duration": self.duration_seconds,
        }


class MediaTag(Base):
    """Lowercase tag attached to a media item."""
    __table_args__ = (UniqueConstraint("media_item_id", "name", name="uq_media_tag"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    media_item_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("media_items.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(TAG_MAX_LENGTH), nullable=False, index=True)

    media_item: Mapped[MediaItem] = relationship(back_populates="tag_links")
