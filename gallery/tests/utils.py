"""Shared helpers for media tests."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from gallery.models.media import MediaItem, MediaTag, MediaType

BASE_TIME = datetime(2024, 1, 1, tzinfo=timezone.utc)


def media_payload(title: str | None = None, **overrides: Any) -> dict[str, Any]:
    """Build a camelCase create payload as a browser would send it."""
    suffix = uuid.uuid4().hex[:8]
    payload: dict[str, Any] = {
        "title": title or f"Media {suffix}",
        "description": "A sample record",
        "url": f"https://cdn.example.com/{suffix}.jpg",
        "thumbnailUrl": f"https://cdn.example.com/thumbs/{suffix}.jpg",
        "type": "image",
        "tags": [],
        "metadata": {"width": 800, "height": 600, "format": "jpeg"},
    }
    payload.update(overrides)
    return payload


async def add_media(
    session: AsyncSession,
    title: str,
    *,
    description: str | None = None,
    media_type: MediaType = MediaType.IMAGE,
    tags: list[str] | tuple[str, ...] = (),
    minutes: int = 0,
    is_active: bool = True,
    media_id: str | None = None,
) -> MediaItem:
    """Insert a record whose ``created_at`` is ``minutes`` after a fixed base time."""
    created = BASE_TIME + timedelta(minutes=minutes)
    media = MediaItem(
        id=media_id or uuid.uuid4().hex,
        title=title,
        description=description,
        url=f"https://cdn.example.com/{uuid.uuid4().hex[:8]}",
        thumbnail_url="https://cdn.example.com/thumb.jpg",
        media_type=media_type,
        is_active=is_active,
        created_at=created,
        updated_at=created,
        tag_links=[MediaTag(name=tag) for tag in tags],
    )
    session.add(media)
    await session.commit()
    await session.refresh(media, attribute_names=["tag_links"])
    return media
