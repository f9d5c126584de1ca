"""Seed script for demo gallery data in local/dev environments."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gallery.core.logging import configure_logging
from gallery.db.base_class import Base
from gallery.db.session import SessionLocal, engine
from gallery.models.media import MediaItem, MediaType
from gallery.schema.media import MediaCreate, MediaMetadata
from gallery.services import media_service

logger = logging.getLogger("gallery.scripts.seed")

SEED_MEDIA: tuple[MediaCreate, ...] = (
    MediaCreate(
        title="Mountain Sunset",
        description="Golden light over an alpine ridge",
        url="https://images.example.com/mountain-sunset.jpg",
        thumbnail_url="https://images.example.com/thumbs/mountain-sunset.jpg",
        media_type=MediaType.IMAGE,
        tags=["nature", "sunset", "mountains"],
        media_metadata=MediaMetadata(width=3840, height=2160, size=2_457_600, format="jpeg"),
    ),
    MediaCreate(
        title="City Night",
        description="Long exposure of downtown traffic",
        url="https://images.example.com/city-night.jpg",
        thumbnail_url="https://images.example.com/thumbs/city-night.jpg",
        media_type=MediaType.IMAGE,
        tags=["city", "night"],
        media_metadata=MediaMetadata(width=1920, height=1080, size=1_048_576, format="jpeg"),
    ),
    MediaCreate(
        title="Ocean Waves",
        description="Slow motion surf at dawn",
        url="https://videos.example.com/ocean-waves.mp4",
        thumbnail_url="https://videos.example.com/thumbs/ocean-waves.jpg",
        media_type=MediaType.VIDEO,
        tags=["nature", "ocean"],
        media_metadata=MediaMetadata(width=1920, height=1080, size=52_428_800, format="mp4", duration=42.5),
    ),
    MediaCreate(
        title="Forest Trail",
        description="Morning fog between the pines",
        url="https://images.example.com/forest-trail.jpg",
        thumbnail_url="https://images.example.com/thumbs/forest-trail.jpg",
        media_type=MediaType.IMAGE,
        tags=["nature", "forest"],
        media_metadata=MediaMetadata(width=2048, height=1365, format="webp"),
    ),
)


async def seed(session: AsyncSession | None = None) -> list[MediaItem]:
    """Seed demo media into the database."""
    if session is None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with SessionLocal() as managed_session:
            return await _seed_session(managed_session)
    return await _seed_session(session)


async def _seed_session(session: AsyncSession) -> list[MediaItem]:
    """Create seed records whose titles are not already present."""
    result = await session.execute(select(MediaItem.title))
    existing = set(result.scalars().all())
    missing = [payload for payload in SEED_MEDIA if payload.title not in existing]
    created = await media_service.bulk_create_media(session, missing) if missing else []
    logger.info("Seed complete", extra={"created": len(created), "skipped": len(SEED_MEDIA) - len(missing)})
    return created


def main() -> None:
    """CLI entrypoint for seeding demo data."""
    configure_logging()
    asyncio.run(seed())


if __name__ == "__main__":
    main()
