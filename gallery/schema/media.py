"""Media record schemas for API responses and writes."""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import AliasChoices, Field, field_validator

from gallery.models.media import (
    DESCRIPTION_MAX_LENGTH,
    TAG_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    MediaType,
)
from gallery.schema.base import CamelModel, ORMModel

HTTP_URL_PATTERN = re.compile(r"^https?://.+", re.IGNORECASE)


def normalize_tags(values: list[str] | tuple[str, ...] | None) -> list[str]:
    """Lowercase, strip, and dedupe tags while keeping first-seen order."""
    if not values:
        return []
    seen: set[str] = set()
    tags: list[str] = []
    for value in values:
        tag = str(value).strip().lower()
        if not tag or tag in seen:
            continue
        if len(tag) > TAG_MAX_LENGTH:
            raise ValueError(f"Tag '{tag[:16]}...' exceeds {TAG_MAX_LENGTH} characters")
        seen.add(tag)
        tags.append(tag)
    return tags


def _validate_http_url(value: str) -> str:
    stripped = value.strip()
    if not HTTP_URL_PATTERN.match(stripped):
        raise ValueError("URL must be a valid http(s) link")
    return stripped


class MediaMetadata(CamelModel):
    """Optional technical metadata; ``duration`` applies to videos only."""
    width: int | None = Field(default=None, ge=0)
    height: int | None = Field(default=None, ge=0)
    size: int | None = Field(default=None, ge=0)
    format: str | None = Field(default=None, max_length=32)
    duration: float | None = Field(default=None, ge=0)


class MediaRead(ORMModel):
    """Media record as exposed over HTTP."""
    id: str
    title: str
    description: str | None = None
    url: str
    thumbnail_url: str
    media_type: MediaType = Field(
        validation_alias=AliasChoices("media_type", "type"), serialization_alias="type"
    )
    tags: list[str] = Field(default_factory=list)
    media_metadata: MediaMetadata = Field(
        default_factory=MediaMetadata,
        validation_alias=AliasChoices("media_metadata", "metadata"),
        serialization_alias="metadata",
    )
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


class MediaDetail(CamelModel):
    """A single record together with related recommendations."""
    media: MediaRead
    related_media: list[MediaRead] = Field(default_factory=list)


class MediaCreate(CamelModel):
    """Payload for creating a media record."""
    title: str = Field(min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    url: str
    thumbnail_url: str
    media_type: MediaType = Field(validation_alias=AliasChoices("media_type", "type"))
    tags: list[str] = Field(default_factory=list)
    media_metadata: MediaMetadata = Field(
        default_factory=MediaMetadata,
        validation_alias=AliasChoices("media_metadata", "metadata"),
    )

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip_text(cls, value: str | None) -> str | None:
        return value.strip() if isinstance(value, str) else value

    @field_validator("url", "thumbnail_url")
    @classmethod
    def _check_urls(cls, value: str) -> str:
        return _validate_http_url(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: list[str] | None) -> list[str]:
        return normalize_tags(value)


class MediaUpdate(CamelModel):
    """Partial update payload; omitted fields are left untouched."""
    title: str | None = Field(default=None, min_length=1, max_length=TITLE_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=DESCRIPTION_MAX_LENGTH)
    url: str | None = None
    thumbnail_url: str | None = None
    media_type: MediaType | None = Field(default=None, validation_alias=AliasChoices("media_type", "type"))
    tags: list[str] | None = None
    media_metadata: MediaMetadata | None = Field(
        default=None, validation_alias=AliasChoices("media_metadata", "metadata")
    )
    is_active: bool | None = None

    @field_validator("title", "description", mode="before")
    @classmethod
    def _strip_text(cls, value: str | None) -> str | None:
        return value.strip() if isinstance(value, str) else value

    @field_validator("url", "thumbnail_url")
    @classmethod
    def _check_urls(cls, value: str | None) -> str | None:
        return _validate_http_url(value) if value is not None else None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: list[str] | None) -> list[str] | None:
        return normalize_tags(value) if value is not None else None


class BulkUpdateItem(CamelModel):
    """One entry of a bulk update request."""
    id: str
    data: MediaUpdate


class BulkUpdateResult(CamelModel):
    success: int
    failed: int
