"""Media catalog services: paginated search, tag suggestions, and CRUD.

Invariants:
- Soft-deleted records never appear in default searches.
- Page size is clamped to ``settings.search_max_limit`` whatever the caller sends.
- ``total`` comes from a count query separate from the page read; the two are
  not snapshot-consistent under concurrent writes.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from time import monotonic
from typing import Any, Iterable, Sequence

from sqlalchemy import ColumnElement, Select, delete, func, or_, select
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from gallery.core.config import settings
from gallery.models.media import MediaItem, MediaTag, MediaType
from gallery.schema.media import BulkUpdateItem, BulkUpdateResult, MediaCreate, MediaUpdate
from gallery.schema.search import Pagination, SortField, SortOrder
from gallery.services.search_query import SearchQuery, build_search_query
from gallery.utils.datetime import utcnow

SEARCH_CONFIG = "english"
SHORT_QUERY_LENGTH = 2
FIELD_WEIGHTS = {"title": 3.0, "tags": 2.0, "description": 1.0}

logger = logging.getLogger("gallery.services.media")


class RetrievalFailure(Exception):
    """Raised when the media store cannot answer a read."""


class MediaWriteFailure(RetrievalFailure):
    """Raised when a create, update, or delete cannot be persisted."""


@dataclass(slots=True)
class MediaPage:
    """One page of ORM records and the pagination computed for it."""
    items: list[MediaItem]
    pagination: Pagination


def _normalize_search_text(value: str) -> str:
    if not value:
        return ""
    folded = value.casefold()
    normalized = unicodedata.normalize("NFKD", folded)
    stripped = "".join(char for char in normalized if not unicodedata.combining(char))
    cleaned = re.sub(r"[^\w\s]", " ", stripped)
    return " ".join(cleaned.split())


def score_relevance(query: str, *, title: str, description: str | None, tags: Iterable[str]) -> float:
    """Score a record against ``query`` using weighted term frequency.

    Queries of one or two characters match as substrings, longer ones match
    whole words, and any matching term is enough for a non-zero score.
    """
    normalized_query = _normalize_search_text(query)
    if not normalized_query:
        return 0.0
    fields = {
        "title": _normalize_search_text(title),
        "tags": _normalize_search_text(" ".join(tags)),
        "description": _normalize_search_text(description or ""),
    }
    if len(normalized_query) <= SHORT_QUERY_LENGTH:
        return sum(
            FIELD_WEIGHTS[name] for name, text in fields.items() if normalized_query in text
        )
    terms = dict.fromkeys(normalized_query.split())
    score = 0.0
    for name, text in fields.items():
        tokens = text.split()
        if not tokens:
            continue
        for term in terms:
            occurrences = tokens.count(term)
            if occurrences:
                score += FIELD_WEIGHTS[name] * occurrences
    return score


def _filter_clauses(query: SearchQuery, *, include_inactive: bool) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = []
    if not include_inactive:
        clauses.append(MediaItem.is_active.is_(True))
    if query.media_type is not None:
        clauses.append(MediaItem.media_type == query.media_type)
    if query.tags:
        tagged = select(MediaTag.media_item_id).where(MediaTag.name.in_(query.tags))
        clauses.append(MediaItem.id.in_(tagged))
    return clauses


def _sort_column(sort_by: SortField | None) -> ColumnElement[Any]:
    if sort_by == SortField.TITLE:
        return func.lower(MediaItem.title)
    return MediaItem.created_at


def _ordered(stmt: Select, query: SearchQuery) -> Select:
    column = _sort_column(query.sort_by)
    primary = column.asc() if query.effective_order == SortOrder.ASC else column.desc()
    return stmt.order_by(primary, MediaItem.id.asc())


def _document_vector() -> ColumnElement[Any]:
    tag_text = (
        select(func.string_agg(MediaTag.name, " "))
        .where(MediaTag.media_item_id == MediaItem.id)
        .correlate(MediaItem)
        .scalar_subquery()
    )
    title_vector = func.setweight(func.to_tsvector(SEARCH_CONFIG, MediaItem.title), "A")
    tag_vector = func.setweight(func.to_tsvector(SEARCH_CONFIG, func.coalesce(tag_text, "")), "B")
    description_vector = func.setweight(
        func.to_tsvector(SEARCH_CONFIG, func.coalesce(MediaItem.description, "")), "C"
    )
    return title_vector.op("||")(tag_vector).op("||")(description_vector)


def _naive_utc(value: datetime) -> datetime:
    # SQLite hands back naive timestamps while fresh objects hold aware ones.
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _clamp(query: SearchQuery) -> SearchQuery:
    if query.limit > settings.search_max_limit:
        return replace(query, limit=settings.search_max_limit)
    return query


async def _count(session: AsyncSession, clauses: Sequence[ColumnElement[bool]]) -> int:
    stmt = select(func.count()).select_from(MediaItem).where(*clauses)
    return int(await session.scalar(stmt) or 0)


async def _search_structured(
    session: AsyncSession, query: SearchQuery, clauses: list[ColumnElement[bool]]
) -> tuple[list[MediaItem], int]:
    total = await _count(session, clauses)
    stmt = _ordered(select(MediaItem).where(*clauses), query).offset(query.offset).limit(query.limit)
    result = await session.execute(stmt)
    return list(result.scalars().all()), total


async def _search_fulltext(
    session: AsyncSession, query: SearchQuery, clauses: list[ColumnElement[bool]]
) -> tuple[list[MediaItem], int, str]:
    vector = _document_vector()

    async def _run(ts_query) -> tuple[list[MediaItem], int]:
        matched = [*clauses, vector.op("@@")(ts_query)]
        total = await _count(session, matched)
        if query.ranks_by_relevance:
            rank = func.ts_rank_cd(vector, ts_query)
            stmt = select(MediaItem).where(*matched).order_by(rank.desc(), MediaItem.id.asc())
        else:
            stmt = _ordered(select(MediaItem).where(*matched), query)
        result = await session.execute(stmt.offset(query.offset).limit(query.limit))
        return list(result.scalars().all()), total

    try:
        items, total = await _run(func.websearch_to_tsquery(SEARCH_CONFIG, query.text))
        return items, total, "websearch"
    except DBAPIError:
        await session.rollback()
        items, total = await _run(func.plainto_tsquery(SEARCH_CONFIG, query.text))
        return items, total, "plain"


async def _search_fallback(
    session: AsyncSession, query: SearchQuery, clauses: list[ColumnElement[bool]]
) -> tuple[list[MediaItem], int]:
    result = await session.execute(select(MediaItem).where(*clauses))
    scored: list[tuple[float, MediaItem]] = []
    for item in result.scalars().all():
        score = score_relevance(
            query.text or "", title=item.title, description=item.description, tags=item.tags
        )
        if score:
            scored.append((score, item))

    if query.ranks_by_relevance:
        scored.sort(key=lambda entry: (-entry[0], entry[1].id))
        ordered = [item for _, item in scored]
    else:
        descending = query.effective_order == SortOrder.DESC
        ordered = sorted((item for _, item in scored), key=lambda item: item.id)
        if query.sort_by == SortField.TITLE:
            ordered.sort(key=lambda item: item.title.lower(), reverse=descending)
        else:
            ordered.sort(key=lambda item: _naive_utc(item.created_at), reverse=descending)
    return ordered[query.offset : query.offset + query.limit], len(ordered)


async def search_media(
    session: AsyncSession, query: SearchQuery, *, include_inactive: bool = False
) -> MediaPage:
    """Resolve ``query`` to one page of media items.

    Implementation notes:
    - Structured filters (active flag, kind, tags) are ANDed together.
    - Postgres ranks text matches with weighted ``ts_rank_cd``; other engines
      score in Python with the same field weights.
    - Ties on the sort field are broken by id ascending.
    """
    search_start = monotonic()
    query = _clamp(query)
    clauses = _filter_clauses(query, include_inactive=include_inactive)
    dialect_name = session.bind.dialect.name if session.bind else None
    try:
        if not query.text:
            items, total = await _search_structured(session, query, clauses)
            query_mode = "structured"
        elif dialect_name == "postgresql":
            items, total, query_mode = await _search_fulltext(session, query, clauses)
        else:
            items, total = await _search_fallback(session, query, clauses)
            query_mode = "fallback"
    except SQLAlchemyError as exc:
        logger.warning(
            "Media search failed",
            extra={"query_length": len(query.text or ""), "page": query.page, "error": str(exc)},
        )
        raise RetrievalFailure("Media search failed") from exc

    pagination = Pagination.build(page=query.page, limit=query.limit, total=total)
    search_ms = (monotonic() - search_start) * 1000
    logger.info(
        "Media search completed",
        extra={
            "query_length": len(query.text or ""),
            "query_mode": query_mode,
            "media_type": query.media_type.value if query.media_type else None,
            "tags": list(query.tags) or None,
            "sort": query.effective_sort,
            "offset": query.offset,
            "limit": query.limit,
            "returned": len(items),
            "total": total,
            "search_ms": round(search_ms, 2),
        },
    )
    return MediaPage(items=items, pagination=pagination)


async def suggest_tags(session: AsyncSession, fragment: str = "", *, limit: int | None = None) -> list[str]:
    """Return tags used by active media, most used first."""
    requested = limit if limit and limit > 0 else settings.tag_suggestion_default_limit
    capped = min(requested, settings.tag_suggestion_max_limit)
    usage = func.count(MediaTag.id)
    stmt = (
        select(MediaTag.name, usage)
        .join(MediaItem, MediaItem.id == MediaTag.media_item_id)
        .where(MediaItem.is_active.is_(True))
        .group_by(MediaTag.name)
        .order_by(usage.desc(), MediaTag.name.asc())
        .limit(capped)
    )
    cleaned = fragment.strip().lower()
    if cleaned:
        stmt = stmt.where(MediaTag.name.contains(cleaned, autoescape=True))
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as exc:
        raise RetrievalFailure("Tag suggestion lookup failed") from exc
    return [row[0] for row in result.all()]


async def get_media(session: AsyncSession, media_id: str, *, include_inactive: bool = False) -> MediaItem | None:
    """Fetch a media item by primary key, hiding soft-deleted rows by default."""
    stmt = select(MediaItem).where(MediaItem.id == media_id)
    if not include_inactive:
        stmt = stmt.where(MediaItem.is_active.is_(True))
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as exc:
        raise RetrievalFailure("Media lookup failed") from exc
    return result.scalar_one_or_none()


async def related_media(session: AsyncSession, media: MediaItem, *, limit: int | None = None) -> list[MediaItem]:
    """Active items sharing the record's kind or any of its tags, newest first."""
    matches: list[ColumnElement[bool]] = [MediaItem.media_type == media.media_type]
    if media.tags:
        tagged = select(MediaTag.media_item_id).where(MediaTag.name.in_(media.tags))
        matches.append(MediaItem.id.in_(tagged))
    stmt = (
        select(MediaItem)
        .where(MediaItem.id != media.id, MediaItem.is_active.is_(True), or_(*matches))
        .order_by(MediaItem.created_at.desc(), MediaItem.id.asc())
        .limit(limit or settings.related_media_limit)
    )
    try:
        result = await session.execute(stmt)
    except SQLAlchemyError as exc:
        raise RetrievalFailure("Related media lookup failed") from exc
    return list(result.scalars().all())


async def find_by_tag(session: AsyncSession, tag: str, *, page: int = 1, limit: int | None = None) -> MediaPage:
    query = build_search_query(
        tags=[tag],
        page=page,
        limit=limit,
        default_limit=settings.search_default_limit,
        max_limit=settings.search_max_limit,
    )
    return await search_media(session, query)


async def find_recent(session: AsyncSession, limit: int = 10) -> list[MediaItem]:
    query = build_search_query(limit=limit, max_limit=settings.search_max_limit)
    page = await search_media(session, query)
    return page.items


def _build_item(payload: MediaCreate) -> MediaItem:
    metadata = payload.media_metadata
    return MediaItem(
        title=payload.title,
        description=payload.description,
        url=payload.url,
        thumbnail_url=payload.thumbnail_url,
        media_type=payload.media_type,
        width=metadata.width,
        height=metadata.height,
        size_bytes=metadata.size,
        format=metadata.format,
        duration_seconds=metadata.duration if payload.media_type == MediaType.VIDEO else None,
        tag_links=[MediaTag(name=tag) for tag in payload.tags],
    )


async def _reload(session: AsyncSession, media: MediaItem) -> None:
    await session.refresh(media, attribute_names=["tag_links"])


async def _commit(session: AsyncSession, action: str) -> None:
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.warning("Media write failed", extra={"action": action, "error": str(exc)})
        raise MediaWriteFailure(f"Media {action} failed") from exc


async def create_media(session: AsyncSession, payload: MediaCreate) -> MediaItem:
    """Persist a new media record."""
    media = _build_item(payload)
    session.add(media)
    await _commit(session, "create")
    await _reload(session, media)
    return media


async def bulk_create_media(session: AsyncSession, payloads: Sequence[MediaCreate]) -> list[MediaItem]:
    """Persist several records in one transaction."""
    items = [_build_item(payload) for payload in payloads]
    session.add_all(items)
    await _commit(session, "create")
    for media in items:
        await _reload(session, media)
    return items


def _replace_tags(media: MediaItem, tags: list[str]) -> None:
    # Reuse surviving links so the unique (item, name) pair is never re-inserted.
    existing = {link.name: link for link in media.tag_links}
    media.tag_links = [existing.get(tag) or MediaTag(name=tag) for tag in tags]


def _apply_update(media: MediaItem, payload: MediaUpdate) -> None:
    changes = payload.model_dump(exclude_unset=True)
    for field_name in ("title", "description", "url", "thumbnail_url", "media_type", "is_active"):
        if field_name in changes and (changes[field_name] is not None or field_name == "description"):
            setattr(media, field_name, changes[field_name])
    if payload.tags is not None:
        _replace_tags(media, payload.tags)
    if payload.media_metadata is not None:
        metadata = payload.media_metadata.model_dump(exclude_unset=True)
        column_map = {
            "width": "width",
            "height": "height",
            "size": "size_bytes",
            "format": "format",
            "duration": "duration_seconds",
        }
        for key, column in column_map.items():
            if key in metadata:
                setattr(media, column, metadata[key])
    if media.media_type != MediaType.VIDEO:
        media.duration_seconds = None
    media.updated_at = utcnow()


async def update_media(session: AsyncSession, media_id: str, payload: MediaUpdate) -> MediaItem | None:
    """Apply a partial update; returns ``None`` for unknown ids."""
    media = await get_media(session, media_id, include_inactive=True)
    if media is None:
        return None
    _apply_update(media, payload)
    await _commit(session, "update")
    await _reload(session, media)
    return media


async def bulk_update_media(session: AsyncSession, updates: Sequence[BulkUpdateItem]) -> BulkUpdateResult:
    """Apply updates one by one; a failing entry does not abort the batch."""
    success = 0
    failed = 0
    for update in updates:
        try:
            media = await update_media(session, update.id, update.data)
        except (RetrievalFailure, SQLAlchemyError) as exc:
            await session.rollback()
            logger.warning("Bulk media update failed", extra={"media_id": update.id, "error": str(exc)})
            failed += 1
            continue
        if media is None:
            failed += 1
        else:
            success += 1
    return BulkUpdateResult(success=success, failed=failed)


async def soft_delete_media(session: AsyncSession, media_id: str) -> MediaItem | None:
    return await update_media(session, media_id, MediaUpdate(is_active=False))


async def restore_media(session: AsyncSession, media_id: str) -> MediaItem | None:
    return await update_media(session, media_id, MediaUpdate(is_active=True))


async def delete_media(session: AsyncSession, media_id: str) -> bool:
    """Hard delete a record and its tag links."""
    try:
        await session.execute(delete(MediaTag).where(MediaTag.media_item_id == media_id))
        result = await session.execute(delete(MediaItem).where(MediaItem.id == media_id))
    except SQLAlchemyError as exc:
        await session.rollback()
        raise MediaWriteFailure("Media delete failed") from exc
    await _commit(session, "delete")
    return bool(result.rowcount)
