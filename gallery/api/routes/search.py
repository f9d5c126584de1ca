"""Search endpoints over the media collection.

Invariants:
- Malformed paging or sort parameters are coerced, never rejected.
- Storage failures propagate as ``RetrievalFailure`` for the app-level handler.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from gallery.api.deps import get_db
from gallery.core.config import settings
from gallery.schema.media import MediaRead
from gallery.schema.search import SearchResponse, TagSuggestionResponse
from gallery.services import media_service
from gallery.services.search_query import build_search_query, coerce_positive_int

router = APIRouter()


@router.get("", response_model=SearchResponse)
async def search(
    response: Response,
    query: str | None = Query(default=None),
    q: str | None = Query(default=None),
    media_type: str | None = Query(default=None, alias="type"),
    tags: list[str] | None = Query(default=None),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: str | None = Query(default=None, alias="sortOrder"),
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    session: AsyncSession = Depends(get_db),
) -> SearchResponse:
    """Search active media by text, kind, and tags with stable pagination."""
    search_query = build_search_query(
        query if query is not None else q,
        media_type=media_type,
        tags=tags,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
        default_limit=settings.search_default_limit,
        max_limit=settings.search_max_limit,
        max_query_length=settings.search_query_max_length,
    )
    result = await media_service.search_media(session, search_query)
    response.headers["Cache-Control"] = settings.search_cache_control
    return SearchResponse(
        data=[MediaRead.model_validate(item) for item in result.items],
        pagination=result.pagination,
    )


@router.get("/tags", response_model=TagSuggestionResponse)
async def suggest_tags(
    q: str = Query(default=""),
    limit: str | None = Query(default=None),
    session: AsyncSession = Depends(get_db),
) -> TagSuggestionResponse:
    """Suggest tags from active media, most used first."""
    capped = coerce_positive_int(limit, settings.tag_suggestion_default_limit)
    tags = await media_service.suggest_tags(session, q, limit=capped)
    return TagSuggestionResponse(data=tags)
