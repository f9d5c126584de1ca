"""Media record endpoints: listing, detail, and lifecycle changes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from gallery.api.deps import get_db
from gallery.core.config import settings
from gallery.schema.media import MediaCreate, MediaDetail, MediaRead, MediaUpdate
from gallery.schema.search import MediaDetailResponse, MediaResponse, SearchResponse
from gallery.services import media_service
from gallery.services.search_query import build_search_query

router = APIRouter()


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")


@router.get("/media", response_model=SearchResponse)
async def list_media(
    media_type: str | None = Query(default=None, alias="type"),
    tag: list[str] | None = Query(default=None),
    sort_by: str | None = Query(default=None, alias="sortBy"),
    sort_order: str | None = Query(default=None, alias="sortOrder"),
    page: str | None = Query(default=None),
    limit: str | None = Query(default=None),
    session: AsyncSession = Depends(get_db),
) -> SearchResponse:
    """List active media, newest first unless another order is requested."""
    query = build_search_query(
        media_type=media_type,
        tags=tag,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
        default_limit=settings.search_default_limit,
        max_limit=settings.search_max_limit,
    )
    result = await media_service.search_media(session, query)
    return SearchResponse(
        data=[MediaRead.model_validate(item) for item in result.items],
        pagination=result.pagination,
    )


@router.post("/media", response_model=MediaResponse, status_code=status.HTTP_201_CREATED)
async def create_media(payload: MediaCreate, session: AsyncSession = Depends(get_db)) -> MediaResponse:
    media = await media_service.create_media(session, payload)
    return MediaResponse(data=MediaRead.model_validate(media))


@router.get("/media/{media_id}", response_model=MediaDetailResponse)
async def get_media_detail(media_id: str, session: AsyncSession = Depends(get_db)) -> MediaDetailResponse:
    """Return an active media item with related recommendations."""
    media = await media_service.get_media(session, media_id)
    if not media:
        raise _not_found()
    related = await media_service.related_media(session, media)
    detail = MediaDetail(
        media=MediaRead.model_validate(media),
        related_media=[MediaRead.model_validate(item) for item in related],
    )
    return MediaDetailResponse(data=detail)


@router.patch("/media/{media_id}", response_model=MediaResponse)
async def update_media(
    media_id: str, payload: MediaUpdate, session: AsyncSession = Depends(get_db)
) -> MediaResponse:
    media = await media_service.update_media(session, media_id, payload)
    if not media:
        raise _not_found()
    return MediaResponse(data=MediaRead.model_validate(media))


@router.delete("/media/{media_id}", response_model=MediaResponse)
async def soft_delete_media(media_id: str, session: AsyncSession = Depends(get_db)) -> MediaResponse:
    """Hide a record from searches without removing it."""
    media = await media_service.soft_delete_media(session, media_id)
    if not media:
        raise _not_found()
    return MediaResponse(data=MediaRead.model_validate(media))


@router.post("/media/{media_id}/restore", response_model=MediaResponse)
async def restore_media(media_id: str, session: AsyncSession = Depends(get_db)) -> MediaResponse:
    media = await media_service.restore_media(session, media_id)
    if not media:
        raise _not_found()
    return MediaResponse(data=MediaRead.model_validate(media))
