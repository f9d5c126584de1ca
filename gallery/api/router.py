"""API router composition for all route groups."""

from fastapi import APIRouter

from .routes import media, search

api_router = APIRouter()
api_router.include_router(search.router, prefix="/search", tags=["search"])
api_router.include_router(media.router, tags=["media"])
