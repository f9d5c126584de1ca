"""Search pagination and response envelope schemas."""

from __future__ import annotations

import enum
import math

from pydantic import Field

from gallery.schema.base import CamelModel
from gallery.schema.media import MediaDetail, MediaRead


class SortField(str, enum.Enum):
    """Fields a caller may sort search results by."""
    CREATED_AT = "createdAt"
    TITLE = "title"


class SortOrder(str, enum.Enum):
    ASC = "asc"
    DESC = "desc"


class Pagination(CamelModel):
    """Page metadata returned with every paginated response."""
    page: int = Field(ge=1)
    limit: int = Field(ge=1)
    total: int = Field(ge=0)
    total_pages: int = Field(ge=0)

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> "Pagination":
        return cls(page=page, limit=limit, total=total, total_pages=math.ceil(total / limit))

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages


class SearchPage(CamelModel):
    """One page of media records plus its pagination metadata."""
    data: list[MediaRead] = Field(default_factory=list)
    pagination: Pagination


class SearchResponse(SearchPage):
    """Success envelope for paginated endpoints."""
    success: bool = True


class MediaResponse(CamelModel):
    success: bool = True
    data: MediaRead


class MediaDetailResponse(CamelModel):
    success: bool = True
    data: MediaDetail


class TagSuggestionResponse(CamelModel):
    success: bool = True
    data: list[str] = Field(default_factory=list)


class ErrorResponse(CamelModel):
    """Failure envelope surfaced to clients."""
    success: bool = False
    message: str
