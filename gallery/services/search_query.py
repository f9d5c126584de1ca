"""Normalization of user-facing search parameters.

Invariants:
- Building is pure: identical inputs always yield an identical query and cache key.
- Malformed pagination or sort values fall back to defaults instead of raising.
- The cache key pins ``page`` to 1; only first pages are ever memoized.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, replace
from typing import Any, Iterable

from gallery.models.media import MediaType
from gallery.schema.search import SortField, SortOrder

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
MAX_QUERY_LENGTH = 256
RELEVANCE = "relevance"

_SORT_FIELD_ALIASES = {
    "createdat": SortField.CREATED_AT,
    "created_at": SortField.CREATED_AT,
    "title": SortField.TITLE,
}


@dataclass(frozen=True, slots=True)
class SearchQuery:
    """Normalized search request.

    ``sort_by`` is ``None`` when the caller did not ask for a sort field; text
    searches then rank by relevance and everything else falls back to newest
    first.
    """

    text: str | None = None
    media_type: MediaType | None = None
    tags: tuple[str, ...] = ()
    sort_by: SortField | None = None
    sort_order: SortOrder = SortOrder.DESC
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def ranks_by_relevance(self) -> bool:
        return bool(self.text) and self.sort_by is None

    @property
    def effective_sort(self) -> str:
        if self.ranks_by_relevance:
            return RELEVANCE
        return (self.sort_by or SortField.CREATED_AT).value

    @property
    def effective_order(self) -> SortOrder:
        # Relevance is always strongest-first.
        return SortOrder.DESC if self.ranks_by_relevance else self.sort_order

    def with_page(self, page: int) -> "SearchQuery":
        return replace(self, page=coerce_positive_int(page, DEFAULT_PAGE))

    def to_params(self) -> list[tuple[str, str]]:
        """Render the query as ``GET /api/search`` parameters."""
        params: list[tuple[str, str]] = []
        if self.text:
            params.append(("query", self.text))
        params.append(("type", self.media_type.value if self.media_type else "all"))
        params.extend(("tags", tag) for tag in self.tags)
        if self.sort_by is not None:
            params.append(("sortBy", self.sort_by.value))
        params.append(("sortOrder", self.sort_order.value))
        params.append(("page", str(self.page)))
        params.append(("limit", str(self.limit)))
        return params


def coerce_positive_int(value: Any, default: int) -> int:
    """Parse a positive integer, returning ``default`` for anything else."""
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value >= 1 else default
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 1 else default


def normalize_text(value: str | None, *, max_length: int = MAX_QUERY_LENGTH) -> str | None:
    if not value:
        return None
    stripped = str(value).strip()
    if not stripped:
        return None
    return stripped[:max_length].rstrip()


def normalize_media_type(value: MediaType | str | None) -> MediaType | None:
    """Map ``all``, blanks, and unknown kinds to "no kind filter"."""
    if value is None or isinstance(value, MediaType):
        return value
    try:
        return MediaType(str(value).strip().lower())
    except ValueError:
        return None


def normalize_tag_filter(values: str | Iterable[str] | None) -> tuple[str, ...]:
    """Split comma-separated entries, lowercase, dedupe, and sort tags."""
    if not values:
        return ()
    if isinstance(values, str):
        values = [values]
    tags: set[str] = set()
    for value in values:
        if value is None:
            continue
        for part in str(value).split(","):
            tag = part.strip().lower()
            if tag:
                tags.add(tag)
    return tuple(sorted(tags))


def normalize_sort_field(value: SortField | str | None) -> SortField | None:
    if value is None or isinstance(value, SortField):
        return value
    return _SORT_FIELD_ALIASES.get(str(value).strip().lower())


def normalize_sort_order(value: SortOrder | str | None) -> SortOrder:
    if isinstance(value, SortOrder):
        return value
    if value is not None and str(value).strip().lower() == SortOrder.ASC.value:
        return SortOrder.ASC
    return SortOrder.DESC


def build_search_query(
    text: str | None = None,
    *,
    media_type: MediaType | str | None = None,
    tags: str | Iterable[str] | None = None,
    sort_by: SortField | str | None = None,
    sort_order: SortOrder | str | None = None,
    page: Any = DEFAULT_PAGE,
    limit: Any = DEFAULT_LIMIT,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
    max_query_length: int = MAX_QUERY_LENGTH,
) -> SearchQuery:
    """Translate raw search inputs into a :class:`SearchQuery`."""
    return SearchQuery(
        text=normalize_text(text, max_length=max_query_length),
        media_type=normalize_media_type(media_type),
        tags=normalize_tag_filter(tags),
        sort_by=normalize_sort_field(sort_by),
        sort_order=normalize_sort_order(sort_order),
        page=coerce_positive_int(page, DEFAULT_PAGE),
        limit=min(coerce_positive_int(limit, default_limit), max_limit),
    )


def search_cache_key(query: SearchQuery) -> str:
    """Serialize the result-affecting parts of ``query`` with page pinned to 1."""
    payload = {
        "query": query.text or "",
        "type": query.media_type.value if query.media_type else "all",
        "tags": list(query.tags),
        "sortBy": query.effective_sort,
        "sortOrder": query.effective_order.value,
        "page": 1,
        "limit": query.limit,
    }
    return json.dumps(payload, sort_keys=True, separators=(",", ":"))
