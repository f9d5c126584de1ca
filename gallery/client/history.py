"""Most-recent-first memory of executed searches and tag filters."""

from __future__ import annotations

DEFAULT_HISTORY_LIMIT = 10
DEFAULT_RECENT_TAG_LIMIT = 20


def _push_front(values: list[str], value: str, limit: int) -> list[str]:
    return [value, *(existing for existing in values if existing != value)][:limit]


class SearchHistory:
    def __init__(self, *, limit: int = DEFAULT_HISTORY_LIMIT, tag_limit: int = DEFAULT_RECENT_TAG_LIMIT) -> None:
        self.limit = limit
        self.tag_limit = tag_limit
        self._queries: list[str] = []
        self._tags: list[str] = []

    @property
    def queries(self) -> list[str]:
        return list(self._queries)

    @property
    def recent_tags(self) -> list[str]:
        return list(self._tags)

    def record(self, query: str) -> None:
        """Move ``query`` to the front, dropping any older duplicate."""
        cleaned = query.strip()
        if cleaned:
            self._queries = _push_front(self._queries, cleaned, self.limit)

    def record_tags(self, tags: list[str] | tuple[str, ...]) -> None:
        for tag in tags:
            self._tags = _push_front(self._tags, tag, self.tag_limit)

    def remove_tag(self, tag: str) -> None:
        self._tags = [existing for existing in self._tags if existing != tag]

    def clear(self) -> None:
        self._queries = []

    def clear_tags(self) -> None:
        self._tags = []
