"""Client-side state for a search session: items, paging, and status flags.

Invariants:
- ``append`` never drops or reorders items already held.
- ``replace`` and ``reset`` are the only operations that may shrink ``items``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from gallery.schema.media import MediaRead
from gallery.schema.search import SearchPage

logger = logging.getLogger("gallery.client.store")

Listener = Callable[["MediaStore"], None]


@dataclass(frozen=True, slots=True)
class PaginationState:
    page: int = 1
    limit: int = 0
    total: int = 0
    total_pages: int = 0

    @property
    def has_more(self) -> bool:
        return self.page < self.total_pages


class MediaStore:
    """Last known good results, consumed read-only by presentation code."""

    def __init__(self) -> None:
        self.items: list[MediaRead] = []
        self.pagination = PaginationState()
        self.loading = False
        self.error: str | None = None
        self._listeners: list[Listener] = []

    @property
    def has_more(self) -> bool:
        return self.pagination.has_more

    @property
    def total(self) -> int:
        return self.pagination.total

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` for change notifications; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Media store listener failed")

    def _apply_pagination(self, page: SearchPage) -> None:
        meta = page.pagination
        self.pagination = PaginationState(
            page=meta.page, limit=meta.limit, total=meta.total, total_pages=meta.total_pages
        )

    def begin(self) -> None:
        self.loading = True
        self._notify()

    def replace(self, page: SearchPage) -> None:
        """Overwrite items and pagination with a first-page result."""
        self.items = list(page.data)
        self._apply_pagination(page)
        self.loading = False
        self.error = None
        self._notify()

    def append(self, page: SearchPage) -> None:
        """Add a follow-up page after the items already shown."""
        self.items = [*self.items, *page.data]
        self._apply_pagination(page)
        self.loading = False
        self.error = None
        self._notify()

    def fail(self, message: str) -> None:
        """Record an error while keeping the items on screen."""
        self.loading = False
        self.error = message
        self._notify()

    def settle(self) -> None:
        if self.loading:
            self.loading = False
            self._notify()

    def reset(self) -> None:
        self.items = []
        self.pagination = PaginationState()
        self.loading = False
        self.error = None
        self._notify()
