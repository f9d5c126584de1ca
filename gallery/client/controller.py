"""Search session controller: debounce, cache, cancellation, and incremental loading.

Invariants:
- At most one request is outstanding per controller; issuing a new one cancels the old token.
- A cancelled request never touches the store, so the newest query always wins.
- Only first pages are cached; ``load_more`` always goes to the network and appends.
- Failures keep the items already shown; cancellations are not failures.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from gallery.client.cache import DEFAULT_MAX_ENTRIES, DEFAULT_TTL_SECONDS, SearchCache
from gallery.client.cancellation import CancellationToken, RequestCancelled
from gallery.client.debounce import Debouncer
from gallery.client.history import DEFAULT_HISTORY_LIMIT, SearchHistory
from gallery.client.store import MediaStore
from gallery.client.transport import HttpSearchTransport, SearchError, SearchTransport
from gallery.schema.search import SearchPage
from gallery.services.search_query import SearchQuery, build_search_query, search_cache_key

DEFAULT_PAGE_SIZE = 12
_PARAM_ALIASES = {"type": "media_type", "sortBy": "sort_by", "sortOrder": "sort_order"}

logger = logging.getLogger("gallery.client.search")


class SearchState(str, enum.Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    FETCHING = "fetching"


class SearchOutcome(str, enum.Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class ControllerConfig:
    """Tunables for one search session."""
    debounce_seconds: float = 0.3
    cache_enabled: bool = True
    cache_ttl_seconds: float = DEFAULT_TTL_SECONDS
    cache_max_entries: int | None = DEFAULT_MAX_ENTRIES
    history_limit: int = DEFAULT_HISTORY_LIMIT
    page_size: int = DEFAULT_PAGE_SIZE


@dataclass(frozen=True, slots=True)
class SearchParams:
    """Structured filters kept between searches."""
    media_type: str = "all"
    tags: tuple[str, ...] = field(default_factory=tuple)
    sort_by: str | None = None
    sort_order: str = "desc"
    limit: int = DEFAULT_PAGE_SIZE

    def merged(self, changes: "SearchParams | Mapping[str, Any] | None") -> "SearchParams":
        if changes is None:
            return self
        if isinstance(changes, SearchParams):
            return changes
        updates = {
            _PARAM_ALIASES.get(key, key): value for key, value in changes.items() if key != "page"
        }
        if "tags" in updates and updates["tags"] is not None:
            updates["tags"] = tuple(updates["tags"])
        return replace(self, **updates)


class SearchController:
    """Drive one search UI: user input in, :class:`MediaStore` updates out.

    Each mounted search surface needs its own controller; sharing one would
    let unrelated queries cancel each other.
    """

    def __init__(
        self,
        transport: SearchTransport,
        *,
        store: MediaStore | None = None,
        cache: SearchCache | None = None,
        history: SearchHistory | None = None,
        config: ControllerConfig | None = None,
        params: SearchParams | None = None,
        owns_transport: bool = False,
    ) -> None:
        self.config = config or ControllerConfig()
        self.transport = transport
        self.store = store or MediaStore()
        if cache is None and self.config.cache_enabled:
            cache = SearchCache(
                ttl_seconds=self.config.cache_ttl_seconds,
                max_entries=self.config.cache_max_entries,
            )
        self.cache = cache if self.config.cache_enabled else None
        self.history = history or SearchHistory(limit=self.config.history_limit)
        self.params = params or SearchParams(limit=self.config.page_size)
        self._owns_transport = owns_transport
        self._debouncer = Debouncer(self.config.debounce_seconds)
        self._token: CancellationToken | None = None
        self._active: SearchQuery | None = None
        self._last_attempt: SearchQuery | None = None
        self._text = ""
        self.last_outcome: SearchOutcome | None = None

    @classmethod
    def over_http(cls, base_url: str = "", **kwargs: Any) -> "SearchController":
        """Build a controller that owns its own HTTP transport."""
        return cls(HttpSearchTransport(base_url), owns_transport=True, **kwargs)

    async def __aenter__(self) -> "SearchController":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    @property
    def query(self) -> str:
        return self._text

    @property
    def state(self) -> SearchState:
        if self._debouncer.pending:
            return SearchState.DEBOUNCING
        if self._token is not None:
            return SearchState.FETCHING
        return SearchState.IDLE

    @property
    def active_query(self) -> SearchQuery | None:
        return self._active

    def set_query(self, text: str) -> None:
        """Record ``text`` for display and restart the debounce timer."""
        self._text = text
        if not text.strip():
            self.clear_results()
            return
        self._cancel_inflight("superseded")
        self._debouncer.schedule(lambda: self.search(text))

    def set_params(self, **changes: Any) -> None:
        self.params = self.params.merged(changes)

    async def search(
        self,
        query: str | None = None,
        params: SearchParams | Mapping[str, Any] | None = None,
        *,
        page: int = 1,
    ) -> SearchPage | None:
        """Run a search now, bypassing the debounce timer."""
        self._debouncer.cancel()
        self.params = self.params.merged(params)
        text = self._text if query is None else query
        built = build_search_query(
            text,
            media_type=self.params.media_type,
            tags=self.params.tags,
            sort_by=self.params.sort_by,
            sort_order=self.params.sort_order,
            page=page,
            limit=self.params.limit,
            default_limit=self.config.page_size,
        )
        return await self._execute(built)

    async def load_more(self) -> SearchPage | None:
        """Fetch the next page of the active query and append it."""
        if self._active is None or not self.store.has_more:
            return None
        if self._token is not None or self._debouncer.pending:
            return None
        return await self._execute(self._active.with_page(self.store.pagination.page + 1))

    async def retry(self) -> SearchPage | None:
        """Re-issue the most recently attempted request."""
        if self._last_attempt is None:
            return None
        return await self._execute(self._last_attempt)

    def clear_results(self) -> None:
        """Drop results, paging, and errors, aborting any pending work."""
        self._debouncer.cancel()
        self._cancel_inflight("cleared")
        self._active = None
        self.store.reset()

    def clear_history(self) -> None:
        self.history.clear()

    async def wait_idle(self) -> None:
        """Wait until the most recently fired debounced search has finished."""
        await self._debouncer.wait()

    async def aclose(self) -> None:
        self._debouncer.cancel()
        self._cancel_inflight("closed")
        await self._debouncer.wait()
        if self._owns_transport:
            await self.transport.aclose()

    def _cancel_inflight(self, reason: str) -> None:
        if self._token is None:
            return
        self._token.cancel(reason)
        self._token = None
        self.last_outcome = SearchOutcome.CANCELLED
        self.store.settle()

    async def _execute(self, query: SearchQuery) -> SearchPage | None:
        append = query.page > 1
        self._cancel_inflight("superseded")
        self._last_attempt = query

        if not append and self.cache is not None:
            cached = self.cache.get(search_cache_key(query))
            if cached is not None:
                logger.debug("Search cache hit", extra={"query_length": len(query.text or "")})
                self._apply(query, cached, append=False)
                return cached

        token = CancellationToken()
        self._token = token
        self.store.begin()
        try:
            page = await self.transport.fetch(query, token)
        except RequestCancelled:
            return None
        except SearchError as exc:
            if self._token is not token:
                return None
            self._token = None
            self.last_outcome = SearchOutcome.FAILED
            logger.warning(
                "Search failed",
                extra={"query_length": len(query.text or ""), "page": query.page, "error": str(exc)},
            )
            self.store.fail(str(exc))
            return None

        if token.cancelled or self._token is not token:
            return None
        self._token = None
        if not append and self.cache is not None:
            self.cache.put(search_cache_key(query), page)
        self._apply(query, page, append=append)
        return page

    def _apply(self, query: SearchQuery, page: SearchPage, *, append: bool) -> None:
        if append:
            self.store.append(page)
        else:
            self.store.replace(page)
            if query.text:
                self.history.record(query.text)
            if query.tags:
                self.history.record_tags(query.tags)
        self._active = query
        self.last_outcome = SearchOutcome.SUCCEEDED
