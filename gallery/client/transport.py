"""HTTP transport used by the search controller.

Invariants:
- A cancelled token aborts the in-flight HTTP call and raises ``RequestCancelled``.
- Server envelopes with ``success: false`` and HTTP 4xx/5xx both raise ``SearchRequestFailed``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

import httpx
from pydantic import ValidationError

from gallery.client.cancellation import CancellationToken, RequestCancelled
from gallery.schema.search import SearchPage
from gallery.services.search_query import SearchQuery

DEFAULT_SEARCH_PATH = "/api/search"

logger = logging.getLogger("gallery.client.transport")


class SearchError(Exception):
    """Base class for search failures surfaced to the user."""


class SearchRequestFailed(SearchError):
    """The server answered with an error envelope or an error status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SearchNetworkError(SearchError):
    """The request never produced an HTTP response."""


class SearchTransport(Protocol):
    async def fetch(self, query: SearchQuery, token: CancellationToken) -> SearchPage: ...

    async def aclose(self) -> None: ...


def _parse_response(response: httpx.Response) -> SearchPage:
    try:
        payload: Any = response.json()
    except ValueError:
        payload = None
    if not isinstance(payload, dict):
        raise SearchRequestFailed(
            f"Search failed: {response.status_code} {response.reason_phrase}".strip(),
            response.status_code,
        )
    if response.is_error or not payload.get("success", False):
        message = payload.get("message") or f"Search failed: {response.status_code} {response.reason_phrase}"
        raise SearchRequestFailed(str(message).strip(), response.status_code)
    try:
        return SearchPage.model_validate(payload)
    except ValidationError as exc:
        raise SearchRequestFailed("Malformed search response", response.status_code) from exc


class HttpSearchTransport:
    """Issue ``GET /api/search`` requests through an ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str = "",
        *,
        client: httpx.AsyncClient | None = None,
        path: str = DEFAULT_SEARCH_PATH,
        timeout: httpx.Timeout | float | None = None,
    ) -> None:
        if client is None:
            options: dict[str, Any] = {"base_url": base_url}
            if timeout is not None:
                options["timeout"] = timeout
            client = httpx.AsyncClient(**options)
            self._owns_client = True
        else:
            self._owns_client = False
        self._client = client
        self.path = path

    async def fetch(self, query: SearchQuery, token: CancellationToken) -> SearchPage:
        token.raise_if_cancelled()
        request = asyncio.ensure_future(self._client.get(self.path, params=query.to_params()))
        cancelled = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait({request, cancelled}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            cancelled.cancel()
            if not request.done():
                request.cancel()
                await asyncio.gather(request, return_exceptions=True)

        if request not in done or token.cancelled:
            logger.debug("Search request cancelled", extra={"reason": token.reason, "page": query.page})
            raise RequestCancelled(token.reason or "cancelled")
        try:
            response = request.result()
        except httpx.HTTPError as exc:
            raise SearchNetworkError(f"Search request failed: {exc}") from exc
        return _parse_response(response)

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
