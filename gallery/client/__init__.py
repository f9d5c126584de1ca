"""Async client for the gallery search API."""

from gallery.client.cache import SearchCache
from gallery.client.cancellation import CancellationToken, RequestCancelled
from gallery.client.controller import (
    ControllerConfig,
    SearchController,
    SearchOutcome,
    SearchParams,
    SearchState,
)
from gallery.client.debounce import Debouncer
from gallery.client.history import SearchHistory
from gallery.client.infinite_scroll import InfiniteScrollTrigger
from gallery.client.store import MediaStore, PaginationState
from gallery.client.transport import (
    HttpSearchTransport,
    SearchError,
    SearchNetworkError,
    SearchRequestFailed,
)

__all__ = [
    "CancellationToken",
    "ControllerConfig",
    "Debouncer",
    "HttpSearchTransport",
    "InfiniteScrollTrigger",
    "MediaStore",
    "PaginationState",
    "RequestCancelled",
    "SearchCache",
    "SearchController",
    "SearchError",
    "SearchHistory",
    "SearchNetworkError",
    "SearchOutcome",
    "SearchParams",
    "SearchRequestFailed",
    "SearchState",
]
