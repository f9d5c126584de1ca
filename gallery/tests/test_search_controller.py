from __future__ import annotations

import asyncio

import pytest

from gallery.client import (
    ControllerConfig,
    SearchCache,
    SearchController,
    SearchOutcome,
    SearchRequestFailed,
    SearchState,
)
from gallery.models.media import MediaType
from gallery.tests.client_fakes import FakeSearchTransport


def _controller(transport: FakeSearchTransport, **kwargs) -> SearchController:
    config = kwargs.pop("config", None) or ControllerConfig(debounce_seconds=0.01)
    return SearchController(transport, config=config, **kwargs)


async def _until_called(transport: FakeSearchTransport, count: int = 1) -> None:
    while len(transport.calls) < count:
        await asyncio.sleep(0)


@pytest.mark.asyncio
async def test_keystrokes_within_debounce_window_issue_one_request():
    transport = FakeSearchTransport()
    controller = _controller(transport)

    controller.set_query("s")
    controller.set_query("su")
    controller.set_query("sun")
    assert controller.state == SearchState.DEBOUNCING
    assert transport.calls == []

    await asyncio.sleep(0.05)
    await controller.wait_idle()

    assert [query.text for query in transport.calls] == ["sun"]
    assert controller.query == "sun"
    assert len(controller.store.items) == 12
    assert controller.state == SearchState.IDLE


@pytest.mark.asyncio
async def test_repeated_search_is_served_from_cache():
    transport = FakeSearchTransport()
    controller = _controller(transport)

    first = await controller.search("sunset")
    second = await controller.search("sunset")

    assert len(transport.calls) == 1
    assert second == first
    assert [item.id for item in controller.store.items] == [item.id for item in first.data]


@pytest.mark.asyncio
async def test_cache_entries_expire_after_ttl():
    now = [1000.0]
    transport = FakeSearchTransport()
    controller = _controller(transport, cache=SearchCache(ttl_seconds=300, clock=lambda: now[0]))

    await controller.search("sunset")
    now[0] += 299
    await controller.search("sunset")
    assert len(transport.calls) == 1

    now[0] += 1
    await controller.search("sunset")
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_disabled_cache_always_fetches():
    transport = FakeSearchTransport()
    controller = _controller(transport, config=ControllerConfig(debounce_seconds=0.01, cache_enabled=False))

    await controller.search("sunset")
    await controller.search("sunset")

    assert controller.cache is None
    assert len(transport.calls) == 2


@pytest.mark.asyncio
async def test_newest_query_wins_over_slow_earlier_response():
    transport = FakeSearchTransport()
    gate = transport.hold("slow")
    controller = _controller(transport)

    slow = asyncio.create_task(controller.search("slow"))
    await _until_called(transport)
    assert controller.state == SearchState.FETCHING
    assert controller.store.loading is True

    fast = await controller.search("fast")
    gate.set()

    assert await slow is None
    assert fast is not None
    assert controller.store.items[0].id == "fast-0"
    assert controller.store.error is None
    assert controller.last_outcome == SearchOutcome.SUCCEEDED
    assert controller.history.queries == ["fast"]


@pytest.mark.asyncio
async def test_new_input_cancels_request_still_in_flight():
    transport = FakeSearchTransport()
    gate = transport.hold("old")
    controller = _controller(transport, config=ControllerConfig(debounce_seconds=0.2))

    old = asyncio.create_task(controller.search("old"))
    await _until_called(transport)
    controller.set_query("new")
    gate.set()

    assert await old is None
    assert controller.store.items == []
    assert controller.store.loading is False
    assert controller.last_outcome == SearchOutcome.CANCELLED
    assert controller.state == SearchState.DEBOUNCING
    assert controller.history.queries == []
    assert len(controller.cache) == 0
    controller.clear_results()


@pytest.mark.asyncio
async def test_load_more_appends_pages_until_exhausted():
    transport = FakeSearchTransport(total=30)
    controller = _controller(transport)

    await controller.search("sun")
    first_ids = [item.id for item in controller.store.items]
    assert controller.store.has_more is True

    await controller.load_more()
    assert len(controller.store.items) == 24
    assert [item.id for item in controller.store.items[:12]] == first_ids
    assert controller.store.pagination.page == 2

    await controller.load_more()
    assert len(controller.store.items) == 30
    assert controller.store.has_more is False

    assert await controller.load_more() is None
    assert [query.page for query in transport.calls] == [1, 2, 3]
    assert len(controller.cache) == 1


@pytest.mark.asyncio
async def test_load_more_is_a_no_op_without_results_or_while_fetching():
    transport = FakeSearchTransport()
    controller = _controller(transport)
    assert await controller.load_more() is None

    await controller.search("sun")
    gate = transport.hold("sun")
    pending = asyncio.create_task(controller.load_more())
    await _until_called(transport, 2)

    assert await controller.load_more() is None
    gate.set()
    await pending
    assert [query.page for query in transport.calls] == [1, 2]


@pytest.mark.asyncio
async def test_failure_keeps_items_and_retry_resumes():
    transport = FakeSearchTransport()
    controller = _controller(transport)
    await controller.search("sun")

    transport.error = SearchRequestFailed("Search failed: 500 Internal Server Error", 500)
    assert await controller.load_more() is None

    assert controller.store.error == "Search failed: 500 Internal Server Error"
    assert len(controller.store.items) == 12
    assert controller.store.loading is False
    assert controller.last_outcome == SearchOutcome.FAILED

    transport.error = None
    await controller.retry()
    assert controller.store.error is None
    assert len(controller.store.items) == 24


@pytest.mark.asyncio
async def test_clear_results_aborts_in_flight_request():
    transport = FakeSearchTransport()
    gate = transport.hold("slow")
    controller = _controller(transport)

    task = asyncio.create_task(controller.search("slow"))
    await _until_called(transport)
    controller.clear_results()
    gate.set()

    assert await task is None
    assert controller.store.items == []
    assert controller.store.loading is False
    assert controller.active_query is None
    assert controller.last_outcome == SearchOutcome.CANCELLED
    assert controller.state == SearchState.IDLE


@pytest.mark.asyncio
async def test_blank_query_clears_results_without_request():
    transport = FakeSearchTransport()
    controller = _controller(transport)
    await controller.search("sun")

    controller.set_query("   ")

    assert controller.store.items == []
    assert controller.state == SearchState.IDLE
    assert len(transport.calls) == 1


@pytest.mark.asyncio
async def test_history_is_most_recent_first_without_duplicates():
    transport = FakeSearchTransport()
    controller = _controller(transport)

    for text in ("sunset", "forest", "sunset"):
        await controller.search(text)

    assert controller.history.queries == ["sunset", "forest"]
    controller.clear_history()
    assert controller.history.queries == []


@pytest.mark.asyncio
async def test_params_are_merged_into_the_next_search():
    transport = FakeSearchTransport()
    controller = _controller(transport)

    controller.set_params(type="video", tags=["b", "a"], sortBy="title", sortOrder="asc", page=9)
    await controller.search("clip")

    query = transport.calls[0]
    assert query.media_type == MediaType.VIDEO
    assert query.tags == ("a", "b")
    assert query.sort_order.value == "asc"
    assert query.page == 1
    assert controller.history.recent_tags == ["b", "a"]


@pytest.mark.asyncio
async def test_store_listeners_see_each_transition():
    transport = FakeSearchTransport()
    controller = _controller(transport)
    seen: list[tuple[bool, int]] = []
    unsubscribe = controller.store.subscribe(lambda store: seen.append((store.loading, len(store.items))))

    await controller.search("sun")
    unsubscribe()
    await controller.search("moon")

    assert seen == [(True, 0), (False, 12)]


@pytest.mark.asyncio
async def test_aclose_closes_owned_transport():
    transport = FakeSearchTransport()
    async with SearchController(transport, owns_transport=True) as controller:
        await controller.search("sun")
    assert transport.closed is True

    shared = FakeSearchTransport()
    async with SearchController(shared):
        pass
    assert shared.closed is False
