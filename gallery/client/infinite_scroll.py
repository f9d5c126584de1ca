"""Turn "sentinel is visible" signals into debounced ``load_more`` calls."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from gallery.client.debounce import Debouncer

if TYPE_CHECKING:  # pragma: no cover
    from gallery.client.controller import SearchController

DEFAULT_SCROLL_DEBOUNCE_SECONDS = 0.1

logger = logging.getLogger("gallery.client.scroll")


class InfiniteScrollTrigger:
    """Invoke ``load_more`` when the end of the list becomes visible.

    Visibility bursts are coalesced, and signals are ignored while disabled,
    while a load runs, or when nothing more is available.
    """

    def __init__(
        self,
        load_more: Callable[[], Awaitable[object]],
        *,
        has_more: Callable[[], bool] = lambda: True,
        debounce_seconds: float = DEFAULT_SCROLL_DEBOUNCE_SECONDS,
        disabled: bool = False,
        on_error: Callable[[Exception], None] | None = None,
    ) -> None:
        self._load_more = load_more
        self._has_more = has_more
        self._debouncer = Debouncer(debounce_seconds)
        self._on_error = on_error
        self.disabled = disabled
        self.is_fetching = False
        self.error: Exception | None = None

    @classmethod
    def for_controller(cls, controller: "SearchController", **kwargs) -> "InfiniteScrollTrigger":
        return cls(controller.load_more, has_more=lambda: controller.store.has_more, **kwargs)

    def on_visibility_change(self, visible: bool) -> None:
        if not visible or self.disabled or self.is_fetching or not self._has_more():
            return
        self._debouncer.schedule(self._load)

    async def retry(self) -> None:
        if self.error is not None:
            await self._load()

    def disable(self) -> None:
        self.disabled = True
        self._debouncer.cancel()

    def enable(self) -> None:
        self.disabled = False

    async def wait(self) -> None:
        await self._debouncer.wait()

    def dispose(self) -> None:
        self._debouncer.cancel()

    async def _load(self) -> None:
        if self.is_fetching or self.disabled:
            return
        self.is_fetching = True
        self.error = None
        try:
            await self._load_more()
        except Exception as exc:
            self.error = exc
            if self._on_error is not None:
                self._on_error(exc)
            else:
                logger.error("Infinite scroll load failed", exc_info=exc)
        finally:
            self.is_fetching = False
