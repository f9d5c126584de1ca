"""Restartable timer that runs the latest scheduled coroutine once input settles."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

logger = logging.getLogger("gallery.client.debounce")


class Debouncer:
    """Delay an action until ``delay`` seconds pass without a new ``schedule`` call."""

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self._handle: asyncio.TimerHandle | None = None
        self._last_run: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, action: Callable[[], Awaitable[object]]) -> None:
        """Restart the timer; only the most recent action will fire."""
        self.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire, action)

    def cancel(self) -> None:
        """Drop the pending action, if any. Already-fired actions keep running."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self, action: Callable[[], Awaitable[object]]) -> None:
        self._handle = None
        self._last_run = asyncio.ensure_future(action())
        self._last_run.add_done_callback(_log_failure)

    async def wait(self) -> None:
        """Wait for the most recently fired action to finish."""
        if self._last_run is not None and not self._last_run.done():
            await asyncio.wait({self._last_run})


def _log_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Debounced action failed", exc_info=exc)
