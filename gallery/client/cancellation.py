"""Cancellation tokens for superseded search requests."""

from __future__ import annotations

import asyncio


class RequestCancelled(Exception):
    """Raised when a request was superseded; callers treat it as a no-op."""


class CancellationToken:
    """One-shot handle shared by a controller and the request it issued.

    Once cancelled a token stays cancelled; a fresh token is needed for the
    next request.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str = "superseded") -> None:
        if not self._event.is_set():
            self.reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RequestCancelled(self.reason or "cancelled")

    async def wait(self) -> None:
        await self._event.wait()
