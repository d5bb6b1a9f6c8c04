"""Bounded concurrency for browser-driven generation jobs."""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Awaitable, Callable
from contextlib import suppress
from typing import Any, TypeVar

from .config import DEFAULT_CONCURRENCY

T = TypeVar("T")


class ConcurrencyLimiter:
    """FIFO admission: at most ``max_concurrent`` jobs run, the rest wait in arrival order.

    A released slot is handed directly to the oldest waiter, so the running count
    never exceeds the bound and each waiter is woken exactly once.
    """

    def __init__(self, max_concurrent: int = DEFAULT_CONCURRENCY) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self.max_concurrent = max_concurrent
        self._running = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def running_count(self) -> int:
        return self._running

    @property
    def pending_count(self) -> int:
        return sum(1 for w in self._waiters if not w.done())

    async def run(self, fn: Callable[..., Awaitable[T]], *args: Any, **kwargs: Any) -> T:
        await self._acquire()
        try:
            return await fn(*args, **kwargs)
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._running < self.max_concurrent and not self._waiters:
            self._running += 1
            return
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(fut)
        try:
            await fut
        except asyncio.CancelledError:
            if fut.done() and not fut.cancelled():
                # the slot was handed over just before cancellation
                self._release()
            else:
                with suppress(ValueError):
                    self._waiters.remove(fut)
            raise

    def _release(self) -> None:
        while self._waiters:
            fut = self._waiters.popleft()
            if not fut.done():
                fut.set_result(None)
                return
        self._running -= 1


__all__ = ["ConcurrencyLimiter"]
