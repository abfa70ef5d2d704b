"""Delayed, superseding execution of async work (type-ahead search)."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


class Debouncer:
    """Run the most recently scheduled call after ``delay`` seconds.

    Scheduling again before the delay elapses cancels the pending call;
    awaiting a superseded call raises ``asyncio.CancelledError``.
    """

    def __init__(self, delay: float):
        if delay < 0:
            raise ValueError(f"delay must be >= 0, got {delay}")
        self.delay = delay
        self._pending: asyncio.Task | None = None

    @property
    def pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def schedule(self, factory: Callable[[], Awaitable[T]]) -> asyncio.Task[T]:
        self.cancel()
        self._pending = asyncio.get_running_loop().create_task(self._delayed(factory))
        return self._pending

    def cancel(self) -> None:
        if self.pending:
            self._pending.cancel()
        self._pending = None

    async def _delayed(self, factory: Callable[[], Awaitable[T]]) -> T:
        await asyncio.sleep(self.delay)
        return await factory()
