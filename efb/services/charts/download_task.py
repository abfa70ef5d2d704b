"""Transient handle on one chart region download."""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from efb.contracts.chart import ChartRegion
from efb.contracts.enums import DownloadState
from efb.errors import ChartDownloadError

_END = None


class DownloadTask:
    """Progress and outcome of a single region download.

    - ``progress`` only moves forward and stays within [0, 1].
    - The task reaches exactly one terminal state; later attempts to finish
      it again are ignored.
    - Any number of consumers may follow ``progress_updates()`` or await
      ``result()``.
    """

    def __init__(self, region_id: str):
        self.region_id = region_id
        self.state = DownloadState.QUEUED
        self.progress = 0.0
        self.error: ChartDownloadError | None = None
        self._result: ChartRegion | None = None
        self._subscribers: list[asyncio.Queue[float | None]] = []
        self._done = asyncio.Event()
        self._runner: asyncio.Task | None = None

    @classmethod
    def completed(cls, region: ChartRegion) -> DownloadTask:
        """An already-succeeded task, for regions that need no download."""
        task = cls(region.id)
        task._finish(DownloadState.SUCCEEDED, result=region)
        return task

    @property
    def done(self) -> bool:
        return self.state.is_terminal

    def __repr__(self) -> str:
        return f"<DownloadTask {self.region_id} {self.state.value} {self.progress:.0%}>"

    # ------------------------------------------------------------------
    # Consumer API
    # ------------------------------------------------------------------

    async def progress_updates(self) -> AsyncIterator[float]:
        """Yield the current progress, then every increase until the end."""
        queue: asyncio.Queue[float | None] = asyncio.Queue()
        finished = self.done
        if not finished:
            self._subscribers.append(queue)
        last = self.progress
        try:
            yield last
            if finished:
                return
            while True:
                value = await queue.get()
                if value is _END:
                    return
                if value > last:
                    last = value
                    yield value
        finally:
            if queue in self._subscribers:
                self._subscribers.remove(queue)

    async def result(self) -> ChartRegion:
        """Wait for the terminal state.

        Returns the updated region on success; raises the recorded
        ``ChartDownloadError`` (or ``DownloadCancelledError``) otherwise.
        """
        await self._done.wait()
        if self.state is DownloadState.SUCCEEDED and self._result is not None:
            return self._result
        assert self.error is not None
        raise self.error

    def cancel(self) -> bool:
        """Request cancellation. False if the task already finished."""
        if self.done or self._runner is None or self._runner.done():
            return False
        return self._runner.cancel()

    # ------------------------------------------------------------------
    # Producer API (used by ChartRegionManager)
    # ------------------------------------------------------------------

    def _start(self) -> None:
        if self.state is DownloadState.QUEUED:
            self.state = DownloadState.DOWNLOADING

    def _report(self, fraction: float) -> None:
        if self.done:
            return
        value = min(1.0, max(0.0, float(fraction)))
        if value <= self.progress:
            return
        self.progress = value
        for queue in self._subscribers:
            queue.put_nowait(value)

    def _finish(
        self,
        state: DownloadState,
        result: ChartRegion | None = None,
        error: ChartDownloadError | None = None,
    ) -> bool:
        if self.done:
            return False
        if state is DownloadState.SUCCEEDED:
            self._report(1.0)
        self.state = state
        self._result = result
        self.error = error
        for queue in self._subscribers:
            queue.put_nowait(_END)
        self._done.set()
        return True
