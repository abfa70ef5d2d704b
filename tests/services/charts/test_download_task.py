"""Tests for the download task progress stream and terminal result."""

from __future__ import annotations

import asyncio

import pytest

from efb.contracts.enums import DownloadState
from efb.errors import ChartDownloadError
from efb.services.charts.download_task import DownloadTask
from tests.fakes import make_region


async def _collect(task: DownloadTask) -> list[float]:
    return [p async for p in task.progress_updates()]


class TestDownloadTask:
    async def test_progress_is_monotonic_and_clamped(self):
        task = DownloadTask("San_Francisco")
        consumer = asyncio.create_task(_collect(task))
        await asyncio.sleep(0)

        for value in (0.1, 0.3, 0.2, 0.3, 1.7):
            task._report(value)
        task._finish(DownloadState.SUCCEEDED, result=make_region())
        seen = await consumer

        assert seen == [0.0, 0.1, 0.3, 1.0]
        assert task.progress == 1.0

    async def test_negative_progress_ignored(self):
        task = DownloadTask("San_Francisco")
        task._report(-0.5)
        assert task.progress == 0.0

    async def test_finishes_exactly_once(self):
        task = DownloadTask("San_Francisco")
        error = ChartDownloadError("San_Francisco", "disk full")
        assert task._finish(DownloadState.FAILED, error=error) is True
        assert task._finish(DownloadState.SUCCEEDED, result=make_region()) is False
        assert task.state == DownloadState.FAILED

        with pytest.raises(ChartDownloadError):
            await task.result()

    async def test_stream_after_completion_yields_final_value(self):
        task = DownloadTask.completed(make_region())
        assert task.done
        assert await _collect(task) == [1.0]
        assert (await task.result()).id == "San_Francisco"

    async def test_several_consumers(self):
        task = DownloadTask("San_Francisco")
        consumers = [asyncio.create_task(_collect(task)) for _ in range(3)]
        await asyncio.sleep(0)
        task._report(0.5)
        task._finish(DownloadState.SUCCEEDED, result=make_region())
        results = await asyncio.gather(*consumers)
        assert all(r == [0.0, 0.5, 1.0] for r in results)

    async def test_progress_frozen_after_failure(self):
        task = DownloadTask("San_Francisco")
        task._report(0.4)
        task._finish(DownloadState.FAILED, error=ChartDownloadError("San_Francisco", "x"))
        task._report(0.9)
        assert task.progress == 0.4

    def test_cancel_without_runner(self):
        assert DownloadTask("San_Francisco").cancel() is False
