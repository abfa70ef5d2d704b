"""Chart region lifecycle: catalog, downloads, deletion, expiry.

Each region moves through::

    not_downloaded -> queued -> downloading -> downloaded
                                     |
                                     +-> failed / cancelled -> (queued again)

A failed or cancelled download never touches an existing local copy: bytes
land in a temporary file and only replace the previous chart after they are
complete and pass validation.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Callable

from efb.clock import Clock, SystemClock
from efb.config import DEFAULT_MAX_CONCURRENT_DOWNLOADS
from efb.contracts.chart import ChartRegion
from efb.contracts.enums import DownloadState, RegionStatus
from efb.errors import (
    ChartCorruptedError,
    ChartDownloadError,
    DownloadCancelledError,
    EFBError,
    FetchFailedError,
    InvalidInputError,
    NotFoundError,
    StorageUnavailableError,
)
from efb.persistence.chart_storage import ChartStorage, is_valid_mbtiles
from efb.services.charts.catalog import CatalogSource, StaticSectionalCatalog
from efb.services.charts.download_task import DownloadTask
from efb.services.charts.fetcher import ChartFetcher

logger = logging.getLogger(__name__)


class ChartRegionManager:
    """Owns the region catalog and every chart file under its storage."""

    def __init__(
        self,
        fetcher: ChartFetcher,
        storage: ChartStorage,
        clock: Clock | None = None,
        catalog: CatalogSource | None = None,
        max_concurrent_downloads: int = DEFAULT_MAX_CONCURRENT_DOWNLOADS,
        validator: Callable[[Path], bool] = is_valid_mbtiles,
    ):
        if max_concurrent_downloads < 1:
            raise InvalidInputError(
                f"max_concurrent_downloads must be >= 1, got {max_concurrent_downloads}"
            )
        self._fetcher = fetcher
        self._storage = storage
        self._clock = clock or SystemClock()
        self._catalog = catalog or StaticSectionalCatalog(self._clock)
        self._validator = validator
        self._semaphore = asyncio.Semaphore(max_concurrent_downloads)
        self.max_concurrent_downloads = max_concurrent_downloads

        self._regions: dict[str, ChartRegion] = {}
        self._active: dict[str, DownloadTask] = {}
        self._last_outcome: dict[str, DownloadTask] = {}

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def load_catalog(self) -> list[ChartRegion]:
        """Reconcile the catalog with the charts present on disk.

        A catalog source failure keeps the previously loaded regions. A
        storage failure lists every region as not downloaded.
        """
        try:
            entries = self._catalog.regions()
        except FetchFailedError as e:
            logger.warning("Chart catalog unavailable, keeping %d known regions: %s",
                           len(self._regions), e)
            return self.regions()

        try:
            on_disk = self._storage.list_downloaded_chart_paths()
        except StorageUnavailableError as e:
            logger.warning("Cannot list downloaded charts: %s", e)
            on_disk = {}

        self._regions = {
            entry.id: entry.model_copy(update={"local_path": on_disk.get(entry.id)})
            for entry in entries
        }
        orphans = set(on_disk) - set(self._regions)
        if orphans:
            logger.info("Ignoring %d chart files not in catalog: %s",
                        len(orphans), ", ".join(sorted(orphans)))
        logger.info("Loaded %d chart regions (%d downloaded)",
                    len(self._regions), sum(r.is_downloaded for r in self._regions.values()))
        return self.regions()

    def now(self) -> datetime:
        return self._clock.now()

    def regions(self) -> list[ChartRegion]:
        return list(self._regions.values())

    def region(self, region_id: str) -> ChartRegion:
        try:
            return self._regions[region_id]
        except KeyError:
            raise NotFoundError("Chart region", region_id) from None

    def is_downloaded(self, region_id: str) -> bool:
        return self.region(region_id).is_downloaded

    def status(self, region_id: str) -> RegionStatus:
        region = self.region(region_id)
        task = self.task(region_id)
        if task is not None and not task.done:
            if task.state == DownloadState.QUEUED:
                return RegionStatus.QUEUED
            return RegionStatus.DOWNLOADING
        if region.is_downloaded:
            return RegionStatus.DOWNLOADED
        if task is not None and task.state in (DownloadState.FAILED, DownloadState.CANCELLED):
            return RegionStatus.FAILED
        return RegionStatus.NOT_DOWNLOADED

    def task(self, region_id: str) -> DownloadTask | None:
        """The in-flight task for a region, else its most recent one."""
        return self._active.get(region_id) or self._last_outcome.get(region_id)

    def expired_regions(self) -> list[ChartRegion]:
        """Regions past expiration. Listing never deletes anything."""
        now = self._clock.now()
        return [r for r in self._regions.values() if r.is_expired(now)]

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    def download(self, region: str | ChartRegion, force: bool = False) -> DownloadTask:
        """Start (or join) the download of a region.

        Returns the in-flight task if one exists. A downloaded region that
        has not expired gets an already-succeeded task unless *force* is set.
        Must be called from a running event loop.
        """
        region_id = region if isinstance(region, str) else region.id
        current = self.region(region_id)

        existing = self._active.get(region_id)
        if existing is not None and not existing.done:
            return existing

        if current.local_path is not None and not self._storage.exists(current.local_path):
            logger.warning("Chart file for %s disappeared: %s", region_id, current.local_path)
            current = current.model_copy(update={"local_path": None})
            self._regions[region_id] = current

        if current.is_downloaded and not force and not current.is_expired(self._clock.now()):
            logger.debug("Chart %s already downloaded and current", region_id)
            return DownloadTask.completed(current)

        if not current.download_url:
            raise InvalidInputError(f"Chart region {region_id!r} has no download URL")

        task = DownloadTask(region_id)
        self._active[region_id] = task
        runner = asyncio.get_running_loop().create_task(
            self._run(task, current), name=f"chart-download-{region_id}"
        )
        runner.add_done_callback(lambda _: self._settle(task))
        task._runner = runner
        logger.info("Queued chart download: %s", region_id)
        return task

    def cancel(self, region_id: str) -> bool:
        task = self._active.get(region_id)
        if task is None:
            return False
        return task.cancel()

    def cancel_all(self) -> int:
        """Cancel every in-flight download. Returns how many were cancelled."""
        return sum(task.cancel() for task in list(self._active.values()))

    async def _run(self, task: DownloadTask, region: ChartRegion) -> None:
        temp = self._storage.temp_path(region.id)
        final = self._storage.final_path(region.id)
        try:
            async with self._semaphore:
                task._start()
                logger.info("Downloading chart %s from %s", region.id, region.download_url)
                self._storage.remove(temp)
                await self._fetcher.download_file(region.download_url, temp, task._report)
                if not self._validator(temp):
                    raise ChartCorruptedError(region.id, "file is not a valid MBTiles database")
                self._storage.commit(temp, final)
        except asyncio.CancelledError:
            self._discard(temp)
            task._finish(DownloadState.CANCELLED, error=DownloadCancelledError(region.id))
            logger.info("Chart download cancelled: %s", region.id)
            raise
        except ChartDownloadError as e:
            self._discard(temp)
            task._finish(DownloadState.FAILED, error=e)
            logger.warning("%s", e)
        except EFBError as e:
            self._discard(temp)
            error = ChartDownloadError(region.id, str(e))
            error.__cause__ = e
            task._finish(DownloadState.FAILED, error=error)
            logger.warning("%s", error)
        else:
            updated = self._regions.get(region.id, region).model_copy(
                update={"local_path": final}
            )
            self._regions[region.id] = updated
            task._finish(DownloadState.SUCCEEDED, result=updated)
            logger.info("Chart %s downloaded to %s", region.id, final)

    def _settle(self, task: DownloadTask) -> None:
        """Runner finished: make sure the task is terminal and retire it."""
        runner = task._runner
        if not task.done:
            # Cancelled before the coroutine started, or an unexpected error.
            if runner is not None and runner.cancelled():
                task._finish(DownloadState.CANCELLED,
                             error=DownloadCancelledError(task.region_id))
            else:
                exc = runner.exception() if runner is not None else None
                logger.error("Chart download %s crashed: %r", task.region_id, exc)
                error = ChartDownloadError(task.region_id, repr(exc))
                error.__cause__ = exc
                task._finish(DownloadState.FAILED, error=error)
        if self._active.get(task.region_id) is task:
            del self._active[task.region_id]
        self._last_outcome[task.region_id] = task

    def _discard(self, temp: Path) -> None:
        try:
            self._storage.remove(temp)
        except StorageUnavailableError as e:
            logger.warning("Could not remove partial download %s: %s", temp, e)

    async def wait_idle(self) -> None:
        """Wait for every in-flight download to finish."""
        runners = [t._runner for t in list(self._active.values()) if t._runner is not None]
        if runners:
            await asyncio.gather(*runners, return_exceptions=True)

    # ------------------------------------------------------------------
    # Delete and storage accounting
    # ------------------------------------------------------------------

    def delete(self, region: str | ChartRegion) -> ChartRegion:
        """Remove a region's local file. No-op if it is not downloaded.

        Raises ``InvalidInputError`` while a download for the region is in
        flight; cancel it first.
        """
        region_id = region if isinstance(region, str) else region.id
        current = self.region(region_id)
        task = self._active.get(region_id)
        if task is not None and not task.done:
            raise InvalidInputError(f"Chart {region_id!r} is downloading; cancel it first")
        if current.local_path is None:
            return current

        self._storage.remove(current.local_path)
        updated = current.model_copy(update={"local_path": None})
        self._regions[region_id] = updated
        self._last_outcome.pop(region_id, None)
        logger.info("Deleted chart %s", region_id)
        return updated

    def storage_used(self) -> int:
        """Catalog size of every region whose file is still on disk.

        Regions whose file vanished are marked not downloaded.
        """
        total = 0
        for region_id, region in list(self._regions.items()):
            if region.local_path is None:
                continue
            if not self._storage.exists(region.local_path):
                logger.warning("Chart file for %s disappeared: %s", region_id, region.local_path)
                self._regions[region_id] = region.model_copy(update={"local_path": None})
                continue
            total += region.file_size_bytes
        return total

    def storage_used_on_disk(self) -> int:
        """Actual bytes occupied by downloaded chart files."""
        return sum(
            self._storage.size(r.local_path)
            for r in self._regions.values()
            if r.local_path is not None
        )
