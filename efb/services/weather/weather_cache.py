"""Station-keyed weather cache with staleness tiers and stale-data fallback.

Age is always measured from the local fetch time (``fetched_at``), never
from the METAR's own observation time: the question answered is "how old
is my copy", not "how old is the atmosphere it describes".

Tiers (age since fetch):

    < 30 min     fresh
    30-60 min    aging
    60-120 min   old      -> refresh re-fetches
    > 120 min    stale    -> refresh re-fetches
"""

from __future__ import annotations

import asyncio
import logging
from datetime import timedelta
from typing import Iterable

from efb.clock import Clock, SystemClock
from efb.contracts.enums import StalenessTier
from efb.contracts.weather import WeatherObservation, WeatherRefreshResult
from efb.errors import FetchFailedError, NotFoundError, StaleDataError, StorageUnavailableError
from efb.persistence.store import AviationStore
from efb.services.weather.metar_client import WeatherFetcher

logger = logging.getLogger(__name__)

FRESH_LIMIT = timedelta(minutes=30)
AGING_LIMIT = timedelta(minutes=60)
OLD_LIMIT = timedelta(minutes=120)


def staleness_tier(age: timedelta) -> StalenessTier:
    """Classify an entry age. 120 minutes exactly is still "old"."""
    if age < FRESH_LIMIT:
        return StalenessTier.FRESH
    if age < AGING_LIMIT:
        return StalenessTier.AGING
    if age <= OLD_LIMIT:
        return StalenessTier.OLD
    return StalenessTier.STALE


def format_age(age: timedelta) -> str:
    """Short age label: "<1 min", "12 min", "2h", "1h 15m"."""
    total_minutes = max(0, int(age.total_seconds() // 60))
    if total_minutes < 1:
        return "<1 min"
    if total_minutes < 60:
        return f"{total_minutes} min"
    hours, minutes = divmod(total_minutes, 60)
    if minutes == 0:
        return f"{hours}h"
    return f"{hours}h {minutes}m"


def _normalize(station_id: str) -> str:
    return station_id.strip().upper()


class WeatherCache:
    """In-memory weather cache with write-through to the aviation store.

    One instance per process, constructed with its collaborators. All
    mutation goes through the public methods.

    - ``get`` is a pure memory lookup and never suspends.
    - ``refresh`` serializes per station: concurrent refreshes of one key
      share the first fetch, different keys proceed independently.
    - Writes are last-successful-write-wins: an entry is never replaced by
      one fetched earlier. A cancelled refresh writes nothing.
    """

    def __init__(
        self,
        fetcher: WeatherFetcher,
        store: AviationStore | None = None,
        clock: Clock | None = None,
    ):
        self._fetcher = fetcher
        self._store = store
        self._clock = clock or SystemClock()
        self._entries: dict[str, WeatherObservation] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Local reads
    # ------------------------------------------------------------------

    def get(self, station_id: str) -> WeatherObservation | None:
        return self._entries.get(_normalize(station_id))

    def stations(self) -> list[str]:
        return sorted(self._entries)

    def __contains__(self, station_id: str) -> bool:
        return _normalize(station_id) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def age_of(self, observation: WeatherObservation) -> timedelta:
        # A clock set behind fetched_at would give a negative age
        return max(timedelta(0), self._clock.now() - observation.fetched_at)

    def tier_for(self, observation: WeatherObservation) -> StalenessTier:
        return staleness_tier(self.age_of(observation))

    def tier(self, station_id: str) -> StalenessTier | None:
        entry = self.get(station_id)
        return self.tier_for(entry) if entry is not None else None

    def require(self, station_id: str, max_age: timedelta = AGING_LIMIT) -> WeatherObservation:
        """Cached entry no older than *max_age*.

        Raises ``NotFoundError`` when nothing is cached and ``StaleDataError``
        (carrying the age) when the entry is older.
        """
        entry = self.get(station_id)
        if entry is None:
            raise NotFoundError("weather", _normalize(station_id))
        age = self.age_of(entry)
        if age > max_age:
            raise StaleDataError(entry.station_id, age)
        return entry

    def stale_stations(self) -> list[str]:
        """Stations whose tier is old or stale."""
        return [key for key, entry in sorted(self._entries.items())
                if self.tier_for(entry).needs_refresh]

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def refresh(self, station_id: str, force: bool = False) -> WeatherRefreshResult:
        """Return a usable observation, fetching only when needed.

        Fetches when the station is unknown, its tier is old/stale, or
        *force* is set. If the fetch fails and a previous entry exists, that
        entry is served with ``error`` set; otherwise the failure propagates.
        """
        key = _normalize(station_id)
        async with self._lock_for(key):
            current = self._entries.get(key)
            if current is None:
                current = await self._load_from_store(key)

            if current is not None and not force:
                tier = self.tier_for(current)
                if not tier.needs_refresh:
                    logger.debug("Weather cache hit for %s (%s)", key, tier.value)
                    return WeatherRefreshResult(observation=current, tier=tier, refreshed=False)

            try:
                fetched = await self._fetcher.fetch_metar(key)
            except FetchFailedError as e:
                if current is None:
                    raise
                tier = self.tier_for(current)
                logger.warning(
                    "Weather fetch for %s failed (%s); serving %s copy, %s old",
                    key, e, tier.value, format_age(self.age_of(current)),
                )
                return WeatherRefreshResult(
                    observation=current,
                    tier=tier,
                    refreshed=False,
                    error=e.to_service_error(),
                )

            entry = fetched.model_copy(update={
                "station_id": key,
                "fetched_at": self._clock.now(),
                "raw_taf": fetched.raw_taf or (current.raw_taf if current else None),
            })
            stored = self._put(entry)
            await self._write_through(stored)
            return WeatherRefreshResult(
                observation=stored,
                tier=self.tier_for(stored),
                refreshed=True,
            )

    async def refresh_many(
        self,
        station_ids: Iterable[str],
        force: bool = False,
    ) -> dict[str, WeatherRefreshResult]:
        """Refresh several stations concurrently.

        A station that fails with nothing cached is left out of the result
        instead of failing the batch.
        """
        keys = list(dict.fromkeys(_normalize(s) for s in station_ids))
        outcomes = await asyncio.gather(
            *(self.refresh(k, force=force) for k in keys),
            return_exceptions=True,
        )
        results: dict[str, WeatherRefreshResult] = {}
        for key, outcome in zip(keys, outcomes):
            if isinstance(outcome, FetchFailedError):
                logger.warning("No weather available for %s: %s", key, outcome)
                continue
            if isinstance(outcome, BaseException):
                raise outcome
            results[key] = outcome
        return results

    async def refresh_stale(self) -> dict[str, WeatherRefreshResult]:
        """Re-fetch every cached station whose tier is old or stale."""
        return await self.refresh_many(self.stale_stations())

    async def fetch_taf(self, station_id: str) -> str | None:
        """Fetch the TAF and attach it to the cached observation, if any.

        Attaching a TAF does not change ``fetched_at``: the METAR age is
        what staleness describes.
        """
        key = _normalize(station_id)
        async with self._lock_for(key):
            taf = await self._fetcher.fetch_taf(key)
            current = self._entries.get(key)
            if taf is not None and current is not None:
                updated = current.model_copy(update={"raw_taf": taf})
                self._entries[key] = updated
                await self._write_through(updated)
            return taf

    # ------------------------------------------------------------------
    # Clear
    # ------------------------------------------------------------------

    async def clear_all(self) -> None:
        """Empty the cache, memory first, then the store.

        The memory clear happens before any suspension point, so readers
        see either the full cache or an empty one. A refresh already in
        flight may repopulate its key afterwards; that is accepted.
        """
        count = len(self._entries)
        self._entries.clear()
        # Keep only locks a refresh still holds
        self._locks = {key: lock for key, lock in self._locks.items() if lock.locked()}
        if self._store is not None:
            try:
                await self._store.clear_weather_cache()
            except StorageUnavailableError as e:
                logger.warning("Weather store clear failed, memory cache cleared only: %s", e)
        logger.info("Weather cache cleared (%d stations)", count)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def _put(self, entry: WeatherObservation) -> WeatherObservation:
        """Install *entry* unless a later fetch is already cached."""
        existing = self._entries.get(entry.station_id)
        if existing is not None and existing.fetched_at > entry.fetched_at:
            return existing
        self._entries[entry.station_id] = entry
        return entry

    async def _load_from_store(self, key: str) -> WeatherObservation | None:
        if self._store is None:
            return None
        try:
            stored = await self._store.get_cached_weather(key)
        except StorageUnavailableError as e:
            logger.warning("Weather store unavailable, memory cache only: %s", e)
            return None
        if stored is None:
            return None
        logger.debug("Promoted stored weather for %s into memory", key)
        return self._put(stored)

    async def _write_through(self, entry: WeatherObservation) -> None:
        if self._store is None:
            return
        try:
            await self._store.put_cached_weather(entry)
        except StorageUnavailableError as e:
            logger.warning("Could not persist weather for %s: %s", entry.station_id, e)
