"""Persistence collaborator contract for reference and cache data."""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol

from efb.contracts.airport import Airport
from efb.contracts.weather import WeatherObservation


class AviationStore(Protocol):
    """Async capability contract of the persistent store.

    Every method raises ``StorageUnavailableError`` on I/O failure; callers
    degrade to "no data" rather than crash.
    """

    async def get_airport(self, icao: str) -> Airport | None: ...

    async def search_airports(self, query: str, limit: int) -> list[Airport]: ...

    async def list_airport_rows(self) -> list[dict[str, Any]]:
        """Raw airport rows, unvalidated. May contain incomplete records."""
        ...

    async def upsert_airports(self, airports: Iterable[Airport]) -> int: ...

    async def get_cached_weather(self, station_id: str) -> WeatherObservation | None: ...

    async def put_cached_weather(self, entry: WeatherObservation) -> None: ...

    async def clear_weather_cache(self) -> None: ...


def airport_from_row(row: Mapping[str, Any]) -> Airport:
    """Build an ``Airport`` from a flat row (``latitude``/``longitude`` columns).

    Raises ``pydantic.ValidationError`` / ``KeyError`` for incomplete rows;
    callers decide whether to skip or fail.
    """
    return Airport(
        icao=row["icao"],
        name=row.get("name") or row["icao"],
        coordinate={"latitude": row["latitude"], "longitude": row["longitude"]},
        elevation_ft=row["elevation_ft"],
        faa_id=row.get("faa_id"),
        ctaf_mhz=row.get("ctaf_mhz"),
    )
