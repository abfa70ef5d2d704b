"""In-memory airport index: nearest and within-radius queries.

This is the emergency "nearest airport" lookup. It is built from whatever
rows the store can provide; incomplete rows are skipped, never fatal.
"""

from __future__ import annotations

import logging
import math
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from efb.contracts.airport import Airport, NearbyAirport
from efb.contracts.common import Coordinate
from efb.errors import InvalidInputError, StorageUnavailableError
from efb.persistence.store import AviationStore, airport_from_row
from efb.services.airports.spatial import GridBackend, LinearScanBackend, SpatialBackend
from efb.services.geodesy import EARTH_RADIUS_NM, bearing_deg, distance_nm

logger = logging.getLogger(__name__)

INITIAL_SEARCH_RADIUS_NM = 50.0
SEARCH_RADIUS_GROWTH = 4.0
HALF_CIRCUMFERENCE_NM = math.pi * EARTH_RADIUS_NM


class AirportIndex:
    """Airports keyed by ICAO with proximity search.

    Results are ordered by great-circle distance, ties by ICAO ascending,
    regardless of the backend in use.
    """

    def __init__(
        self,
        rows: Iterable[Airport | Mapping[str, Any]] = (),
        grid: bool = True,
    ):
        airports: dict[str, Airport] = {}
        self.skipped = 0
        for row in rows:
            try:
                airport = row if isinstance(row, Airport) else airport_from_row(row)
            except (ValidationError, KeyError, TypeError) as e:
                self.skipped += 1
                logger.debug("Skipping airport row %r: %s", _row_label(row), e)
                continue
            airports[airport.icao] = airport
        if self.skipped:
            logger.warning("Skipped %d incomplete airport rows", self.skipped)

        self._airports = airports
        self._backend: SpatialBackend = (
            GridBackend(airports.values()) if grid else LinearScanBackend(airports.values())
        )

    @classmethod
    async def from_store(cls, store: AviationStore, grid: bool = True) -> AirportIndex:
        """Build from the store's airport table; an unavailable store gives an empty index."""
        try:
            rows = await store.list_airport_rows()
        except StorageUnavailableError as e:
            logger.warning("Airport table unavailable, index is empty: %s", e)
            rows = []
        index = cls(rows, grid=grid)
        logger.info("Airport index loaded: %d airports", len(index))
        return index

    def __len__(self) -> int:
        return len(self._airports)

    def __contains__(self, icao: object) -> bool:
        return isinstance(icao, str) and icao.strip().upper() in self._airports

    def get(self, icao: str) -> Airport | None:
        return self._airports.get(icao.strip().upper())

    def search(self, query: str, limit: int = 20) -> list[Airport]:
        """ICAO prefix matches first, then name substring matches."""
        text = query.strip()
        if not text or limit <= 0:
            return []
        upper = text.upper()
        lower = text.lower()
        by_icao = sorted(a for a in self._airports if a.startswith(upper))
        by_name = sorted(
            icao
            for icao, a in self._airports.items()
            if not icao.startswith(upper) and lower in a.name.lower()
        )
        return [self._airports[icao] for icao in (by_icao + by_name)[:limit]]

    # ------------------------------------------------------------------
    # Proximity
    # ------------------------------------------------------------------

    def within(self, point: Coordinate, radius_nm: float) -> list[Airport]:
        """Airports whose great-circle distance from *point* is <= *radius_nm*."""
        _check_radius(radius_nm)
        return [a for _, a in self._measure(point, radius_nm)]

    def nearest(self, point: Coordinate, count: int) -> list[Airport]:
        return [a for _, a in self._nearest(point, count)]

    def nearest_with_bearing(self, point: Coordinate, count: int) -> list[NearbyAirport]:
        """Nearest airports with distance and initial bearing from *point*."""
        return [
            NearbyAirport(
                airport=a,
                distance_nm=d,
                bearing_deg=bearing_deg(point, a.coordinate),
            )
            for d, a in self._nearest(point, count)
        ]

    def _nearest(self, point: Coordinate, count: int) -> list[tuple[float, Airport]]:
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise InvalidInputError(f"count must be a non-negative integer, got {count!r}")
        if count == 0 or not self._airports:
            return []

        # Once a circle holds `count` airports, the nearest `count` are all inside it.
        radius = INITIAL_SEARCH_RADIUS_NM
        while radius < HALF_CIRCUMFERENCE_NM:
            found = self._measure(point, radius)
            if len(found) >= count:
                return found[:count]
            radius *= SEARCH_RADIUS_GROWTH
        return self._measure(point, math.inf)[:count]

    def _measure(self, point: Coordinate, radius_nm: float) -> list[tuple[float, Airport]]:
        measured = []
        for airport in self._backend.candidates(point, radius_nm):
            d = distance_nm(point, airport.coordinate)
            if d <= radius_nm:
                measured.append((d, airport))
        measured.sort(key=lambda item: (item[0], item[1].icao))
        return measured


def _check_radius(radius_nm: float) -> None:
    if not isinstance(radius_nm, (int, float)) or not math.isfinite(radius_nm) or radius_nm < 0:
        raise InvalidInputError(f"radius_nm must be a finite, non-negative number, got {radius_nm!r}")


def _row_label(row: object) -> object:
    if isinstance(row, Mapping):
        return row.get("icao")
    return row
