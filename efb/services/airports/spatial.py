"""Candidate selection for airport proximity queries.

A backend only narrows the set of airports worth measuring; the index does
the exact great-circle filtering and ordering. Swapping backends never
changes query results.
"""

from __future__ import annotations

import math
from collections import defaultdict
from typing import Iterable, Protocol

from efb.contracts.airport import Airport
from efb.contracts.common import Coordinate

# Generous on purpose: one degree of latitude is ~60.04 NM on the mean sphere.
NM_PER_DEGREE = 60.0
LON_MARGIN = 1.1
MAX_GRID_LATITUDE = 89.0


class SpatialBackend(Protocol):
    def candidates(self, point: Coordinate, radius_nm: float) -> Iterable[Airport]:
        """A superset of the airports within *radius_nm* of *point*."""
        ...

    def __len__(self) -> int: ...


class LinearScanBackend:
    """Every airport is a candidate."""

    def __init__(self, airports: Iterable[Airport]):
        self._airports = list(airports)

    def candidates(self, point: Coordinate, radius_nm: float) -> Iterable[Airport]:
        return self._airports

    def __len__(self) -> int:
        return len(self._airports)


class GridBackend:
    """Airports bucketed in 1-degree latitude/longitude cells.

    A query looks at the cells overlapping the bounding box of the search
    circle. Searches reaching the poles or spanning half the globe in
    longitude fall back to every airport.
    """

    def __init__(self, airports: Iterable[Airport]):
        self._airports = list(airports)
        self._cells: dict[tuple[int, int], list[Airport]] = defaultdict(list)
        for airport in self._airports:
            self._cells[self._cell(airport.coordinate)].append(airport)

    def __len__(self) -> int:
        return len(self._airports)

    @property
    def cell_count(self) -> int:
        return len(self._cells)

    @staticmethod
    def _cell(point: Coordinate) -> tuple[int, int]:
        lat = min(int(math.floor(point.latitude)), 89)
        lon = int(math.floor(point.longitude))
        return lat, (lon + 180) % 360 - 180

    def candidates(self, point: Coordinate, radius_nm: float) -> Iterable[Airport]:
        lat_buffer = radius_nm / NM_PER_DEGREE
        lat_min = point.latitude - lat_buffer
        lat_max = point.latitude + lat_buffer
        extreme_lat = max(abs(lat_min), abs(lat_max))
        if extreme_lat >= MAX_GRID_LATITUDE:
            return self._airports

        lon_buffer = LON_MARGIN * radius_nm / (NM_PER_DEGREE * math.cos(math.radians(extreme_lat)))
        if lon_buffer >= 180.0:
            return self._airports

        lon_cells = {
            (c + 180) % 360 - 180
            for c in range(
                int(math.floor(point.longitude - lon_buffer)),
                int(math.floor(point.longitude + lon_buffer)) + 1,
            )
        }
        result: list[Airport] = []
        for lat_cell in range(int(math.floor(lat_min)), int(math.floor(lat_max)) + 1):
            for lon_cell in lon_cells:
                result.extend(self._cells.get((lat_cell, lon_cell), ()))
        return result
