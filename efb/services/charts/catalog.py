"""FAA VFR sectional chart catalog and the 56-day chart cycle.

Sectionals are republished every 56 days. The cycle is anchored on a known
effective date (27 January 2022); every region in the static catalog shares
the cycle in effect at catalog build time.

Download URL pattern (ZIP of GeoTIFF tiles, converted to MBTiles upstream):
    https://aeronav.faa.gov/visual/{MM-DD-YYYY}/sectional-files/{id}.zip
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol

from efb.clock import Clock, SystemClock
from efb.contracts.chart import ChartRegion
from efb.contracts.common import BoundingBox, ensure_utc

CHART_CYCLE_EPOCH = datetime(2022, 1, 27, tzinfo=timezone.utc)
CHART_CYCLE_DAYS = 56
FAA_VISUAL_URL_TEMPLATE = "https://aeronav.faa.gov/visual/{cycle_date}/sectional-files/{region_id}.zip"

BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class ChartCycle:
    """A chart publication cycle and its validity window."""

    effective: datetime
    expiration: datetime

    @property
    def cycle_date(self) -> str:
        """Cycle date as used in FAA URLs (MM-DD-YYYY)."""
        return self.effective.strftime("%m-%d-%Y")

    def contains(self, when: datetime) -> bool:
        return self.effective <= ensure_utc(when) < self.expiration

    def __str__(self) -> str:
        return f"Chart cycle {self.effective:%d %b %Y} - {self.expiration:%d %b %Y}"


def chart_cycle(at: datetime) -> ChartCycle:
    """The 56-day cycle in effect at *at*.

    Dates before the epoch fall in earlier cycles (floor division keeps the
    arithmetic consistent in both directions).
    """
    days_since_epoch = (ensure_utc(at) - CHART_CYCLE_EPOCH).days
    cycles = days_since_epoch // CHART_CYCLE_DAYS
    start = CHART_CYCLE_EPOCH + timedelta(days=cycles * CHART_CYCLE_DAYS)
    return ChartCycle(effective=start, expiration=start + timedelta(days=CHART_CYCLE_DAYS))


def download_url(region_id: str, cycle: ChartCycle) -> str:
    return FAA_VISUAL_URL_TEMPLATE.format(cycle_date=cycle.cycle_date, region_id=region_id)


# id, name, (min_lat, max_lat, min_lon, max_lon), size in MB
SECTIONALS: list[tuple[str, str, tuple[float, float, float, float], float]] = [
    ("San_Francisco", "San Francisco", (36.0, 40.0, -124.5, -119.5), 85.2),
    ("Los_Angeles", "Los Angeles", (32.5, 36.5, -121.0, -115.5), 92.7),
    ("Seattle", "Seattle", (45.5, 49.5, -125.0, -119.0), 68.4),
    ("Phoenix", "Phoenix", (31.0, 35.0, -114.5, -109.0), 54.1),
    ("Salt_Lake_City", "Salt Lake City", (38.0, 42.5, -115.0, -109.0), 61.3),
    ("Denver", "Denver", (37.0, 41.5, -109.0, -103.0), 58.9),
    ("Dallas-Ft_Worth", "Dallas-Ft Worth", (30.0, 34.5, -100.5, -94.5), 76.8),
    ("Chicago", "Chicago", (39.5, 44.0, -91.5, -85.0), 82.4),
    ("Atlanta", "Atlanta", (31.5, 36.0, -87.5, -81.0), 79.1),
    ("New_York", "New York", (39.5, 43.5, -76.5, -70.0), 88.5),
    ("Miami", "Miami", (24.0, 28.5, -83.5, -79.0), 64.7),
    ("Charlotte", "Charlotte", (33.0, 37.5, -83.5, -77.0), 71.3),
    ("Detroit", "Detroit", (40.5, 45.0, -86.0, -80.0), 66.2),
    ("St_Louis", "St Louis", (36.0, 40.5, -93.0, -87.0), 59.8),
    ("Kansas_City", "Kansas City", (36.5, 41.0, -99.5, -93.5), 55.4),
]


class CatalogSource(Protocol):
    def regions(self) -> list[ChartRegion]:
        """Catalog entries, with no local paths."""
        ...


class StaticSectionalCatalog:
    """The built-in FAA sectional list, dated to the cycle in effect.

    The cycle is read from the clock on every call, so a long-lived manager
    picks up the next cycle on its next catalog load.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()

    @property
    def cycle(self) -> ChartCycle:
        return chart_cycle(self._clock.now())

    def regions(self) -> list[ChartRegion]:
        cycle = self.cycle
        return [
            ChartRegion(
                id=region_id,
                name=name,
                effective_date=cycle.effective,
                expiration_date=cycle.expiration,
                file_size_bytes=int(size_mb * BYTES_PER_MB),
                bounding_box=BoundingBox(
                    min_latitude=bbox[0],
                    max_latitude=bbox[1],
                    min_longitude=bbox[2],
                    max_longitude=bbox[3],
                ),
                download_url=download_url(region_id, cycle),
            )
            for region_id, name, bbox, size_mb in SECTIONALS
        ]
