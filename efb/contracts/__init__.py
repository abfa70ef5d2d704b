"""EFB data contracts — Pydantic v2 models for the offline data layer.

Data authority
--------------

**Aviation store** (SQLite, reference + cache data):
- ``Airport`` — ``airports`` table, read-only for this layer
- ``WeatherObservation`` — ``weather_cache`` table, write-through from
  ``WeatherCache``

**Chart storage** (files on disk):
- ``ChartRegion.local_path`` — present iff ``<charts_dir>/<id>.mbtiles``
  exists; dates come from the catalog

Calculated (never persisted)
----------------------------
- ``RoutePlan`` / ``RouteLeg`` — rebuilt from scratch on every edit
- ``NearbyAirport`` — distance and bearing from a query point
- ``WeatherRefreshResult`` — staleness tier and fetch error of a refresh
"""

from efb.contracts.enums import (
    CloudCover,
    DownloadState,
    FlightCategory,
    RegionStatus,
    StalenessTier,
    parse_enum,
)
from efb.contracts.common import BoundingBox, Coordinate, EFBModel
from efb.contracts.result import ServiceError
from efb.contracts.airport import Airport, NearbyAirport
from efb.contracts.chart import ChartRegion
from efb.contracts.route import RouteLeg, RoutePlan
from efb.contracts.weather import (
    CloudLayer,
    WeatherObservation,
    WeatherRefreshResult,
    WindInfo,
)

__all__ = [
    # Enums
    "CloudCover",
    "DownloadState",
    "FlightCategory",
    "RegionStatus",
    "StalenessTier",
    "parse_enum",
    # Common
    "BoundingBox",
    "Coordinate",
    "EFBModel",
    # Result
    "ServiceError",
    # Domain models
    "Airport",
    "NearbyAirport",
    "ChartRegion",
    "RouteLeg",
    "RoutePlan",
    "CloudLayer",
    "WeatherObservation",
    "WeatherRefreshResult",
    "WindInfo",
]
