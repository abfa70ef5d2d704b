"""FastAPI dependency wiring and error translation."""

from __future__ import annotations

from fastapi import HTTPException, Request

from efb.errors import (
    ChartDownloadError,
    EFBError,
    FetchFailedError,
    InvalidInputError,
    NotFoundError,
    StaleDataError,
    StorageUnavailableError,
)
from efb.services.airports.airport_index import AirportIndex
from efb.services.charts.chart_manager import ChartRegionManager
from efb.services.route_planner import RoutePlanner
from efb.services.weather.weather_cache import WeatherCache

# First match wins; subclasses before their parents.
STATUS_BY_ERROR: list[tuple[type[EFBError], int]] = [
    (NotFoundError, 404),
    (StaleDataError, 409),
    (InvalidInputError, 422),
    (FetchFailedError, 502),
    (ChartDownloadError, 502),
    (StorageUnavailableError, 503),
]


def http_error(exc: EFBError) -> HTTPException:
    """Translate a data-layer error into an HTTP error with a typed body."""
    status = next((code for cls, code in STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    return HTTPException(status_code=status, detail=exc.to_service_error().model_dump())


# ------------------------------------------------------------------
# Long-lived services (singletons from app.state)
# ------------------------------------------------------------------


def get_weather_cache(request: Request) -> WeatherCache:
    return request.app.state.weather_cache


def get_chart_manager(request: Request) -> ChartRegionManager:
    return request.app.state.chart_manager


def get_airport_index(request: Request) -> AirportIndex:
    return request.app.state.airport_index


def get_route_planner(request: Request) -> RoutePlanner:
    return request.app.state.route_planner
