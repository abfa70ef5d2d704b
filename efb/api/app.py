"""FastAPI application for the EFB data layer."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from efb.api.routes import airports, charts, plans, weather
from efb.config import Settings
from efb.errors import StorageUnavailableError
from efb.persistence.chart_storage import LocalChartStorage
from efb.persistence.seed import seed_airports, seed_store
from efb.persistence.sqlite_store import SQLiteStore
from efb.services.airports.airport_index import AirportIndex
from efb.services.charts.chart_manager import ChartRegionManager
from efb.services.charts.fetcher import HttpChartFetcher
from efb.services.route_planner import RoutePlanner
from efb.services.weather.metar_client import MetarClient
from efb.services.weather.weather_cache import WeatherCache

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the long-lived services once and share them through app.state."""
    settings = Settings.from_env()

    store = SQLiteStore(settings.db_path)
    try:
        store.initialize()
    except StorageUnavailableError as exc:
        logger.warning("Aviation store unavailable, running memory-only: %s", exc)

    metar_client = MetarClient(
        base_url=settings.weather_base_url,
        timeout=settings.http_timeout,
        user_agent=settings.user_agent,
    )
    chart_fetcher = HttpChartFetcher(user_agent=settings.user_agent)

    try:
        chart_storage = LocalChartStorage(settings.charts_dir)
        chart_storage.clean_partials()
    except StorageUnavailableError as exc:
        logger.warning("Chart storage unavailable, chart downloads will fail: %s", exc)
        chart_storage = LocalChartStorage(settings.charts_dir, create=False)
    chart_manager = ChartRegionManager(
        chart_fetcher,
        chart_storage,
        max_concurrent_downloads=settings.max_concurrent_downloads,
    )
    chart_manager.load_catalog()

    airport_index = await _load_airports(store, settings)

    app.state.settings = settings
    app.state.weather_cache = WeatherCache(metar_client, store)
    app.state.chart_manager = chart_manager
    app.state.airport_index = airport_index
    app.state.route_planner = RoutePlanner(airport_index, store)
    try:
        yield
    finally:
        cancelled = chart_manager.cancel_all()
        if cancelled:
            logger.info("Cancelled %d chart downloads on shutdown", cancelled)
        await chart_manager.wait_idle()
        await metar_client.aclose()
        await chart_fetcher.aclose()


async def _load_airports(store: SQLiteStore, settings: Settings) -> AirportIndex:
    """Index the store's airports, seeding an empty table from the bundled data."""
    try:
        if not await store.list_airport_rows():
            await seed_store(store)
    except StorageUnavailableError as exc:
        logger.warning("Cannot seed airport table, indexing bundled data only: %s", exc)
        return AirportIndex(seed_airports(), grid=settings.grid_index)
    return await AirportIndex.from_store(store, grid=settings.grid_index)


app = FastAPI(
    title="EFB Data API",
    description="Offline-first weather, chart and airport data for an electronic flight bag",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(weather.router, prefix="/api")
app.include_router(charts.router, prefix="/api")
app.include_router(airports.router, prefix="/api")
app.include_router(plans.router, prefix="/api")


@app.get("/api/health")
async def health():
    state = app.state
    result = {"status": "ok"}
    if hasattr(state, "weather_cache"):
        result["cached_stations"] = len(state.weather_cache)
    if hasattr(state, "chart_manager"):
        result["chart_regions"] = len(state.chart_manager.regions())
    if hasattr(state, "airport_index"):
        result["airports"] = len(state.airport_index)
    return result
