"""Shared fixtures for API tests."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from types import SimpleNamespace

import httpx
import pytest

from efb.api.app import app
from efb.clock import ManualClock
from efb.persistence.chart_storage import LocalChartStorage
from efb.services.airports.airport_index import AirportIndex
from efb.services.charts.chart_manager import ChartRegionManager
from efb.services.route_planner import RoutePlanner
from efb.services.weather.weather_cache import WeatherCache
from tests.fakes import (
    T0,
    FakeChartFetcher,
    FakeStore,
    FakeWeatherFetcher,
    FixedCatalog,
    kpao,
    ksql,
    make_airport,
    make_region,
)

SERVICE_ATTRS = ("weather_cache", "chart_manager", "airport_index", "route_planner")


@pytest.fixture
def services(tmp_path: Path):
    """Real services wired to in-memory collaborators and a manual clock."""
    clock = ManualClock(T0)
    weather_fetcher = FakeWeatherFetcher()
    store = FakeStore()
    chart_fetcher = FakeChartFetcher()
    catalog = FixedCatalog([
        make_region("San_Francisco"),
        make_region("Seattle"),
        make_region(
            "Los_Angeles",
            effective=T0 - timedelta(days=60),
            expiration=T0 - timedelta(days=4),
        ),
    ])
    manager = ChartRegionManager(
        chart_fetcher,
        LocalChartStorage(tmp_path / "charts"),
        clock=clock,
        catalog=catalog,
    )
    manager.load_catalog()
    index = AirportIndex([
        kpao(),
        ksql(),
        make_airport("KSFO", 37.6213, -122.3790, 13, "San Francisco Intl"),
    ])
    return SimpleNamespace(
        clock=clock,
        weather_fetcher=weather_fetcher,
        chart_fetcher=chart_fetcher,
        store=store,
        weather_cache=WeatherCache(weather_fetcher, store, clock=clock),
        chart_manager=manager,
        airport_index=index,
        route_planner=RoutePlanner(index, store),
    )


@pytest.fixture
def test_app(services):
    """The FastAPI app with its long-lived services replaced."""
    for name in SERVICE_ATTRS:
        setattr(app.state, name, getattr(services, name))
    yield app
    for name in SERVICE_ATTRS:
        delattr(app.state, name)


@pytest.fixture
async def client(test_app, services):
    """httpx AsyncClient wired to the test app."""
    transport = httpx.ASGITransport(app=test_app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    services.chart_manager.cancel_all()
    await services.chart_manager.wait_idle()
