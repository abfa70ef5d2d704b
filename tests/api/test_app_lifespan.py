"""Tests for application startup and shutdown wiring."""

from __future__ import annotations

import asyncio
from pathlib import Path

import httpx
import pytest

import efb.api.app as app_module
from efb.api.app import app, lifespan
from efb.contracts.enums import DownloadState
from efb.errors import ChartDownloadError
from efb.persistence.sqlite_store import SQLiteStore
from tests.fakes import FakeChartFetcher

ENV_VARS = ("EFB_DATA_DIR", "EFB_CHARTS_DIR", "EFB_DB_PATH", "EFB_GRID_INDEX",
            "EFB_MAX_CONCURRENT_DOWNLOADS")
STATE_ATTRS = ("settings", "weather_cache", "chart_manager", "airport_index", "route_planner")


@pytest.fixture(autouse=True)
def data_dir(monkeypatch, tmp_path: Path) -> Path:
    monkeypatch.chdir(tmp_path)
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)
    monkeypatch.setenv("EFB_DATA_DIR", str(tmp_path / "data"))
    yield tmp_path / "data"
    for name in STATE_ATTRS:
        if hasattr(app.state, name):
            delattr(app.state, name)


@pytest.fixture
def chart_fetcher(monkeypatch) -> FakeChartFetcher:
    fetcher = FakeChartFetcher()
    monkeypatch.setattr(app_module, "HttpChartFetcher", lambda **kwargs: fetcher)
    return fetcher


@pytest.fixture
def blocker(tmp_path: Path) -> Path:
    path = tmp_path / "not-a-directory"
    path.write_text("a regular file")
    return path


async def _get(path: str) -> httpx.Response:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        return await c.get(path)


class TestStartup:
    async def test_seeds_empty_store(self, data_dir: Path, chart_fetcher):
        async with lifespan(app):
            assert (data_dir / "efb.db").exists()
            assert len(app.state.airport_index) == 108
            assert len(app.state.chart_manager.regions()) > 0
            resp = await _get("/api/airports/KPAO")
            assert resp.status_code == 200
            assert resp.json()["name"] == "Palo Alto"

    async def test_reuses_seeded_store(self, data_dir: Path, chart_fetcher):
        async with lifespan(app):
            pass
        async with lifespan(app):
            assert len(app.state.airport_index) == 108
        rows = await SQLiteStore(data_dir / "efb.db").list_airport_rows()
        assert len(rows) == 108

    async def test_removes_partial_downloads(self, data_dir: Path, chart_fetcher):
        charts = data_dir / "charts"
        charts.mkdir(parents=True)
        (charts / "Seattle.mbtiles.part").write_bytes(b"half")

        async with lifespan(app):
            assert not (charts / "Seattle.mbtiles.part").exists()

    async def test_store_down_indexes_bundled_airports(self, monkeypatch, blocker: Path, chart_fetcher):
        monkeypatch.setenv("EFB_DB_PATH", str(blocker / "efb.db"))

        async with lifespan(app):
            assert len(app.state.airport_index) == 108
            plan = await app.state.route_planner.plan_by_icao(["KPAO", "KSQL"])
            assert plan.total_distance_nm == pytest.approx(7.09, abs=0.05)

    async def test_chart_storage_down_still_serves(self, monkeypatch, blocker: Path, chart_fetcher):
        monkeypatch.setenv("EFB_CHARTS_DIR", str(blocker / "charts"))

        async with lifespan(app):
            manager = app.state.chart_manager
            assert not any(r.is_downloaded for r in manager.regions())
            assert (await _get("/api/airports/KSQL")).status_code == 200
            assert (await _get("/api/charts")).status_code == 200

            task = manager.download("Seattle")
            with pytest.raises(ChartDownloadError):
                await task.result()
            assert chart_fetcher.calls == []


class TestShutdown:
    async def test_cancels_downloads_and_closes_clients(self, chart_fetcher):
        chart_fetcher.gate = asyncio.Event()

        async with lifespan(app):
            task = app.state.chart_manager.download("Seattle")
            await asyncio.sleep(0)

        assert task.state == DownloadState.CANCELLED
        assert chart_fetcher.closed
