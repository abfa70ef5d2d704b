"""Tests for the SQLite aviation store (real SQLite in tmp_path)."""

from __future__ import annotations

import sqlite3
from datetime import timedelta
from pathlib import Path

import pytest

from efb.errors import StorageUnavailableError
from efb.persistence.sqlite_store import SQLiteStore
from tests.fakes import T0, kpao, ksql, make_airport, make_observation


@pytest.fixture
def store(tmp_path: Path) -> SQLiteStore:
    s = SQLiteStore(tmp_path / "efb" / "aviation.db")
    s.initialize()
    return s


class TestInitialize:
    def test_creates_file_and_tables(self, store: SQLiteStore):
        assert store.db_path.exists()
        conn = store.get_connection()
        try:
            names = {r["name"] for r in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}
        finally:
            conn.close()
        assert {"airports", "weather_cache"} <= names

    def test_idempotent(self, store: SQLiteStore):
        store.initialize()

    def test_unusable_path(self, tmp_path: Path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(StorageUnavailableError):
            SQLiteStore(blocker / "aviation.db").initialize()


class TestAirports:
    async def test_upsert_and_get(self, store: SQLiteStore):
        assert await store.upsert_airports([kpao(), ksql()]) == 2
        airport = await store.get_airport("kpao")
        assert airport == kpao()
        assert await store.get_airport("KXYZ") is None

    async def test_upsert_replaces(self, store: SQLiteStore):
        await store.upsert_airports([kpao()])
        await store.upsert_airports([make_airport("KPAO", 37.4611, -122.1150, 7, "Palo Alto Renamed")])
        airport = await store.get_airport("KPAO")
        assert airport.name == "Palo Alto Renamed"
        assert airport.elevation_ft == 7
        assert len(await store.list_airport_rows()) == 1

    async def test_search_icao_before_name(self, store: SQLiteStore):
        await store.upsert_airports([
            kpao(),
            ksql(),
            make_airport("KSFO", 37.6213, -122.379, 13, "San Francisco Intl"),
        ])
        results = await store.search_airports("ksf", 10)
        assert [a.icao for a in results] == ["KSFO"]

        results = await store.search_airports("san", 10)
        assert [a.icao for a in results] == ["KSFO", "KSQL"]

    async def test_search_blank_or_zero_limit(self, store: SQLiteStore):
        await store.upsert_airports([kpao()])
        assert await store.search_airports("  ", 10) == []
        assert await store.search_airports("KPAO", 0) == []

    async def test_incomplete_row_listed_raw_but_not_served(self, store: SQLiteStore):
        conn = store.get_connection()
        conn.execute("INSERT INTO airports (icao, name) VALUES ('KNOL', 'No Location')")
        conn.commit()
        conn.close()

        rows = await store.list_airport_rows()
        assert rows[0]["icao"] == "KNOL"
        assert rows[0]["latitude"] is None
        assert await store.get_airport("KNOL") is None


class TestWeatherCache:
    async def test_put_and_get(self, store: SQLiteStore):
        obs = make_observation("KPAO")
        await store.put_cached_weather(obs)
        assert await store.get_cached_weather("kpao") == obs
        assert await store.get_cached_weather("KSQL") is None

    async def test_newer_write_wins(self, store: SQLiteStore):
        await store.put_cached_weather(make_observation("KPAO", raw_metar="METAR KPAO old"))
        await store.put_cached_weather(
            make_observation("KPAO", fetched_at=T0 + timedelta(minutes=5), raw_metar="METAR KPAO new")
        )
        assert (await store.get_cached_weather("KPAO")).raw_metar == "METAR KPAO new"

    async def test_older_write_is_ignored(self, store: SQLiteStore):
        await store.put_cached_weather(make_observation("KPAO", raw_metar="METAR KPAO new"))
        await store.put_cached_weather(
            make_observation("KPAO", fetched_at=T0 - timedelta(minutes=5), raw_metar="METAR KPAO old")
        )
        assert (await store.get_cached_weather("KPAO")).raw_metar == "METAR KPAO new"

    async def test_clear(self, store: SQLiteStore):
        await store.put_cached_weather(make_observation("KPAO"))
        await store.clear_weather_cache()
        assert await store.get_cached_weather("KPAO") is None

    async def test_corrupt_payload_is_a_miss(self, store: SQLiteStore):
        conn = store.get_connection()
        conn.execute(
            "INSERT INTO weather_cache (station_id, fetched_at, payload) VALUES (?, ?, ?)",
            ("KPAO", T0.isoformat(), "{not json"),
        )
        conn.commit()
        conn.close()
        assert await store.get_cached_weather("KPAO") is None


async def test_sqlite_errors_become_storage_unavailable(tmp_path: Path):
    path = tmp_path / "broken.db"
    path.write_bytes(b"this is not a database at all" * 100)
    with pytest.raises(StorageUnavailableError):
        await SQLiteStore(path).get_airport("KPAO")


async def test_missing_tables(tmp_path: Path):
    sqlite3.connect(str(tmp_path / "empty.db")).close()
    with pytest.raises(StorageUnavailableError):
        await SQLiteStore(tmp_path / "empty.db").list_airport_rows()
