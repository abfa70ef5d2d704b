"""Tests for the bundled airport seed data."""

from __future__ import annotations

from pathlib import Path

import pytest

from efb.persistence.seed import SEED_AIRPORTS_PATH, read_seed_rows, seed_airports, seed_store
from efb.persistence.sqlite_store import SQLiteStore


def test_bundled_file_present():
    assert SEED_AIRPORTS_PATH.is_file()


def test_bundled_rows_parse():
    airports = seed_airports()
    assert len(airports) == 108
    assert len({a.icao for a in airports}) == 108

    by_icao = {a.icao: a for a in airports}
    assert by_icao["KPAO"].name == "Palo Alto"
    assert by_icao["KPAO"].ctaf_mhz == pytest.approx(135.275)
    assert by_icao["KSQL"].coordinate.latitude == pytest.approx(37.5118)
    assert by_icao["KSFO"].ctaf_mhz is None


def test_blank_and_bad_cells(tmp_path: Path):
    path = tmp_path / "airports.csv"
    path.write_text(
        "icao,faa_id,name,latitude,longitude,elevation_ft,ctaf_mhz\n"
        "KAAA,AAA,Alpha,10.5,20.5,100,\n"
        "KBBB,,Bravo,north,20.5,100,\n",
        encoding="utf-8",
    )
    rows = read_seed_rows(path)
    assert rows[0]["ctaf_mhz"] is None
    assert rows[0]["latitude"] == 10.5
    assert rows[1]["faa_id"] is None
    assert rows[1]["latitude"] is None

    # Bravo has no usable latitude
    assert [a.icao for a in seed_airports(path)] == ["KAAA"]


async def test_seed_store(tmp_path: Path):
    store = SQLiteStore(tmp_path / "aviation.db")
    store.initialize()

    assert await seed_store(store) == 108
    # Seeding twice upserts rather than duplicating
    assert await seed_store(store) == 108
    assert len(await store.list_airport_rows()) == 108
    assert (await store.get_airport("KSQL")).name == "San Carlos"
