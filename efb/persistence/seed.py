"""Bundled US airport reference data (``efb/data/airports.csv``).

Loaded into the aviation store on first start so the nearest-airport and
route features work before any database import.
"""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from efb.contracts.airport import Airport
from efb.persistence.store import AviationStore, airport_from_row

logger = logging.getLogger(__name__)

SEED_AIRPORTS_PATH = Path(__file__).resolve().parent.parent / "data" / "airports.csv"

_FLOAT_COLUMNS = ("latitude", "longitude", "elevation_ft", "ctaf_mhz")


def read_seed_rows(path: Path = SEED_AIRPORTS_PATH) -> list[dict[str, Any]]:
    """CSV rows with numeric columns converted; blank cells become None."""
    rows = []
    with open(path, newline="", encoding="utf-8") as f:
        for raw in csv.DictReader(f):
            row: dict[str, Any] = {k: (v.strip() or None) if v is not None else None
                                   for k, v in raw.items()}
            for col in _FLOAT_COLUMNS:
                if row.get(col) is not None:
                    try:
                        row[col] = float(row[col])
                    except ValueError:
                        row[col] = None
            rows.append(row)
    return rows


def seed_airports(path: Path = SEED_AIRPORTS_PATH) -> list[Airport]:
    airports = []
    for row in read_seed_rows(path):
        try:
            airports.append(airport_from_row(row))
        except (ValidationError, KeyError) as e:
            logger.warning("Bad seed airport row %s: %s", row.get("icao"), e)
    return airports


async def seed_store(store: AviationStore, path: Path = SEED_AIRPORTS_PATH) -> int:
    """Upsert the bundled airports into *store*. Returns the row count."""
    airports = seed_airports(path)
    count = await store.upsert_airports(airports)
    logger.info("Seeded %d airports from %s", count, path.name)
    return count
