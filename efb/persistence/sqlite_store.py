"""SQLite-backed aviation store: airport reference table + weather cache."""

from __future__ import annotations

import asyncio
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Callable, Iterable, TypeVar

from pydantic import ValidationError

from efb.contracts.airport import Airport
from efb.contracts.weather import WeatherObservation
from efb.errors import StorageUnavailableError
from efb.persistence.store import airport_from_row

logger = logging.getLogger(__name__)

T = TypeVar("T")

SCHEMA = """
CREATE TABLE IF NOT EXISTS airports (
    icao         TEXT PRIMARY KEY,
    name         TEXT,
    latitude     REAL,
    longitude    REAL,
    elevation_ft REAL,
    faa_id       TEXT,
    ctaf_mhz     REAL
);
CREATE INDEX IF NOT EXISTS idx_airports_name ON airports(name);

CREATE TABLE IF NOT EXISTS weather_cache (
    station_id TEXT PRIMARY KEY,
    fetched_at TEXT NOT NULL,
    payload    TEXT NOT NULL
);
"""


class SQLiteStore:
    """Aviation store on a single SQLite file.

    - Each call opens its own connection on a worker thread, so the event
      loop never blocks on disk and no connection is shared across threads.
    - Weather writes are last-successful-write-wins on ``fetched_at``.
    """

    def __init__(self, db_path: str | Path):
        self._db_path = Path(db_path)

    @property
    def db_path(self) -> Path:
        return self._db_path

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def get_connection(self) -> sqlite3.Connection:
        """Open a new connection. The caller closes it."""
        conn = sqlite3.connect(str(self._db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def initialize(self) -> None:
        """Create the database file and tables if missing."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = self.get_connection()
            try:
                conn.executescript(SCHEMA)
                conn.commit()
            finally:
                conn.close()
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(f"Cannot initialize {self._db_path}: {e}") from e
        logger.info("Aviation store ready: %s", self._db_path)

    async def _run(self, fn: Callable[[sqlite3.Connection], T]) -> T:
        def call() -> T:
            conn = self.get_connection()
            try:
                result = fn(conn)
                conn.commit()
                return result
            finally:
                conn.close()

        try:
            return await asyncio.to_thread(call)
        except sqlite3.Error as e:
            raise StorageUnavailableError(f"SQLite error on {self._db_path}: {e}") from e

    # ------------------------------------------------------------------
    # Airports
    # ------------------------------------------------------------------

    async def get_airport(self, icao: str) -> Airport | None:
        code = icao.strip().upper()
        row = await self._run(
            lambda conn: conn.execute(
                "SELECT * FROM airports WHERE icao = ?", (code,)
            ).fetchone()
        )
        if row is None:
            return None
        try:
            return airport_from_row(dict(row))
        except (ValidationError, KeyError) as e:
            logger.warning("Airport row %s is incomplete, ignoring: %s", code, e)
            return None

    async def search_airports(self, query: str, limit: int) -> list[Airport]:
        """ICAO prefix or name substring match, ICAO matches first."""
        text = query.strip()
        if not text or limit <= 0:
            return []
        rows = await self._run(
            lambda conn: conn.execute(
                """
                SELECT * FROM airports
                WHERE icao LIKE ? OR name LIKE ? COLLATE NOCASE
                ORDER BY CASE WHEN icao LIKE ? THEN 0 ELSE 1 END, icao
                LIMIT ?
                """,
                (f"{text.upper()}%", f"%{text}%", f"{text.upper()}%", limit),
            ).fetchall()
        )
        results = []
        for r in rows:
            try:
                results.append(airport_from_row(dict(r)))
            except (ValidationError, KeyError):
                continue
        return results

    async def list_airport_rows(self) -> list[dict[str, Any]]:
        rows = await self._run(lambda conn: conn.execute("SELECT * FROM airports").fetchall())
        return [dict(r) for r in rows]

    async def upsert_airports(self, airports: Iterable[Airport]) -> int:
        """Load reference airports (seed data or a database import)."""
        values = [
            (
                a.icao,
                a.name,
                a.coordinate.latitude,
                a.coordinate.longitude,
                a.elevation_ft,
                a.faa_id,
                a.ctaf_mhz,
            )
            for a in airports
        ]

        def write(conn: sqlite3.Connection) -> int:
            conn.executemany(
                """
                INSERT INTO airports (icao, name, latitude, longitude, elevation_ft, faa_id, ctaf_mhz)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(icao) DO UPDATE SET
                    name = excluded.name,
                    latitude = excluded.latitude,
                    longitude = excluded.longitude,
                    elevation_ft = excluded.elevation_ft,
                    faa_id = excluded.faa_id,
                    ctaf_mhz = excluded.ctaf_mhz
                """,
                values,
            )
            return len(values)

        return await self._run(write)

    # ------------------------------------------------------------------
    # Weather cache
    # ------------------------------------------------------------------

    async def get_cached_weather(self, station_id: str) -> WeatherObservation | None:
        code = station_id.strip().upper()
        row = await self._run(
            lambda conn: conn.execute(
                "SELECT payload FROM weather_cache WHERE station_id = ?", (code,)
            ).fetchone()
        )
        if row is None:
            return None
        try:
            return WeatherObservation.from_dict(json.loads(row["payload"]))
        except (ValidationError, ValueError) as e:
            logger.warning("Cached weather for %s is unreadable, ignoring: %s", code, e)
            return None

    async def put_cached_weather(self, entry: WeatherObservation) -> None:
        payload = json.dumps(entry.to_dict())
        fetched_at = entry.fetched_at.isoformat()
        await self._run(
            lambda conn: conn.execute(
                """
                INSERT INTO weather_cache (station_id, fetched_at, payload)
                VALUES (?, ?, ?)
                ON CONFLICT(station_id) DO UPDATE SET
                    fetched_at = excluded.fetched_at,
                    payload = excluded.payload
                WHERE excluded.fetched_at >= weather_cache.fetched_at
                """,
                (entry.station_id, fetched_at, payload),
            )
        )

    async def clear_weather_cache(self) -> None:
        await self._run(lambda conn: conn.execute("DELETE FROM weather_cache"))
