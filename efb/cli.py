"""Command-line access to the EFB data layer.

Usage:
    python -m efb.cli weather KPAO KSQL --force
    python -m efb.cli charts --expired
    python -m efb.cli download San_Francisco
    python -m efb.cli delete San_Francisco
    python -m efb.cli nearest 37.46 -122.11 --count 5
    python -m efb.cli plan KPAO KSQL KHAF --speed 110 --burn 8
    python -m efb.cli seed
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from efb.config import Settings
from efb.contracts.common import Coordinate
from efb.errors import EFBError, StorageUnavailableError
from efb.persistence.chart_storage import LocalChartStorage
from efb.persistence.seed import seed_store
from efb.persistence.sqlite_store import SQLiteStore
from efb.services.airports.airport_index import AirportIndex
from efb.services.charts.chart_manager import ChartRegionManager
from efb.services.charts.fetcher import HttpChartFetcher
from efb.services.route_planner import RoutePlanner
from efb.services.weather.metar_client import MetarClient
from efb.services.weather.weather_cache import WeatherCache, format_age

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="efb", description="EFB aeronautical data tools")
    parser.add_argument("-v", "--verbose", action="store_true")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("weather", help="Refresh and show METARs")
    p.add_argument("stations", nargs="+", help="ICAO station identifiers")
    p.add_argument("--force", action="store_true", help="Fetch even if the cache is fresh")
    p.add_argument("--taf", action="store_true", help="Also fetch the TAF")

    p = sub.add_parser("charts", help="List chart regions")
    p.add_argument("--expired", action="store_true", help="Only expired regions")

    p = sub.add_parser("download", help="Download a chart region")
    p.add_argument("region")
    p.add_argument("--force", action="store_true", help="Re-download a current chart")

    p = sub.add_parser("delete", help="Delete a downloaded chart region")
    p.add_argument("region")

    p = sub.add_parser("nearest", help="Nearest airports to a position")
    p.add_argument("lat", type=float)
    p.add_argument("lon", type=float)
    p.add_argument("--count", type=int, default=5)

    p = sub.add_parser("plan", help="Distance, time and fuel for a route")
    p.add_argument("waypoints", nargs="+", help="ICAO codes in flight order")
    p.add_argument("--speed", type=float, default=None, help="Cruise speed (kt)")
    p.add_argument("--burn", type=float, default=None, help="Fuel burn (gal/h)")

    sub.add_parser("seed", help="Load the bundled airports into the store")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        settings = Settings.from_env()
        return asyncio.run(COMMANDS[args.command](args, settings))
    except EFBError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        return 130


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


def _store(settings: Settings) -> SQLiteStore:
    store = SQLiteStore(settings.db_path)
    store.initialize()
    return store


async def cmd_weather(args: argparse.Namespace, settings: Settings) -> int:
    client = MetarClient(
        base_url=settings.weather_base_url,
        timeout=settings.http_timeout,
        user_agent=settings.user_agent,
    )
    try:
        cache = WeatherCache(client, _store(settings))
        results = await cache.refresh_many(args.stations, force=args.force)
        for station, result in results.items():
            obs = result.observation
            age = format_age(cache.age_of(obs))
            flag = " (fetch failed, showing cached copy)" if result.degraded else ""
            print(f"{station} {obs.flight_category} [{result.tier}, {age}]{flag}")
            if obs.raw_metar:
                print(f"  {obs.raw_metar}")
            if args.taf:
                taf = await cache.fetch_taf(station)
                if taf:
                    print(f"  {taf}")
        missing = [s.upper() for s in args.stations if s.upper() not in results]
        for station in missing:
            print(f"{station}: no weather available")
        return 1 if missing else 0
    finally:
        await client.aclose()


def _chart_manager(settings: Settings, fetcher: HttpChartFetcher) -> ChartRegionManager:
    manager = ChartRegionManager(
        fetcher,
        LocalChartStorage(settings.charts_dir),
        max_concurrent_downloads=settings.max_concurrent_downloads,
    )
    manager.load_catalog()
    return manager


async def cmd_charts(args: argparse.Namespace, settings: Settings) -> int:
    fetcher = HttpChartFetcher(user_agent=settings.user_agent)
    try:
        manager = _chart_manager(settings, fetcher)
        regions = manager.expired_regions() if args.expired else manager.regions()
        now = manager.now()
        for r in regions:
            expired = " EXPIRED" if r.is_expired(now) else ""
            print(
                f"{r.id:<18} {manager.status(r.id).value:<15} "
                f"{r.file_size_bytes / 1_000_000:7.1f} MB  "
                f"valid {r.effective_date:%Y-%m-%d} to {r.expiration_date:%Y-%m-%d}{expired}"
            )
        print(f"Storage used: {manager.storage_used() / 1_000_000:.1f} MB")
        return 0
    finally:
        await fetcher.aclose()


async def cmd_download(args: argparse.Namespace, settings: Settings) -> int:
    fetcher = HttpChartFetcher(user_agent=settings.user_agent)
    try:
        manager = _chart_manager(settings, fetcher)
        task = manager.download(args.region, force=args.force)
        last_decile = -1
        async for progress in task.progress_updates():
            decile = int(progress * 10)
            if decile > last_decile:
                last_decile = decile
                logger.info("%s: %d%%", args.region, decile * 10)
        region = await task.result()
        print(f"{region.id} downloaded to {region.local_path}")
        return 0
    finally:
        await fetcher.aclose()


async def cmd_delete(args: argparse.Namespace, settings: Settings) -> int:
    fetcher = HttpChartFetcher(user_agent=settings.user_agent)
    try:
        manager = _chart_manager(settings, fetcher)
        manager.delete(args.region)
        print(f"{args.region} deleted")
        return 0
    finally:
        await fetcher.aclose()


async def _airport_index(settings: Settings) -> tuple[AirportIndex, SQLiteStore]:
    store = _store(settings)
    try:
        if not await store.list_airport_rows():
            await seed_store(store)
    except StorageUnavailableError as e:
        logger.warning("Cannot seed airport table: %s", e)
    return await AirportIndex.from_store(store, grid=settings.grid_index), store


async def cmd_nearest(args: argparse.Namespace, settings: Settings) -> int:
    index, _ = await _airport_index(settings)
    point = Coordinate(latitude=args.lat, longitude=args.lon)
    for n in index.nearest_with_bearing(point, args.count):
        print(f"{n.airport.icao:<5} {n.distance_nm:6.1f} NM  {n.bearing_deg:03.0f}°  {n.airport.name}")
    return 0


async def cmd_plan(args: argparse.Namespace, settings: Settings) -> int:
    index, store = await _airport_index(settings)
    plan = await RoutePlanner(index, store).plan_by_icao(
        args.waypoints, cruise_speed_kts=args.speed, burn_rate_gph=args.burn
    )
    for leg in plan.legs:
        print(
            f"{leg.from_icao} -> {leg.to_icao}: {leg.distance_nm:6.1f} NM  "
            f"{leg.bearing_deg:03.0f}°  {leg.ete.total_seconds() / 60:5.1f} min"
        )
    print(
        f"Total {plan.total_distance_nm:.1f} NM, "
        f"{plan.estimated_time_minutes:.0f} min, {plan.estimated_fuel_gal:.1f} gal"
    )
    return 0


async def cmd_seed(args: argparse.Namespace, settings: Settings) -> int:
    count = await seed_store(_store(settings))
    print(f"{count} airports loaded into {settings.db_path}")
    return 0


COMMANDS = {
    "weather": cmd_weather,
    "charts": cmd_charts,
    "download": cmd_download,
    "delete": cmd_delete,
    "nearest": cmd_nearest,
    "plan": cmd_plan,
    "seed": cmd_seed,
}


if __name__ == "__main__":
    sys.exit(main())
