"""NOAA Aviation Weather Center METAR/TAF client."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Protocol

import httpx

from efb.clock import Clock, SystemClock
from efb.config import DEFAULT_HTTP_TIMEOUT, DEFAULT_USER_AGENT, DEFAULT_WEATHER_BASE_URL
from efb.contracts.enums import CloudCover, FlightCategory, parse_enum
from efb.contracts.weather import CloudLayer, WeatherObservation, WindInfo
from efb.errors import (
    FetchFailedError,
    FetchTimeoutError,
    InvalidInputError,
    NetworkUnavailableError,
)

logger = logging.getLogger(__name__)

CEILING_COVERS = (CloudCover.BKN, CloudCover.OVC, CloudCover.OVX)


class WeatherFetcher(Protocol):
    async def fetch_metar(self, station_id: str) -> WeatherObservation:
        """Latest METAR for a station. Raises ``FetchFailedError``."""
        ...

    async def fetch_taf(self, station_id: str) -> str | None:
        """Raw TAF text, or None if the station issues none."""
        ...


class MetarClient:
    """Async HTTP client for METAR observations and TAF forecasts."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = DEFAULT_WEATHER_BASE_URL,
        clock: Clock | None = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": user_agent},
        )
        self._base_url = base_url.rstrip("/")
        self._clock = clock or SystemClock()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_metar(self, station_id: str) -> WeatherObservation:
        """Fetch the most recent METAR for an ICAO code."""
        icao = station_id.strip().upper()
        data = await self._get_json("metar", icao)
        if not data:
            raise FetchFailedError(f"No METAR available for {icao}")
        try:
            return parse_metar(data[0], fetched_at=self._clock.now(), station_id=icao)
        except (InvalidInputError, ValueError, TypeError) as e:
            raise FetchFailedError(f"Malformed METAR payload for {icao}: {e}") from e

    async def fetch_taf(self, station_id: str) -> str | None:
        """Fetch the raw TAF text for an ICAO code."""
        icao = station_id.strip().upper()
        data = await self._get_json("taf", icao)
        if not data:
            return None
        return data[0].get("rawTAF")

    async def _get_json(self, product: str, icao: str) -> list[dict[str, Any]]:
        url = f"{self._base_url}/{product}"
        try:
            resp = await self._client.get(url, params={"ids": icao, "format": "json"})
            resp.raise_for_status()
        except httpx.TimeoutException as e:
            raise FetchTimeoutError(f"Timeout fetching {product} for {icao}") from e
        except httpx.HTTPStatusError as e:
            raise NetworkUnavailableError(
                f"HTTP {e.response.status_code} fetching {product} for {icao}"
            ) from e
        except httpx.HTTPError as e:
            raise NetworkUnavailableError(f"Failed to fetch {product} for {icao}: {e}") from e

        # aviationweather.gov answers 204 with an empty body for unknown stations
        if resp.status_code == 204 or not resp.content:
            return []
        try:
            data = resp.json()
        except ValueError as e:
            raise FetchFailedError(f"Invalid JSON in {product} response for {icao}") from e
        if not isinstance(data, list):
            raise FetchFailedError(f"Unexpected {product} response shape for {icao}")
        return data


def parse_metar(
    raw: dict[str, Any],
    fetched_at: datetime,
    station_id: str | None = None,
) -> WeatherObservation:
    """Parse a single NOAA METAR JSON entry into a WeatherObservation."""
    clouds = _parse_clouds(raw.get("clouds") or [])
    ceiling = determine_ceiling(clouds)
    visibility = _parse_visibility(raw.get("visib"))

    fltcat = raw.get("fltcat")
    if fltcat:
        category = parse_enum(FlightCategory, fltcat, "fltcat")
    else:
        category = determine_flight_category(ceiling, visibility)

    return WeatherObservation(
        station_id=(raw.get("icaoId") or station_id or "").upper(),
        raw_metar=raw.get("rawOb"),
        flight_category=category,
        fetched_at=fetched_at,
        observation_time=_parse_time(raw.get("reportTime") or raw.get("obsTime")),
        temperature_c=raw.get("temp"),
        dewpoint_c=raw.get("dewp"),
        wind=_parse_wind(raw.get("wdir"), raw.get("wspd"), raw.get("wgst")),
        visibility_sm=visibility,
        ceiling_ft=ceiling,
        clouds=clouds,
        altimeter_hpa=raw.get("altim"),
    )


def determine_ceiling(clouds: list[CloudLayer]) -> int | None:
    """Ceiling is the lowest BKN or OVC layer base; None when there is none."""
    bases = [
        cl.base_ft for cl in clouds
        if cl.cover in CEILING_COVERS and cl.base_ft is not None
    ]
    return min(bases) if bases else None


def determine_flight_category(ceiling: int | None, visibility: float | None) -> FlightCategory:
    """Classify from ceiling (ft AGL) and visibility (SM).

    VFR:  ceiling > 3000 and visibility > 5
    MVFR: ceiling 1000-3000 or visibility 3-5
    IFR:  ceiling 500-999 or visibility 1-3
    LIFR: ceiling < 500 or visibility < 1
    """
    ceil = ceiling if ceiling is not None else 99_999  # no ceiling reported
    vis = visibility if visibility is not None else 10.0

    if ceil < 500 or vis < 1.0:
        return FlightCategory.LIFR
    if ceil < 1000 or vis < 3.0:
        return FlightCategory.IFR
    if ceil <= 3000 or vis <= 5.0:
        return FlightCategory.MVFR
    return FlightCategory.VFR


def _parse_clouds(layers: list[dict[str, Any]]) -> list[CloudLayer]:
    clouds: list[CloudLayer] = []
    for layer in layers:
        cover_str = (layer.get("cover") or "").upper()
        try:
            cover = CloudCover(cover_str)
        except ValueError:
            continue
        clouds.append(CloudLayer(cover=cover, base_ft=layer.get("base")))
    return clouds


def _parse_visibility(visib: Any) -> float | None:
    """NOAA reports statute miles, either a number or a string like "10+"."""
    if visib is None:
        return None
    if isinstance(visib, (int, float)):
        return float(visib)
    cleaned = str(visib).upper().replace("+", "").replace("P", "").replace("SM", "").strip()
    try:
        return float(cleaned)
    except ValueError:
        return None


def _parse_wind(wdir: Any, wspd: Any, wgst: Any) -> WindInfo | None:
    if wspd is None:
        return None
    variable = isinstance(wdir, str) and wdir.upper() == "VRB"
    direction = 0 if variable or wdir is None else int(wdir)
    return WindInfo(
        direction_deg=direction,
        speed_kts=int(wspd),
        gust_kts=int(wgst) if wgst is not None else None,
        variable=variable,
    )


def _parse_time(value: Any) -> datetime | None:
    if not value:
        return None
    if isinstance(value, (int, float)):
        # obsTime is epoch seconds in the JSON API
        return datetime.fromtimestamp(value, tz=timezone.utc)
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable METAR time %r", value)
        return None
