"""Weather cache endpoints."""

from __future__ import annotations

import re
from typing import Any

from fastapi import APIRouter, Depends, Response

from efb.api.deps import get_weather_cache, http_error
from efb.contracts.weather import WeatherObservation
from efb.errors import EFBError, InvalidInputError, NotFoundError
from efb.services.weather.weather_cache import WeatherCache, format_age

router = APIRouter(prefix="/weather", tags=["weather"])

STATION_RE = re.compile(r"^[A-Za-z0-9]{3,4}$")


def _station(station: str) -> str:
    if not STATION_RE.match(station):
        raise http_error(InvalidInputError(f"Invalid station identifier: {station!r}"))
    return station.upper()


def _entry(cache: WeatherCache, observation: WeatherObservation) -> dict[str, Any]:
    age = cache.age_of(observation)
    return {
        "observation": observation.to_dict(),
        "tier": cache.tier_for(observation).value,
        "age_minutes": int(age.total_seconds() // 60),
        "age": format_age(age),
    }


@router.get("")
async def list_cached(cache: WeatherCache = Depends(get_weather_cache)) -> list[dict[str, Any]]:
    """Every cached station with its staleness."""
    return [_entry(cache, cache.get(s)) for s in cache.stations()]


@router.get("/{station}")
async def get_cached(
    station: str,
    cache: WeatherCache = Depends(get_weather_cache),
) -> dict[str, Any]:
    """Cached observation only; never triggers a fetch."""
    code = _station(station)
    observation = cache.get(code)
    if observation is None:
        raise http_error(NotFoundError("weather", code))
    return _entry(cache, observation)


@router.post("/{station}/refresh")
async def refresh(
    station: str,
    force: bool = False,
    cache: WeatherCache = Depends(get_weather_cache),
) -> dict[str, Any]:
    code = _station(station)
    try:
        result = await cache.refresh(code, force=force)
    except EFBError as e:
        raise http_error(e) from e
    body = _entry(cache, result.observation)
    body["refreshed"] = result.refreshed
    body["degraded"] = result.degraded
    if result.error is not None:
        body["error"] = result.error.model_dump()
    return body


@router.post("/{station}/taf")
async def fetch_taf(
    station: str,
    cache: WeatherCache = Depends(get_weather_cache),
) -> dict[str, Any]:
    code = _station(station)
    try:
        taf = await cache.fetch_taf(code)
    except EFBError as e:
        raise http_error(e) from e
    if taf is None:
        raise http_error(NotFoundError("TAF", code))
    return {"station_id": code, "raw_taf": taf}


@router.delete("", status_code=204)
async def clear(cache: WeatherCache = Depends(get_weather_cache)) -> Response:
    await cache.clear_all()
    return Response(status_code=204)
