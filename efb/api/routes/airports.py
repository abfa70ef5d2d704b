"""Airport lookup endpoints backed by the in-memory index."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Query

from efb.api.deps import get_airport_index, http_error
from efb.contracts.common import Coordinate
from efb.errors import EFBError, NotFoundError
from efb.services.airports.airport_index import AirportIndex

router = APIRouter(prefix="/airports", tags=["airports"])


@router.get("/nearest")
async def nearest(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    count: int = Query(default=5, ge=0, le=100),
    index: AirportIndex = Depends(get_airport_index),
) -> list[dict[str, Any]]:
    """Nearest airports with distance and bearing, closest first."""
    try:
        results = index.nearest_with_bearing(Coordinate(latitude=lat, longitude=lon), count)
    except EFBError as e:
        raise http_error(e) from e
    return [r.to_dict() for r in results]


@router.get("/within")
async def within(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius_nm: float = Query(..., ge=0),
    index: AirportIndex = Depends(get_airport_index),
) -> list[dict[str, Any]]:
    try:
        results = index.within(Coordinate(latitude=lat, longitude=lon), radius_nm)
    except EFBError as e:
        raise http_error(e) from e
    return [a.to_dict() for a in results]


@router.get("/search")
async def search(
    q: str = Query(..., min_length=1),
    limit: int = Query(default=20, ge=1, le=100),
    index: AirportIndex = Depends(get_airport_index),
) -> list[dict[str, Any]]:
    return [a.to_dict() for a in index.search(q, limit)]


@router.get("/{icao}")
async def get_airport(
    icao: str,
    index: AirportIndex = Depends(get_airport_index),
) -> dict[str, Any]:
    airport = index.get(icao)
    if airport is None:
        raise http_error(NotFoundError("Airport", icao.upper()))
    return airport.to_dict()
