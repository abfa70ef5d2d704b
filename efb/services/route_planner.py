"""Flight plan computation over an ordered list of airports.

Legs are computed pairwise in the order given; no reordering. Every edit
rebuilds the whole plan from its waypoints, so totals are never patched.
"""

from __future__ import annotations

import logging
import math
from datetime import timedelta
from typing import Sequence

from efb.contracts.airport import Airport
from efb.contracts.route import RouteLeg, RoutePlan
from efb.errors import (
    InsufficientWaypointsError,
    InvalidInputError,
    InvalidPerformanceError,
    NotFoundError,
    StorageUnavailableError,
)
from efb.persistence.store import AviationStore
from efb.services.airports.airport_index import AirportIndex
from efb.services.geodesy import bearing_deg, distance_nm

logger = logging.getLogger(__name__)

DEFAULT_CRUISE_SPEED_KTS = 120.0
DEFAULT_BURN_RATE_GPH = 8.5


def build_plan(
    waypoints: Sequence[Airport],
    cruise_speed_kts: float,
    burn_rate_gph: float = 0.0,
) -> RoutePlan:
    """Compute legs and totals for *waypoints* at the given performance.

    Raises:
        InsufficientWaypointsError: fewer than two waypoints.
        InvalidPerformanceError: cruise speed <= 0, burn rate < 0, or a
            non-finite figure.
    """
    if len(waypoints) < 2:
        raise InsufficientWaypointsError(
            f"A route needs at least 2 waypoints, got {len(waypoints)}"
        )
    _check_performance(cruise_speed_kts, burn_rate_gph)

    legs = []
    for origin, target in zip(waypoints, waypoints[1:]):
        dist = distance_nm(origin.coordinate, target.coordinate)
        hours = dist / cruise_speed_kts
        legs.append(
            RouteLeg(
                from_icao=origin.icao,
                to_icao=target.icao,
                distance_nm=dist,
                bearing_deg=bearing_deg(origin.coordinate, target.coordinate),
                ete=timedelta(hours=hours),
                fuel_gal=hours * burn_rate_gph,
            )
        )

    total = sum(leg.distance_nm for leg in legs)
    hours = total / cruise_speed_kts
    return RoutePlan(
        waypoints=list(waypoints),
        legs=legs,
        cruise_speed_kts=cruise_speed_kts,
        burn_rate_gph=burn_rate_gph,
        total_distance_nm=total,
        estimated_time=timedelta(hours=hours),
        estimated_fuel_gal=hours * burn_rate_gph,
    )


def _check_performance(cruise_speed_kts: float, burn_rate_gph: float) -> None:
    if not _is_number(cruise_speed_kts) or cruise_speed_kts <= 0:
        raise InvalidPerformanceError(
            f"Cruise speed must be a positive number of knots, got {cruise_speed_kts!r}"
        )
    if not _is_number(burn_rate_gph) or burn_rate_gph < 0:
        raise InvalidPerformanceError(
            f"Burn rate must be a non-negative number of gallons/hour, got {burn_rate_gph!r}"
        )


def _is_number(value: object) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


# ------------------------------------------------------------------
# Edits: each returns a brand-new plan
# ------------------------------------------------------------------

def insert_waypoint(plan: RoutePlan, position: int, airport: Airport) -> RoutePlan:
    waypoints = list(plan.waypoints)
    _check_position(position, len(waypoints) + 1)
    waypoints.insert(position, airport)
    return build_plan(waypoints, plan.cruise_speed_kts, plan.burn_rate_gph)


def remove_waypoint(plan: RoutePlan, position: int) -> RoutePlan:
    """Raises ``InsufficientWaypointsError`` if fewer than two would remain."""
    waypoints = list(plan.waypoints)
    _check_position(position, len(waypoints))
    del waypoints[position]
    return build_plan(waypoints, plan.cruise_speed_kts, plan.burn_rate_gph)


def replace_waypoint(plan: RoutePlan, position: int, airport: Airport) -> RoutePlan:
    waypoints = list(plan.waypoints)
    _check_position(position, len(waypoints))
    waypoints[position] = airport
    return build_plan(waypoints, plan.cruise_speed_kts, plan.burn_rate_gph)


def _check_position(position: int, size: int) -> None:
    if not 0 <= position < size:
        raise InvalidInputError(f"Waypoint position {position} is out of range 0..{size - 1}")


def with_performance(
    plan: RoutePlan,
    cruise_speed_kts: float | None = None,
    burn_rate_gph: float | None = None,
) -> RoutePlan:
    return build_plan(
        plan.waypoints,
        plan.cruise_speed_kts if cruise_speed_kts is None else cruise_speed_kts,
        plan.burn_rate_gph if burn_rate_gph is None else burn_rate_gph,
    )


class RoutePlanner:
    """Resolves ICAO codes to airports and builds plans from them.

    Lookups go to the in-memory index first, then to the store.
    """

    def __init__(
        self,
        index: AirportIndex,
        store: AviationStore | None = None,
        cruise_speed_kts: float = DEFAULT_CRUISE_SPEED_KTS,
        burn_rate_gph: float = DEFAULT_BURN_RATE_GPH,
    ):
        _check_performance(cruise_speed_kts, burn_rate_gph)
        self._index = index
        self._store = store
        self.cruise_speed_kts = cruise_speed_kts
        self.burn_rate_gph = burn_rate_gph

    async def resolve(self, icao: str) -> Airport:
        code = icao.strip().upper()
        airport = self._index.get(code)
        if airport is None and self._store is not None:
            try:
                airport = await self._store.get_airport(code)
            except StorageUnavailableError as e:
                logger.warning("Store unavailable while resolving %s: %s", code, e)
        if airport is None:
            raise NotFoundError("Airport", code)
        return airport

    async def plan_by_icao(
        self,
        icaos: Sequence[str],
        cruise_speed_kts: float | None = None,
        burn_rate_gph: float | None = None,
    ) -> RoutePlan:
        if len(icaos) < 2:
            raise InsufficientWaypointsError(
                f"A route needs at least 2 waypoints, got {len(icaos)}"
            )
        waypoints = [await self.resolve(code) for code in icaos]
        return build_plan(
            waypoints,
            self.cruise_speed_kts if cruise_speed_kts is None else cruise_speed_kts,
            self.burn_rate_gph if burn_rate_gph is None else burn_rate_gph,
        )
