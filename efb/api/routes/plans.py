"""Route plan computation endpoint. Plans are calculated, never stored."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from efb.api.deps import get_route_planner, http_error
from efb.errors import EFBError
from efb.services.route_planner import RoutePlanner

router = APIRouter(prefix="/plans", tags=["plans"])


class PlanRequest(BaseModel):
    """Ordered ICAO codes and optional performance overrides."""

    waypoints: list[str] = Field(..., description="ICAO codes in flight order")
    cruise_speed_kts: float | None = None
    burn_rate_gph: float | None = None


@router.post("")
async def build_plan(
    request: PlanRequest,
    planner: RoutePlanner = Depends(get_route_planner),
) -> dict[str, Any]:
    try:
        plan = await planner.plan_by_icao(
            request.waypoints,
            cruise_speed_kts=request.cruise_speed_kts,
            burn_rate_gph=request.burn_rate_gph,
        )
    except EFBError as e:
        raise http_error(e) from e
    data = plan.to_dict()
    data["estimated_time_minutes"] = plan.estimated_time_minutes
    return data
