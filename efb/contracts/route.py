"""RouteLeg, RoutePlan — ordered airport sequence with derived legs and totals.

Plans are **calculated**, never persisted. Any waypoint change produces a
brand-new plan; there is no incremental update of legs or totals.
"""

from datetime import timedelta
from typing import Self

from pydantic import ConfigDict, Field, model_validator

from efb.contracts.airport import Airport
from efb.contracts.common import EFBModel


class RouteLeg(EFBModel):
    """A leg between two consecutive waypoints."""

    from_icao: str
    to_icao: str
    distance_nm: float = Field(..., ge=0, description="Great-circle distance in NM")
    bearing_deg: float = Field(..., ge=0, lt=360, description="Initial true bearing")
    ete: timedelta = Field(..., description="Leg time at cruise speed")
    fuel_gal: float = Field(..., ge=0, description="Leg fuel at the plan burn rate")


class RoutePlan(EFBModel):
    """Flight plan over an ordered sequence of airports."""

    model_config = ConfigDict(frozen=True)

    waypoints: list[Airport] = Field(..., min_length=2)
    legs: list[RouteLeg]
    cruise_speed_kts: float = Field(..., gt=0)
    burn_rate_gph: float = Field(..., ge=0)

    total_distance_nm: float = Field(..., ge=0, description="Sum of leg distances")
    estimated_time: timedelta = Field(..., description="Total distance / cruise speed")
    estimated_fuel_gal: float = Field(..., ge=0, description="Hours en route x burn rate")

    @model_validator(mode="after")
    def validate_legs(self) -> Self:
        if len(self.legs) != len(self.waypoints) - 1:
            raise ValueError(
                f"Expected {len(self.waypoints) - 1} legs for "
                f"{len(self.waypoints)} waypoints, got {len(self.legs)}"
            )
        for i, leg in enumerate(self.legs):
            if (leg.from_icao, leg.to_icao) != (
                self.waypoints[i].icao,
                self.waypoints[i + 1].icao,
            ):
                raise ValueError(
                    f"Leg {i} ({leg.from_icao}->{leg.to_icao}) does not join "
                    f"waypoints {self.waypoints[i].icao}->{self.waypoints[i + 1].icao}"
                )
        return self

    @property
    def departure(self) -> Airport:
        return self.waypoints[0]

    @property
    def destination(self) -> Airport:
        return self.waypoints[-1]

    @property
    def estimated_time_minutes(self) -> float:
        return self.estimated_time.total_seconds() / 60.0
