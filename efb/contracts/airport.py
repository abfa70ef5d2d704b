"""Airport models — read-only reference data owned by the aviation store."""

from pydantic import ConfigDict, Field, field_validator

from efb.contracts.common import Coordinate, EFBModel


class Airport(EFBModel):
    """An airport as served by the geospatial index."""

    model_config = ConfigDict(frozen=True)

    icao: str = Field(..., pattern=r"^[A-Z0-9]{3,4}$")
    name: str
    coordinate: Coordinate
    elevation_ft: float
    faa_id: str | None = None
    ctaf_mhz: float | None = Field(default=None, gt=100.0, lt=200.0)

    @field_validator("icao", mode="before")
    @classmethod
    def normalize_icao(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v


class NearbyAirport(EFBModel):
    """An airport with distance and bearing from a query point."""

    airport: Airport
    distance_nm: float = Field(..., ge=0)
    bearing_deg: float = Field(..., ge=0, lt=360)
