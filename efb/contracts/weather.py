"""Weather models — cached METAR/TAF observations and refresh outcomes.

Cached in memory by ``WeatherCache`` and written through to the
``weather_cache`` table of the aviation store.
"""

from datetime import datetime

from pydantic import ConfigDict, Field, field_validator

from efb.contracts.common import EFBModel, ensure_utc
from efb.contracts.enums import CloudCover, FlightCategory, StalenessTier
from efb.contracts.result import ServiceError


class CloudLayer(EFBModel):
    """A single cloud layer from METAR observation."""

    cover: CloudCover
    base_ft: int | None = Field(default=None, ge=0, description="Cloud base in ft AGL")


class WindInfo(EFBModel):
    """Surface wind. Direction 0 with ``variable`` set means VRB."""

    direction_deg: int = Field(..., ge=0, le=360)
    speed_kts: int = Field(..., ge=0)
    gust_kts: int | None = Field(default=None, ge=0)
    variable: bool = False


class WeatherObservation(EFBModel):
    """Latest observation for one station, as held by the cache.

    ``fetched_at`` is the local wall-clock time of the successful fetch and
    is the only input to staleness. ``observation_time`` is the METAR's own
    timestamp, kept for display.
    """

    model_config = ConfigDict(frozen=True)

    station_id: str = Field(..., pattern=r"^[A-Z0-9]{3,4}$")
    raw_metar: str | None = None
    raw_taf: str | None = None
    flight_category: FlightCategory
    fetched_at: datetime

    observation_time: datetime | None = None
    temperature_c: float | None = None
    dewpoint_c: float | None = None
    wind: WindInfo | None = None
    visibility_sm: float | None = Field(default=None, ge=0)
    ceiling_ft: int | None = Field(default=None, ge=0, description="ft AGL, lowest BKN/OVC")
    clouds: list[CloudLayer] = Field(default_factory=list)
    altimeter_hpa: float | None = None

    @field_validator("station_id", mode="before")
    @classmethod
    def normalize_station(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("fetched_at", "observation_time")
    @classmethod
    def normalize_times(cls, v: datetime | None) -> datetime | None:
        return ensure_utc(v) if v is not None else None


class WeatherRefreshResult(EFBModel):
    """Outcome of ``WeatherCache.refresh``.

    ``refreshed`` is True when the observation came from a fetch made by
    this call. When the fetch failed and a previous entry was served instead,
    ``error`` carries the fetch failure.
    """

    observation: WeatherObservation
    tier: StalenessTier
    refreshed: bool
    error: ServiceError | None = None

    @property
    def degraded(self) -> bool:
        return self.error is not None
