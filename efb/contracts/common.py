"""Base classes and shared types for EFB contracts.

Unit conventions (all contracts and API responses):
- **Distances**: nautical miles (NM) — suffix ``_nm``
- **Speeds**: knots (kt) — suffix ``_kts``
- **Altitudes / elevations**: feet MSL — suffix ``_ft``
- **Fuel**: US gallons — suffix ``_gal``, burn rate ``_gph``
- **Headings/bearings**: degrees true — suffix ``_deg``
- **Sizes**: bytes — suffix ``_bytes``
- **Datetimes**: always UTC, ISO 8601 in serialized form
- **Coordinates**: WGS84 decimal degrees

Display formatting (rounding, unit labels) belongs to the UI layer.
"""

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EFBModel(BaseModel):
    """Base model with JSON-friendly serialization.

    - Enums serialize as string values.
    - ``to_dict()`` produces a JSON-safe dict (datetimes as ISO 8601).
    - ``from_dict()`` hydrates from a stored row or API payload.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EFBModel":
        """Create model instance from a stored dict."""
        return cls.model_validate(data)


class Coordinate(BaseModel):
    """WGS84 geographic coordinate. Immutable value."""

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)

    model_config = ConfigDict(frozen=True)


class BoundingBox(BaseModel):
    """Latitude/longitude rectangle covered by a chart region."""

    min_latitude: float = Field(..., ge=-90.0, le=90.0)
    max_latitude: float = Field(..., ge=-90.0, le=90.0)
    min_longitude: float = Field(..., ge=-180.0, le=180.0)
    max_longitude: float = Field(..., ge=-180.0, le=180.0)

    model_config = ConfigDict(frozen=True)

    def contains(self, point: Coordinate) -> bool:
        return (
            self.min_latitude <= point.latitude <= self.max_latitude
            and self.min_longitude <= point.longitude <= self.max_longitude
        )


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
