"""Chart region models — offline sectional bundles and their validity window."""

from datetime import datetime
from pathlib import Path
from typing import Self

from pydantic import Field, field_validator, model_validator

from efb.contracts.common import BoundingBox, EFBModel, ensure_utc


class ChartRegion(EFBModel):
    """A downloadable offline bundle of chart tiles for one area.

    Dates come from the catalog and are never changed by the manager; only
    ``local_path`` moves, through download and delete.
    """

    id: str = Field(..., min_length=1)
    name: str
    effective_date: datetime
    expiration_date: datetime
    file_size_bytes: int = Field(..., ge=0)
    bounding_box: BoundingBox | None = None
    download_url: str | None = None
    local_path: Path | None = None

    @field_validator("effective_date", "expiration_date")
    @classmethod
    def normalize_dates(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_window(self) -> Self:
        if self.expiration_date < self.effective_date:
            raise ValueError(
                f"expiration_date ({self.expiration_date}) precedes "
                f"effective_date ({self.effective_date})"
            )
        return self

    @property
    def is_downloaded(self) -> bool:
        return self.local_path is not None

    def is_expired(self, now: datetime) -> bool:
        """Expiry is independent of download state."""
        return now > self.expiration_date
