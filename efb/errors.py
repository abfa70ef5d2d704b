"""Exception taxonomy for the EFB data layer.

Every failure the layer surfaces is typed; none is represented as an empty
or zero value that could be mistaken for a legitimate result.

    EFBError
    ├── NotFoundError
    ├── StaleDataError
    ├── FetchFailedError
    │   ├── NetworkUnavailableError
    │   └── FetchTimeoutError
    ├── InvalidInputError
    │   ├── InsufficientWaypointsError
    │   └── InvalidPerformanceError
    ├── StorageUnavailableError
    └── ChartDownloadError
        ├── ChartCorruptedError
        └── DownloadCancelledError
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from efb.contracts.result import ServiceError


class EFBError(Exception):
    """Base exception for all EFB data layer errors."""

    code = "efb_error"

    def details(self) -> dict[str, str | int | float | bool | None] | None:
        """Structured fields a client can act on without parsing the message."""
        return None

    def to_service_error(self) -> ServiceError:
        from efb.contracts.result import ServiceError

        return ServiceError(code=self.code, message=str(self), details=self.details())


class NotFoundError(EFBError):
    """No cached or catalog entry for the requested key."""

    code = "not_found"

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        super().__init__(f"{kind} {key!r} not found")

    def details(self):
        return {"kind": self.kind, "key": self.key}


class StaleDataError(EFBError):
    """Data is available but past its freshness threshold. Informational."""

    code = "stale"

    def __init__(self, key: str, age: timedelta):
        self.key = key
        self.age = age
        super().__init__(f"{key} data is {int(age.total_seconds() // 60)} minutes old")

    def details(self):
        return {"key": self.key, "age_minutes": int(self.age.total_seconds() // 60)}


class FetchFailedError(EFBError):
    """Network or remote collaborator error. Recoverable."""

    code = "fetch_failed"


class NetworkUnavailableError(FetchFailedError):
    """Connection refused, DNS failure, HTTP error status."""

    code = "network_unavailable"


class FetchTimeoutError(FetchFailedError):
    """The remote did not answer in time."""

    code = "timeout"


class InvalidInputError(EFBError, ValueError):
    """Programmer or user input error. Never retried."""

    code = "invalid_input"


class InsufficientWaypointsError(InvalidInputError):
    """A route needs at least two waypoints."""

    code = "insufficient_waypoints"


class InvalidPerformanceError(InvalidInputError):
    """Cruise speed or burn rate cannot produce a plan."""

    code = "invalid_performance"


class StorageUnavailableError(EFBError):
    """Persistence collaborator is down or returned an I/O error."""

    code = "storage_unavailable"


class ChartDownloadError(EFBError):
    """A chart region download did not complete."""

    code = "chart_download_failed"

    def __init__(self, region_id: str, reason: str):
        self.region_id = region_id
        self.reason = reason
        super().__init__(f"Failed to download chart {region_id}: {reason}")

    def details(self):
        return {"region_id": self.region_id}


class ChartCorruptedError(ChartDownloadError):
    """Downloaded file is not a valid MBTiles database."""

    code = "chart_corrupted"


class DownloadCancelledError(ChartDownloadError):
    """The download was cancelled before completion."""

    code = "download_cancelled"

    def __init__(self, region_id: str):
        super().__init__(region_id, "cancelled")
