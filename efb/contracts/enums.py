"""Enumerations shared across all EFB contracts."""

from enum import Enum

from efb.errors import InvalidInputError


class FlightCategory(str, Enum):
    """Ceiling/visibility classification reported with a METAR."""
    VFR = "VFR"
    MVFR = "MVFR"
    IFR = "IFR"
    LIFR = "LIFR"


class StalenessTier(str, Enum):
    """Age class of a cached weather entry, measured from local fetch time."""
    FRESH = "fresh"
    AGING = "aging"
    OLD = "old"
    STALE = "stale"

    @property
    def needs_refresh(self) -> bool:
        return self in (StalenessTier.OLD, StalenessTier.STALE)


class CloudCover(str, Enum):
    CLR = "CLR"
    SKC = "SKC"
    FEW = "FEW"
    SCT = "SCT"
    BKN = "BKN"
    OVC = "OVC"
    OVX = "OVX"


class DownloadState(str, Enum):
    """State of a single transient download task."""
    QUEUED = "queued"
    DOWNLOADING = "downloading"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            DownloadState.SUCCEEDED,
            DownloadState.FAILED,
            DownloadState.CANCELLED,
        )


class RegionStatus(str, Enum):
    """Lifecycle of a chart region as seen by the user."""
    NOT_DOWNLOADED = "not_downloaded"
    QUEUED = "queued"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"
    FAILED = "failed"


def parse_enum(enum_cls: type[Enum], raw: object, field: str) -> Enum:
    """Parse a raw string into a closed enum.

    Case-insensitive on the value. Unknown values raise
    ``InvalidInputError`` instead of falling back to a default member.
    """
    if isinstance(raw, enum_cls):
        return raw
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInputError(f"{field}: expected one of "
                                f"{[m.value for m in enum_cls]}, got {raw!r}")
    text = raw.strip()
    for member in enum_cls:
        if member.value.lower() == text.lower():
            return member
    raise InvalidInputError(
        f"{field}: expected one of {[m.value for m in enum_cls]}, got {raw!r}"
    )
