"""Runtime configuration from environment variables.

A ``.env`` file in the working directory is loaded first, so local overrides
don't need exporting. Every value has a default that works on a laptop.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

from efb.errors import InvalidInputError

DEFAULT_WEATHER_BASE_URL = "https://aviationweather.gov/api/data"
DEFAULT_USER_AGENT = "EFB-DataSync/1.0"
DEFAULT_MAX_CONCURRENT_DOWNLOADS = 2
DEFAULT_HTTP_TIMEOUT = 15.0


@dataclass
class Settings:
    data_dir: Path = field(default_factory=lambda: Path("./efb_data"))
    charts_dir: Path | None = None
    db_path: Path | None = None
    max_concurrent_downloads: int = DEFAULT_MAX_CONCURRENT_DOWNLOADS
    weather_base_url: str = DEFAULT_WEATHER_BASE_URL
    http_timeout: float = DEFAULT_HTTP_TIMEOUT
    user_agent: str = DEFAULT_USER_AGENT
    grid_index: bool = True

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir)
        if self.charts_dir is None:
            self.charts_dir = self.data_dir / "charts"
        if self.db_path is None:
            self.db_path = self.data_dir / "efb.db"
        if self.max_concurrent_downloads < 1:
            raise InvalidInputError(
                f"max_concurrent_downloads must be >= 1, got {self.max_concurrent_downloads}"
            )
        if self.http_timeout <= 0:
            raise InvalidInputError(f"http_timeout must be > 0, got {self.http_timeout}")

    @classmethod
    def from_env(cls, dotenv: bool = True) -> Settings:
        """Build settings from ``EFB_*`` environment variables."""
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))

        data_dir = Path(os.environ.get("EFB_DATA_DIR", "./efb_data"))
        charts_dir = os.environ.get("EFB_CHARTS_DIR")
        db_path = os.environ.get("EFB_DB_PATH")

        return cls(
            data_dir=data_dir,
            charts_dir=Path(charts_dir) if charts_dir else None,
            db_path=Path(db_path) if db_path else None,
            max_concurrent_downloads=_env_int(
                "EFB_MAX_CONCURRENT_DOWNLOADS", DEFAULT_MAX_CONCURRENT_DOWNLOADS
            ),
            weather_base_url=os.environ.get("EFB_WEATHER_BASE_URL", DEFAULT_WEATHER_BASE_URL),
            http_timeout=_env_float("EFB_HTTP_TIMEOUT", DEFAULT_HTTP_TIMEOUT),
            user_agent=os.environ.get("EFB_USER_AGENT", DEFAULT_USER_AGENT),
            grid_index=os.environ.get("EFB_GRID_INDEX", "1") not in ("0", "false", "no"),
        )


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise InvalidInputError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise InvalidInputError(f"{name} must be a number, got {raw!r}")
