"""Chart file storage — one MBTiles file per downloaded region."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Protocol

from efb.errors import StorageUnavailableError

logger = logging.getLogger(__name__)

CHART_SUFFIX = ".mbtiles"
PARTIAL_SUFFIX = ".part"


class ChartStorage(Protocol):
    def list_downloaded_chart_paths(self) -> dict[str, Path]:
        """Region id -> local file for every chart present on disk."""
        ...

    def final_path(self, region_id: str) -> Path: ...

    def temp_path(self, region_id: str) -> Path: ...

    def commit(self, temp: Path, final: Path) -> None:
        """Atomically move a completed download into place."""
        ...

    def remove(self, path: Path) -> None:
        """Delete a file; missing files are ignored."""
        ...

    def exists(self, path: Path) -> bool: ...

    def size(self, path: Path) -> int: ...


class LocalChartStorage:
    """Charts stored as ``<charts_dir>/<region_id>.mbtiles``.

    In-progress downloads live next to their target as ``.mbtiles.part`` so
    the final rename stays on one filesystem and is atomic.

    With ``create=False`` the directory is left alone; while it is missing
    or unusable every operation raises ``StorageUnavailableError``.
    """

    def __init__(self, charts_dir: str | Path, create: bool = True):
        self.charts_dir = Path(charts_dir)
        if not create:
            return
        try:
            self.charts_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot create {self.charts_dir}: {e}") from e

    def list_downloaded_chart_paths(self) -> dict[str, Path]:
        try:
            return {
                p.name[: -len(CHART_SUFFIX)]: p
                for p in self.charts_dir.iterdir()
                if p.is_file() and p.name.endswith(CHART_SUFFIX)
            }
        except OSError as e:
            raise StorageUnavailableError(f"Cannot list {self.charts_dir}: {e}") from e

    def final_path(self, region_id: str) -> Path:
        return self.charts_dir / f"{region_id}{CHART_SUFFIX}"

    def temp_path(self, region_id: str) -> Path:
        return self.charts_dir / f"{region_id}{CHART_SUFFIX}{PARTIAL_SUFFIX}"

    def commit(self, temp: Path, final: Path) -> None:
        try:
            os.replace(temp, final)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot move {temp} to {final}: {e}") from e

    def remove(self, path: Path) -> None:
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageUnavailableError(f"Cannot remove {path}: {e}") from e

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def size(self, path: Path) -> int:
        try:
            return path.stat().st_size
        except FileNotFoundError:
            return 0
        except OSError as e:
            raise StorageUnavailableError(f"Cannot stat {path}: {e}") from e

    def clean_partials(self) -> list[Path]:
        """Remove leftovers of interrupted downloads from a previous run."""
        removed = []
        for p in self.charts_dir.glob(f"*{CHART_SUFFIX}{PARTIAL_SUFFIX}"):
            logger.info("Removing partial chart download: %s", p.name)
            self.remove(p)
            removed.append(p)
        return removed


MBTILES_HEADER = b"SQLite format 3\x00"


def is_valid_mbtiles(path: Path) -> bool:
    """MBTiles files are SQLite databases; check the 16-byte file header."""
    try:
        with open(path, "rb") as f:
            return f.read(len(MBTILES_HEADER)) == MBTILES_HEADER
    except OSError:
        return False
