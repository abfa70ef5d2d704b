"""Chart region endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Response

from efb.api.deps import get_chart_manager, http_error
from efb.contracts.chart import ChartRegion
from efb.errors import EFBError
from efb.services.charts.chart_manager import ChartRegionManager
from efb.services.charts.download_task import DownloadTask

router = APIRouter(prefix="/charts", tags=["charts"])


def _region(manager: ChartRegionManager, region: ChartRegion) -> dict[str, Any]:
    data = region.to_dict()
    data["status"] = manager.status(region.id).value
    data["is_downloaded"] = region.is_downloaded
    data["is_expired"] = region.is_expired(manager.now())
    return data


def _task(task: DownloadTask) -> dict[str, Any]:
    data: dict[str, Any] = {
        "region_id": task.region_id,
        "state": task.state.value,
        "progress": task.progress,
    }
    if task.error is not None:
        data["error"] = task.error.to_service_error().model_dump()
    return data


@router.get("")
async def list_regions(
    manager: ChartRegionManager = Depends(get_chart_manager),
) -> list[dict[str, Any]]:
    return [_region(manager, r) for r in manager.regions()]


@router.get("/expired")
async def expired_regions(
    manager: ChartRegionManager = Depends(get_chart_manager),
) -> list[dict[str, Any]]:
    """Expired regions, downloaded or not. Nothing is deleted."""
    return [_region(manager, r) for r in manager.expired_regions()]


@router.get("/storage")
async def storage(
    manager: ChartRegionManager = Depends(get_chart_manager),
) -> dict[str, int]:
    try:
        return {
            "catalog_bytes": manager.storage_used(),
            "on_disk_bytes": manager.storage_used_on_disk(),
        }
    except EFBError as e:
        raise http_error(e) from e


@router.post("/{region_id}/download", status_code=202)
async def download(
    region_id: str,
    force: bool = False,
    manager: ChartRegionManager = Depends(get_chart_manager),
) -> dict[str, Any]:
    try:
        task = manager.download(region_id, force=force)
    except EFBError as e:
        raise http_error(e) from e
    return _task(task)


@router.post("/{region_id}/cancel")
async def cancel(
    region_id: str,
    manager: ChartRegionManager = Depends(get_chart_manager),
) -> dict[str, Any]:
    try:
        manager.region(region_id)
    except EFBError as e:
        raise http_error(e) from e
    return {"region_id": region_id, "cancelled": manager.cancel(region_id)}


@router.get("/{region_id}/status")
async def status(
    region_id: str,
    manager: ChartRegionManager = Depends(get_chart_manager),
) -> dict[str, Any]:
    try:
        region = manager.region(region_id)
    except EFBError as e:
        raise http_error(e) from e
    data = {"region": _region(manager, region)}
    task = manager.task(region_id)
    if task is not None:
        data["task"] = _task(task)
    return data


@router.delete("/{region_id}", status_code=204)
async def delete(
    region_id: str,
    manager: ChartRegionManager = Depends(get_chart_manager),
) -> Response:
    try:
        manager.delete(region_id)
    except EFBError as e:
        raise http_error(e) from e
    return Response(status_code=204)
