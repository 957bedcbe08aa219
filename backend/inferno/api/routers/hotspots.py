from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from inferno import config
from inferno.api.deps import get_geocoder, get_records, get_supervisors
from inferno.api.routers.departments import backend_http_error
from inferno.domain.clustering import find_matching_cluster
from inferno.domain.filters import HotspotFilters
from inferno.domain.models import GeoPoint, HotspotCluster, IncidentPin
from inferno.infra.backend.records_client import BackendError, RecordsClient
from inferno.providers.geocoding.base import Geocoder
from inferno.services.hotspot_pipeline import HotspotPipeline, HotspotSupervisor

router = APIRouter(tags=["hotspots"])

DETAIL_ZOOM = 13
OVERVIEW_ZOOM = 4


@router.get("/departments/{department_id}/hotspots")
async def get_department_hotspots(
    department_id: int,
    window: str = Query("30d", pattern="^(7d|30d|90d|365d|all)$"),
    category: str = Query("all", pattern="^(all|fire|ems|hazmat|service|false_alarm|other)$"),
    threshold_m: float = Query(config.HOTSPOT_THRESHOLD_M, gt=0, le=5000),
    stable: bool = Query(False, description="Ordenar pins por id antes de agrupar"),
    selected: Optional[str] = Query(None, description="Cluster seleccionado previamente"),
    pin: List[int] = Query([], description="Pins de la selección previa"),
    records: RecordsClient = Depends(get_records),
    geocoder: Geocoder = Depends(get_geocoder),
    supervisors: Dict[int, HotspotSupervisor] = Depends(get_supervisors),
):
    try:
        department = await records.get_department(department_id)
        incidents = await records.list_incidents(department_id)
    except BackendError as exc:
        raise backend_http_error(exc) from exc

    pipeline = HotspotPipeline(geocoder, threshold_m=threshold_m, stable=stable)
    supervisor = supervisors.get(department_id)
    if supervisor is None:
        supervisor = supervisors[department_id] = HotspotSupervisor(pipeline)
    filters = HotspotFilters(window=window, category=category)
    outcome = await supervisor.start(department, incidents, filters, pipeline=pipeline)
    if outcome.cancelled:
        raise HTTPException(status_code=409, detail="Superseded by a newer request")
    match = find_matching_cluster(outcome.clusters, selected, pin) if (selected or pin) else None
    center = outcome.center

    return {
        "department": {"id": department.id, "name": department.name},
        "filters": {"window": outcome.filters.window, "category": outcome.filters.category},
        "center": _serialize_point(center),
        "zoom": DETAIL_ZOOM if center is not None else OVERVIEW_ZOOM,
        "considered": outcome.considered,
        "pins": [_serialize_pin(p) for p in outcome.pins],
        "clusters": [_serialize_cluster(c) for c in outcome.clusters],
        "selected_cluster_id": match.id if match else None,
        "status": outcome.status,
        "error": outcome.error,
    }


def _serialize_point(point: Optional[GeoPoint]):
    if point is None:
        return None
    return {"lat": point.lat, "lon": point.lon}


def _serialize_pin(pin: IncidentPin) -> dict:
    return {
        "id": pin.id,
        "label": pin.label,
        "address": pin.address,
        "occurred_at": pin.occurred_at.isoformat() if pin.occurred_at else None,
        "lat": pin.lat,
        "lon": pin.lon,
        "category": pin.category,
    }


def _serialize_cluster(cluster: HotspotCluster) -> dict:
    return {
        "id": cluster.id,
        "lat": cluster.center.lat,
        "lon": cluster.center.lon,
        "radius_m": round(cluster.radius_m, 1),
        "count": cluster.count,
        "dominant_category": cluster.dominant_category,
        "pin_ids": [p.id for p in cluster.pins],
    }
