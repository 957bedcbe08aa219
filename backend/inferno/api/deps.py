from __future__ import annotations

from typing import Dict

from fastapi import HTTPException, Request

from inferno.infra.backend.records_client import RecordsClient
from inferno.providers.geocoding.base import Geocoder
from inferno.services.hotspot_pipeline import HotspotSupervisor


def get_records(request: Request) -> RecordsClient:
    records = getattr(request.app.state, "records", None)
    if records is None:
        raise HTTPException(status_code=500, detail="BACKEND_URL is not set")
    return records


def get_geocoder(request: Request) -> Geocoder:
    geocoder = getattr(request.app.state, "geocoder", None)
    if geocoder is None:
        raise HTTPException(status_code=500, detail="Geocoder not configured")
    return geocoder


def get_supervisors(request: Request) -> Dict[int, HotspotSupervisor]:
    supervisors = getattr(request.app.state, "supervisors", None)
    if supervisors is None:
        supervisors = request.app.state.supervisors = {}
    return supervisors
