from __future__ import annotations

import asyncio
import json
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient

from inferno.api.main import create_app
from inferno.infra.backend.records_client import RecordsClient
from inferno.infra.cache.geocode_cache import InMemoryGeocodeCache
from inferno.infra.geocoding.nominatim_client import NominatimClient
from inferno.providers.geocoding.nominatim import NominatimGeocoder

BACKEND = "https://backend.test"


def _recent(days: int) -> str:
    return (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()


DEPARTMENTS = [
    {"id": 1, "name": "Anytown Fire", "city": "Anytown", "state": "ST", "neris_department_id": "FD-1"},
    {"id": 2, "name": "Empty FD", "city": "Nowhere", "state": "ZZ"},
]

INCIDENTS = {
    1: [
        {"id": 10, "department_id": 1, "occurred_at": _recent(1), "address": "1 A St", "city": "Anytown", "state": "ST", "incident_type_code": "111"},
        {"id": 11, "department_id": 1, "occurred_at": _recent(2), "address": "2 B St", "city": "Anytown", "state": "ST", "neris_incident_type_code": 131},
        {"id": 12, "department_id": 1, "occurred_at": _recent(3), "address": "3 C St", "city": "Anytown", "state": "ST", "incident_type_code": "321"},
        {"id": 13, "department_id": 1, "occurred_at": _recent(4), "address": None, "city": None, "state": None},
        {"id": 14, "department_id": 1, "occurred_at": _recent(200), "address": "4 D St", "city": "Anytown", "state": "ST"},
    ],
    2: [],
}

GEOCODES = {
    "Anytown, ST": ("40.0", "-75.0"),
    "1 A St, Anytown, ST": ("40.0", "-75.0"),
    "2 B St, Anytown, ST": ("40.0004", "-75.0"),
    "3 C St, Anytown, ST": ("40.05", "-75.0"),
    "4 D St, Anytown, ST": ("40.1", "-75.1"),
}


def backend_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path in ("/health", "/docs"):
        return httpx.Response(200, json={"ok": True})
    if path == "/api/v1/departments/":
        if request.method == "POST":
            payload = json.loads(request.content)
            if not payload.get("name"):
                return httpx.Response(422, json={"detail": "name required"})
            return httpx.Response(201, json={"id": 3, **payload})
        return httpx.Response(200, json=DEPARTMENTS)
    parts = [p for p in path.split("/") if p]
    if len(parts) == 4 and parts[:3] == ["api", "v1", "incidents"]:
        incident = next((i for rows in INCIDENTS.values() for i in rows if i["id"] == int(parts[3])), None)
        if incident is None:
            return httpx.Response(404, json={"detail": "Not found"})
        return httpx.Response(200, json=incident)
    if len(parts) >= 4 and parts[:3] == ["api", "v1", "departments"]:
        dept_id = int(parts[3])
        dept = next((d for d in DEPARTMENTS if d["id"] == dept_id), None)
        if dept is None:
            return httpx.Response(404, json={"detail": "Not found"})
        if len(parts) == 5 and parts[4] == "incidents":
            if request.method == "POST":
                return httpx.Response(201, json={"id": 99, "department_id": dept_id, **json.loads(request.content)})
            return httpx.Response(200, json=INCIDENTS.get(dept_id, []))
        if request.method == "DELETE":
            return httpx.Response(204)
        return httpx.Response(200, json=dept)
    return httpx.Response(404, json={"detail": "Not found"})


def geocoder_handler(request: httpx.Request) -> httpx.Response:
    hit = GEOCODES.get(request.url.params.get("q"))
    if hit is None:
        return httpx.Response(200, json=[])
    return httpx.Response(200, json=[{"lat": hit[0], "lon": hit[1]}])


@pytest.fixture()
def geocoder():
    client = NominatimClient("https://geocoder.test/search", transport=httpx.MockTransport(geocoder_handler))
    return NominatimGeocoder(client=client, cache=InMemoryGeocodeCache())


@pytest.fixture()
def api_client(geocoder, monkeypatch):
    monkeypatch.setattr("inferno.config.GEOCODE_DELAY_MS", 0)
    records = RecordsClient(BACKEND, transport=httpx.MockTransport(backend_handler))
    app = create_app(records=records, geocoder=geocoder)
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def api_client_no_backend(geocoder, monkeypatch):
    monkeypatch.delenv("BACKEND_URL", raising=False)
    monkeypatch.delenv("NEXT_PUBLIC_BACKEND_URL", raising=False)
    app = create_app(geocoder=geocoder)
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def make_api_client(geocoder, monkeypatch):
    """Build a TestClient whose backend answers with ``incidents`` for their departments."""
    monkeypatch.setattr("inferno.config.GEOCODE_DELAY_MS", 0)
    clients = []

    def _make(incidents: dict):
        def handler(request: httpx.Request) -> httpx.Response:
            parts = [p for p in request.url.path.split("/") if p]
            if len(parts) == 5 and parts[4] == "incidents" and int(parts[3]) in incidents:
                return httpx.Response(200, json=incidents[int(parts[3])])
            return backend_handler(request)

        records = RecordsClient(BACKEND, transport=httpx.MockTransport(handler))
        client = TestClient(create_app(records=records, geocoder=geocoder))
        clients.append(client)
        return client.__enter__()

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture()
def counting_app(monkeypatch):
    """App whose geocoder records how many lookups are in flight at once."""
    monkeypatch.setattr("inferno.config.GEOCODE_DELAY_MS", 0)
    state = {"in_flight": 0, "max": 0, "total": 0}

    async def handler(request: httpx.Request) -> httpx.Response:
        state["in_flight"] += 1
        state["total"] += 1
        state["max"] = max(state["max"], state["in_flight"])
        try:
            await asyncio.sleep(0.005)
            return geocoder_handler(request)
        finally:
            state["in_flight"] -= 1

    client = NominatimClient("https://geocoder.test/search", transport=httpx.MockTransport(handler))
    geocoder = NominatimGeocoder(client=client, cache=InMemoryGeocodeCache())
    records = RecordsClient(BACKEND, transport=httpx.MockTransport(backend_handler))
    return create_app(records=records, geocoder=geocoder), state
