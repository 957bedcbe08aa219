from __future__ import annotations

import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from inferno import config
from inferno.api.routers import departments, health, hotspots
from inferno.infra.backend.records_client import RecordsClient
from inferno.infra.cache.geocode_cache import InMemoryGeocodeCache
from inferno.infra.database import get_engine
from inferno.infra.db.geocode_cache_repository import SqlGeocodeCache
from inferno.providers.geocoding.nominatim import NominatimGeocoder


def create_app(engine=None, records=None, geocoder=None) -> FastAPI:
    app = FastAPI(title="Inferno Hotspots API", version="0.1.0")
    if engine is None:
        engine = get_engine()
    if records is None and (os.getenv("BACKEND_URL") or os.getenv("NEXT_PUBLIC_BACKEND_URL")):
        records = RecordsClient()
    if geocoder is None:
        cache = SqlGeocodeCache(engine) if engine is not None else InMemoryGeocodeCache()
        geocoder = NominatimGeocoder(cache=cache)
    app.state.db_engine = engine
    app.state.records = records
    app.state.geocoder = geocoder
    # un supervisor por departamento: la petición nueva reemplaza a la anterior
    app.state.supervisors = {}

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.FRONTEND_ORIGIN],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/api")
    app.include_router(departments.router, prefix="/api")
    app.include_router(hotspots.router, prefix="/api")
    return app


app = create_app()
