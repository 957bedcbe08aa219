from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine

from inferno.domain.models import GeoPoint

from .tables import geocode_cache_table


class SqlGeocodeCache:
    """Persistent geocode cache. No expiry: entries stay until deleted by hand."""

    def __init__(self, engine: Engine):
        if engine is None:
            raise ValueError("engine is required")
        self.engine = engine

    def get(self, key: str) -> Optional[GeoPoint]:
        with self.engine.begin() as conn:
            raw = conn.execute(
                select(geocode_cache_table.c.value).where(geocode_cache_table.c.key == key)
            ).scalar_one_or_none()
        if raw is None:
            return None
        try:
            payload = json.loads(raw)
            return GeoPoint(lat=float(payload["lat"]), lon=float(payload["lon"]))
        except (ValueError, KeyError, TypeError):
            return None

    def put(self, key: str, point: GeoPoint) -> None:
        now = datetime.now(timezone.utc)
        value = json.dumps({"lat": point.lat, "lon": point.lon})
        with self.engine.begin() as conn:
            existing = conn.execute(
                select(geocode_cache_table.c.key).where(geocode_cache_table.c.key == key)
            ).scalar_one_or_none()
            if existing is not None:
                conn.execute(
                    update(geocode_cache_table)
                    .where(geocode_cache_table.c.key == key)
                    .values(value=value, updated_at=now)
                )
            else:
                conn.execute(
                    insert(geocode_cache_table).values(key=key, value=value, created_at=now, updated_at=now)
                )

    def count(self) -> int:
        with self.engine.begin() as conn:
            return len(conn.execute(select(geocode_cache_table.c.key)).all())
