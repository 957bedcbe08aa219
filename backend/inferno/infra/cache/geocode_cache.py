from __future__ import annotations

from typing import Dict, Optional

from inferno.domain.addresses import normalize_query
from inferno.domain.models import GeoPoint

KEY_PREFIX = "geocode:v1:"


def cache_key(query: str) -> str:
    return f"{KEY_PREFIX}{normalize_query(query)}"


class InMemoryGeocodeCache:
    """Process-local cache; entries live until ``clear``."""

    def __init__(self) -> None:
        self._store: Dict[str, GeoPoint] = {}

    def get(self, key: str) -> Optional[GeoPoint]:
        return self._store.get(key)

    def put(self, key: str, point: GeoPoint) -> None:
        self._store[key] = point

    def clear(self) -> None:
        self._store.clear()

    def __len__(self) -> int:
        return len(self._store)
