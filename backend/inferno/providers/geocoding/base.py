from __future__ import annotations

from typing import Optional, Protocol

from inferno.domain.models import GeoPoint
from inferno.services.cancellation import CancellationToken


class Geocoder(Protocol):
    """Contract for address geocoders."""

    async def geocode(
        self,
        query: str,
        *,
        token: Optional[CancellationToken] = None,
    ) -> Optional[GeoPoint]:
        """Resolve ``query`` to a point, or ``None`` when it cannot be mapped.

        Implementations never raise for service failures (no match, HTTP
        errors, bad payloads); ``Cancelled`` is the only exception expected
        from a well-behaved geocoder.
        """
        raise NotImplementedError

    async def cached(self, query: str) -> Optional[GeoPoint]:
        """Return the stored point for ``query`` without touching the network."""
        return None


class GeocodeCache(Protocol):
    """Key/value store for resolved addresses."""

    def get(self, key: str) -> Optional[GeoPoint]:
        raise NotImplementedError

    def put(self, key: str, point: GeoPoint) -> None:
        raise NotImplementedError
