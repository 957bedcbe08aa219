from __future__ import annotations

import asyncio
import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool

from inferno.domain.addresses import normalize_query
from inferno.domain.models import GeoPoint
from inferno.infra.cache.geocode_cache import InMemoryGeocodeCache, cache_key
from inferno.infra.geocoding.nominatim_client import NominatimClient
from inferno.services.cancellation import CancellationToken

from .base import GeocodeCache, Geocoder

logger = logging.getLogger(__name__)


class NominatimGeocoder(Geocoder):
    """Cache-through geocoder: read before fetch, write through on success.

    Network lookups are serialized on one lock so the public service never
    sees more than one request from this process at a time, however many
    pipelines share the geocoder.  Cache reads and writes run in the thread
    pool because the SQL-backed cache blocks.
    """

    def __init__(
        self,
        client: Optional[NominatimClient] = None,
        cache: Optional[GeocodeCache] = None,
    ):
        self.client = client or NominatimClient()
        self.cache = cache if cache is not None else InMemoryGeocodeCache()
        self.network_calls = 0
        self._lock = asyncio.Lock()

    async def cached(self, query: str) -> Optional[GeoPoint]:
        if not normalize_query(query):
            return None
        return await run_in_threadpool(self.cache.get, cache_key(query))

    async def geocode(
        self,
        query: str,
        *,
        token: Optional[CancellationToken] = None,
    ) -> Optional[GeoPoint]:
        if not normalize_query(query):
            return None
        key = cache_key(query)
        hit = await run_in_threadpool(self.cache.get, key)
        if hit is not None:
            return hit
        if token is not None:
            point = await token.run(self._search(query.strip()))
        else:
            point = await self._search(query.strip())
        if point is None:
            logger.debug("no geocode result for %r", query)
            return None
        await run_in_threadpool(self.cache.put, key, point)
        return point

    async def _search(self, query: str) -> Optional[GeoPoint]:
        async with self._lock:
            self.network_calls += 1
            return await self.client.search(query)
