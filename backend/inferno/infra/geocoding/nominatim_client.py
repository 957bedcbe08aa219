from __future__ import annotations

import logging
from typing import Optional

import httpx

from inferno import config
from inferno.domain.models import GeoPoint

logger = logging.getLogger(__name__)


class NominatimClient:
    """Single-result address search against a Nominatim-compatible endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        locale: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url or config.GEOCODER_URL
        self.locale = locale or config.GEOCODER_LOCALE
        self.user_agent = user_agent or config.GEOCODER_USER_AGENT
        self.timeout = timeout
        self._transport = transport

    async def search(self, query: str) -> Optional[GeoPoint]:
        params = {"q": query, "format": "json", "limit": 1}
        headers = {"Accept-Language": self.locale, "User-Agent": self.user_agent}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.base_url, params=params, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.debug("geocode %r failed with status %s", query, exc.response.status_code)
            return None
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug("geocode %r failed: %s", query, exc)
            return None
        return self._parse(data)

    @staticmethod
    def _parse(data) -> Optional[GeoPoint]:
        if not isinstance(data, list) or not data:
            return None
        first = data[0]
        if not isinstance(first, dict):
            return None
        try:
            lat = float(first.get("lat"))
            lon = float(first.get("lon"))
        except (TypeError, ValueError):
            return None
        return GeoPoint(lat=lat, lon=lon)
