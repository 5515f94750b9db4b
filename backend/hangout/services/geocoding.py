"""
Geocoding through OpenStreetMap Nominatim (free-text location -> coordinates)
"""

import asyncio
import logging

import httpx

from hangout.core.cache import BoundedCache
from hangout.core.config import GEOCODING_TIMEOUT_SECONDS, NOMINATIM_URL, NOMINATIM_USER_AGENT
from hangout.models.common import GeoPoint
from hangout.services.http import borrow_client

logger = logging.getLogger(__name__)


class NominatimGeocoder:
    """
    Best-effort geocoder. Network, parse and timeout failures are logged and
    reported as None so one bad address never fails a whole group.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        base_url: str = NOMINATIM_URL,
        user_agent: str = NOMINATIM_USER_AGENT,
        timeout: float = GEOCODING_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent
        self.timeout = timeout
        self._cache: BoundedCache[str, GeoPoint] = BoundedCache()

    async def _get_json(self, path: str, params: dict) -> object:
        async with borrow_client(self._client, self.timeout) as client:
            resp = await asyncio.wait_for(
                client.get(
                    f"{self.base_url}{path}",
                    params=params,
                    headers={"User-Agent": self.user_agent},
                ),
                timeout=self.timeout,
            )
            resp.raise_for_status()
            return resp.json()

    async def geocode(self, query: str) -> GeoPoint | None:
        if not query or not query.strip():
            return None
        key = query.strip().lower()
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        try:
            data = await self._get_json("/search", {"q": query, "format": "json", "limit": 1})
        except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("[geocoding] lookup failed for %r: %s", query, e)
            return None
        if not isinstance(data, list) or not data:
            logger.info("[geocoding] no match for %r", query)
            return None
        try:
            point = GeoPoint(lat=float(data[0]["lat"]), lng=float(data[0]["lon"]))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("[geocoding] malformed result for %r: %s", query, e)
            return None
        self._cache.put(key, point)
        return point

    async def reverse(self, lat: float, lng: float) -> str | None:
        """Return a short area name (suburb, neighbourhood, city) for a point."""
        try:
            data = await self._get_json("/reverse", {"lat": lat, "lon": lng, "format": "json"})
        except (httpx.HTTPError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("[geocoding] reverse lookup failed for (%s, %s): %s", lat, lng, e)
            return None
        if not isinstance(data, dict):
            return None
        addr = data.get("address") or {}
        for field in ("suburb", "neighbourhood", "city", "town", "village"):
            if addr.get(field):
                return addr[field]
        return data.get("display_name")
