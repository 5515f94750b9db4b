"""
Google Places access: text search for enrichment, nearby search for candidates
"""

import asyncio
import logging
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, Field, ValidationError

from hangout.core.config import GOOGLE_MAPS_API_KEY, PLACES_PHOTO_MAX_WIDTH, PLACES_TIMEOUT_SECONDS
from hangout.core.errors import EnrichmentFailure
from hangout.models.itinerary import Candidate
from hangout.services.http import borrow_client

logger = logging.getLogger(__name__)

TEXT_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/textsearch/json"
NEARBY_SEARCH_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"
PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"


class PlaceLookup(BaseModel):
    """First result of a text search."""

    place_id: str | None = None
    name: str | None = None
    formatted_address: str = ""
    rating: float | None = None
    price_level: int | None = None
    photo_references: list[str] = Field(default_factory=list)
    lat: float | None = None
    lng: float | None = None


class GooglePlacesClient:
    def __init__(
        self,
        api_key: str | None = GOOGLE_MAPS_API_KEY,
        client: httpx.AsyncClient | None = None,
        timeout: float = PLACES_TIMEOUT_SECONDS,
        photo_max_width: int = PLACES_PHOTO_MAX_WIDTH,
    ) -> None:
        self.api_key = api_key
        self._client = client
        self.timeout = timeout
        self.photo_max_width = photo_max_width

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def photo_url(self, reference: str) -> str:
        query = urlencode(
            {"maxwidth": self.photo_max_width, "photoreference": reference, "key": self.api_key}
        )
        return f"{PHOTO_URL}?{query}"

    async def _call(self, url: str, params: dict) -> list[dict]:
        """
        Run one Places request and return its `results`. ZERO_RESULTS is an empty
        list; any other non-OK status, malformed body, HTTP error or timeout raises
        EnrichmentFailure.
        """
        if not self.api_key:
            raise EnrichmentFailure("GOOGLE_MAPS_API_KEY is not configured")
        try:
            async with borrow_client(self._client, self.timeout) as client:
                resp = await asyncio.wait_for(
                    client.get(url, params={**params, "key": self.api_key}),
                    timeout=self.timeout,
                )
                resp.raise_for_status()
                data = resp.json()
        except asyncio.TimeoutError as e:
            raise EnrichmentFailure(f"Places request timed out after {self.timeout}s") from e
        except (httpx.HTTPError, ValueError) as e:
            raise EnrichmentFailure(f"Places request failed: {e}") from e

        if not isinstance(data, dict):
            raise EnrichmentFailure("Places response is not a JSON object")
        status = data.get("status")
        if status == "ZERO_RESULTS":
            return []
        if status != "OK":
            # OVER_QUERY_LIMIT, REQUEST_DENIED, INVALID_REQUEST, UNKNOWN_ERROR
            raise EnrichmentFailure(f"Places API returned status: {status}")
        results = data.get("results") or []
        if not isinstance(results, list):
            raise EnrichmentFailure("Places `results` is not a list")
        return results

    @staticmethod
    def _location(place: dict) -> dict:
        return (place.get("geometry") or {}).get("location") or {}

    def _to_lookup(self, place: dict) -> PlaceLookup:
        location = self._location(place)
        return PlaceLookup(
            place_id=place.get("place_id"),
            name=place.get("name"),
            formatted_address=place.get("formatted_address") or "",
            rating=place.get("rating"),
            price_level=place.get("price_level"),
            photo_references=[
                p["photo_reference"] for p in place.get("photos") or [] if p.get("photo_reference")
            ],
            lat=location.get("lat"),
            lng=location.get("lng"),
        )

    def _to_candidate(self, place: dict) -> Candidate | None:
        place_id = place.get("place_id")
        name = place.get("name")
        if not place_id or not name:
            return None
        location = self._location(place)
        refs = [p.get("photo_reference") for p in place.get("photos") or []]
        return Candidate(
            place_id=place_id,
            name=name,
            address=place.get("vicinity") or place.get("formatted_address") or "",
            lat=location.get("lat"),
            lng=location.get("lng"),
            categories=list(place.get("types") or []),
            rating=place.get("rating"),
            rating_count=place.get("user_ratings_total"),
            price_level=place.get("price_level"),
            photos=[self.photo_url(r) for r in refs if r][:2],
            source="places",
        )

    async def text_search(self, query: str) -> PlaceLookup | None:
        results = await self._call(TEXT_SEARCH_URL, {"query": query})
        if not results:
            return None
        try:
            return self._to_lookup(results[0])
        except (AttributeError, KeyError, TypeError, ValidationError) as e:
            raise EnrichmentFailure(f"Malformed Places result for {query!r}: {e}") from e

    async def nearby_search(
        self, lat: float, lng: float, radius_meters: int, place_type: str
    ) -> list[Candidate]:
        results = await self._call(
            NEARBY_SEARCH_URL,
            {"location": f"{lat},{lng}", "radius": radius_meters, "type": place_type},
        )
        candidates: list[Candidate] = []
        for place in results:
            try:
                candidate = self._to_candidate(place)
            except (AttributeError, KeyError, TypeError, ValidationError) as e:
                logger.warning("[places] skipping malformed %s result: %s", place_type, e)
                continue
            if candidate is not None:
                candidates.append(candidate)
        return candidates
