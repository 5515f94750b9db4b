"""
Outbound clients against httpx.MockTransport (no network).
"""

import asyncio
import sys
from pathlib import Path

import httpx
import pytest

# Allow importing from backend/hangout
sys.path.insert(0, str(Path(__file__).parent.parent))

from hangout.agents.enrichment_pipeline import EnrichmentPipeline
from hangout.core.errors import EnrichmentFailure
from hangout.models import EnrichmentStatus, GeneratedItinerary, Hub, ItineraryItem
from hangout.services.geocoding import NominatimGeocoder
from hangout.services.llm import build_chat_model
from hangout.services.places import GooglePlacesClient

TEXT_OK = {
    "status": "OK",
    "results": [
        {
            "place_id": "ChIJ-candies",
            "name": "Candies",
            "formatted_address": "Pali Hill, Bandra West, Mumbai",
            "rating": 4.3,
            "price_level": 2,
            "geometry": {"location": {"lat": 19.0636, "lng": 72.8266}},
            "photos": [{"photo_reference": "ref-1"}, {"photo_reference": "ref-2"}],
        }
    ],
}

NEARBY_OK = {
    "status": "OK",
    "results": [
        {
            "place_id": "p-1",
            "name": "Bastian",
            "vicinity": "Worli",
            "types": ["restaurant", "food"],
            "rating": 4.5,
            "user_ratings_total": 2100,
            "price_level": 3,
            "geometry": {"location": {"lat": 19.01, "lng": 72.82}},
            "photos": [{"photo_reference": "a"}, {"photo_reference": "b"}, {"photo_reference": "c"}],
        },
        {"place_id": "p-2", "types": ["cafe"]},
    ],
}


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _places(handler, api_key="test-key") -> GooglePlacesClient:
    return GooglePlacesClient(api_key=api_key, client=_client(handler), photo_max_width=400)


def test_text_search_parses_first_result():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url)
        return httpx.Response(200, json=TEXT_OK)

    lookup = asyncio.run(_places(handler).text_search("Candies near Bandra"))

    assert lookup.name == "Candies"
    assert lookup.formatted_address.startswith("Pali Hill")
    assert lookup.photo_references == ["ref-1", "ref-2"]
    assert lookup.lat == pytest.approx(19.0636)
    assert seen[0].params["query"] == "Candies near Bandra"
    assert seen[0].params["key"] == "test-key"


def test_zero_results_is_not_an_error():
    places = _places(lambda r: httpx.Response(200, json={"status": "ZERO_RESULTS", "results": []}))
    assert asyncio.run(places.text_search("nowhere")) is None


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, json={"status": "OVER_QUERY_LIMIT"}),
        httpx.Response(200, json={"status": "REQUEST_DENIED", "error_message": "bad key"}),
        httpx.Response(500, text="upstream down"),
        httpx.Response(200, text="<html>not json</html>"),
    ],
)
def test_failures_raise_enrichment_failure(response):
    places = _places(lambda r: response)
    with pytest.raises(EnrichmentFailure):
        asyncio.run(places.text_search("Candies"))


def test_missing_key():
    places = GooglePlacesClient(api_key=None)
    assert not places.configured
    with pytest.raises(EnrichmentFailure):
        asyncio.run(places.text_search("Candies"))


def test_nearby_search_builds_candidates():
    places = _places(lambda r: httpx.Response(200, json=NEARBY_OK))
    candidates = asyncio.run(places.nearby_search(19.0, 72.8, 5000, "restaurant"))

    assert [c.place_id for c in candidates] == ["p-1"]
    only = candidates[0]
    assert only.address == "Worli"
    assert only.categories == ["restaurant", "food"]
    assert only.rating_count == 2100
    assert len(only.photos) == 2
    assert "photoreference=a" in only.photos[0]
    assert only.source == "places"


def test_geocode_parses_and_caches():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=[{"lat": "19.0596", "lon": "72.8295"}])

    geocoder = NominatimGeocoder(client=_client(handler))

    async def scenario():
        first = await geocoder.geocode("Bandra West")
        second = await geocoder.geocode("  bandra west ")
        return first, second

    first, second = asyncio.run(scenario())
    assert first.lat == pytest.approx(19.0596)
    assert second == first
    assert len(calls) == 1
    assert calls[0].headers["User-Agent"]


def test_geocode_failures_are_none():
    empty = NominatimGeocoder(client=_client(lambda r: httpx.Response(200, json=[])))
    broken = NominatimGeocoder(client=_client(lambda r: httpx.Response(503)))
    assert asyncio.run(empty.geocode("Atlantis")) is None
    assert asyncio.run(broken.geocode("Bandra")) is None
    assert asyncio.run(empty.geocode("   ")) is None


def test_reverse_prefers_suburb():
    payload = {"display_name": "Dadar, Mumbai, India", "address": {"suburb": "Dadar West", "city": "Mumbai"}}
    geocoder = NominatimGeocoder(client=_client(lambda r: httpx.Response(200, json=payload)))
    assert asyncio.run(geocoder.reverse(19.0178, 72.8478)) == "Dadar West"


def test_chat_model_without_key():
    llm, reason = build_chat_model(api_key=None)
    assert llm is None
    assert "OPEN_AI_API_KEY" in reason


def _text_handler(request: httpx.Request) -> httpx.Response:
    query = request.url.params["query"]
    place = dict(TEXT_OK["results"][0], name=query.split(" near ")[0])
    if query.startswith("Bad"):
        # New Places API enum leaking into the legacy response
        place["price_level"] = "PRICE_LEVEL_MODERATE"
    return httpx.Response(200, json={"status": "OK", "results": [place]})


def test_malformed_text_result_is_enrichment_failure():
    places = _places(_text_handler)
    with pytest.raises(EnrichmentFailure):
        asyncio.run(places.text_search("Bad Place near Dadar"))


def test_non_object_body_is_enrichment_failure():
    places = _places(lambda r: httpx.Response(200, json=["not", "an", "object"]))
    with pytest.raises(EnrichmentFailure):
        asyncio.run(places.text_search("Candies"))


def test_malformed_lookup_only_costs_its_own_item():
    hub = Hub(id="hub-midpoint", name="Fair Midpoint (Dadar)", lat=19.0178, lng=72.8478)
    items = [
        ItineraryItem(place_id=f"p{i}", name=name, item_id=f"item-p{i}-{i}")
        for i, name in enumerate(["Good Cafe", "Bad Bistro"])
    ]
    plan = GeneratedItinerary(
        id="gen-hub-midpoint-balanced", hub_id=hub.id, archetype="balanced", name="Plan", items=items
    )

    enriched = asyncio.run(EnrichmentPipeline(_places(_text_handler)).enrich([plan], [hub]))

    statuses = [i.enrichment.status for i in enriched[0].items]
    assert statuses == [EnrichmentStatus.ENRICHED, EnrichmentStatus.PLACEHOLDER]
    assert enriched[0].items[0].enrichment.address.startswith("Pali Hill")


def test_nearby_search_skips_only_malformed_places():
    payload = {
        "status": "OK",
        "results": [
            dict(NEARBY_OK["results"][0], place_id="bad", price_level="PRICE_LEVEL_EXPENSIVE"),
            "not a place",
            NEARBY_OK["results"][0],
        ],
    }
    places = _places(lambda r: httpx.Response(200, json=payload))
    candidates = asyncio.run(places.nearby_search(19.0, 72.8, 5000, "restaurant"))
    assert [c.place_id for c in candidates] == ["p-1"]
