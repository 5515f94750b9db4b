import asyncio
import json
import sys
from pathlib import Path

import pytest
from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableLambda

# Allow importing from backend/hangout
sys.path.insert(0, str(Path(__file__).parent.parent))

from fakes import FakePlaces

from hangout.agents.candidate_source import (
    CandidateSource,
    candidates_from_locations,
    extract_json_object,
    merge_candidates,
    parse_ai_locations,
)
from hangout.core.errors import UpstreamParseError, UpstreamUnavailable
from hangout.models import Candidate, GeoPoint, GroupPreferenceProfile, Hub

AI_RESPONSE = {
    "locations": [
        {
            "name": "Bandra West, Mumbai",
            "description": "Sea-facing cafes and a lively promenade",
            "itinerary": ["Coffee at Candies Cafe", "Walk along Carter Road promenade"],
            "estimatedCost": 700,
        },
        {"description": "missing a name, should be skipped"},
        {
            "name": "Lower Parel, Mumbai",
            "description": "Mill compounds turned food hubs",
            "itinerary": ["Dinner at Bombay Canteen"],
            "estimated_cost": 1800,
        },
    ]
}

HUB = Hub(id="hub-midpoint", name="Fair Midpoint (Dadar)", lat=19.0178, lng=72.8478, radius_meters=10000)


def _profile(tags=None) -> GroupPreferenceProfile:
    return GroupPreferenceProfile(
        group_id="g1",
        member_count=2,
        centroid=GeoPoint(lat=19.0178, lng=72.8478),
        mean_budget=800,
        budget_tier=2,
        mood_tags=tags or ["foodie"],
        tag_frequency={t: 1 for t in (tags or ["foodie"])},
        member_locations=["Bandra", "Dadar"],
    )


def print_section(title: str) -> None:
    print("\n" + "=" * 80)
    print(f"  {title}")
    print("=" * 80)


def test_extract_json_tolerates_fences_and_prose():
    text = "Sure! Here you go:\n```json\n" + json.dumps(AI_RESPONSE) + "\n```\nEnjoy."
    data = extract_json_object(text)
    assert len(data["locations"]) == 3


@pytest.mark.parametrize("text", ["", "no json here", "{not: valid json}", "[1, 2, 3]"])
def test_extract_json_rejects_garbage(text):
    with pytest.raises(UpstreamParseError):
        extract_json_object(text)


def test_parse_skips_invalid_locations_and_reads_both_cost_keys():
    locations = parse_ai_locations(json.dumps(AI_RESPONSE))
    assert [loc.name for loc in locations] == ["Bandra West, Mumbai", "Lower Parel, Mumbai"]
    assert locations[0].estimated_cost == 700
    assert locations[1].estimated_cost == 1800


def test_ai_candidates_have_no_coordinates():
    print_section("Each AI itinerary entry becomes a candidate")
    candidates = candidates_from_locations(parse_ai_locations(json.dumps(AI_RESPONSE)))

    names = [c.name for c in candidates]
    print(names)
    assert names == [
        "Coffee at Candies Cafe",
        "Walk along Carter Road promenade",
        "Dinner at Bombay Canteen",
    ]
    assert all(c.source == "ai" and c.lat is None and c.lng is None for c in candidates)
    assert candidates[0].place_id == "ai_coffee_at_candies_cafe"
    assert "cafe" in candidates[0].categories
    assert "park" in candidates[1].categories
    assert "restaurant" in candidates[2].categories
    assert candidates[0].price_level == 2
    assert candidates[2].price_level == 4


def test_merge_prefers_places_results():
    places = [Candidate(place_id="p1", name="From places", source="places")]
    ai = [
        Candidate(place_id="p1", name="From ai", source="ai"),
        Candidate(place_id="ai_x", name="X", source="ai"),
    ]
    merged = merge_candidates(places, ai)
    assert [(c.place_id, c.name) for c in merged] == [("p1", "From places"), ("ai_x", "X")]


def test_fetch_combines_both_sources():
    llm = RunnableLambda(lambda _prompt: AIMessage(content=json.dumps(AI_RESPONSE)))
    places = FakePlaces(per_type=2)
    source = CandidateSource(llm=llm, places=places, max_nearby_types=2)

    candidates = asyncio.run(source.fetch(HUB, _profile(["foodie"])))

    assert places.nearby_calls == ["restaurant", "cafe"]
    assert len({c.place_id for c in candidates}) == len(candidates)
    assert sum(c.source == "places" for c in candidates) == 4
    assert sum(c.source == "ai" for c in candidates) == 3


def test_unparseable_ai_response_yields_empty_ai_list():
    llm = RunnableLambda(lambda _prompt: AIMessage(content="I cannot help with that."))
    source = CandidateSource(llm=llm, places=None)
    assert asyncio.run(source.fetch(HUB, _profile())) == []


def test_failing_llm_yields_empty_ai_list():
    def boom(_prompt):
        raise RuntimeError("quota exceeded")

    source = CandidateSource(llm=RunnableLambda(boom), places=None, llm_attempts=2, retry_delay=0)
    assert asyncio.run(source.ai_candidates(HUB, _profile())) == []


def test_missing_keys_skip_both_sources():
    source = CandidateSource(llm=None, places=None)
    assert asyncio.run(source.fetch(HUB, _profile())) == []


def test_one_failing_place_type_keeps_the_others():
    places = FakePlaces(per_type=1, nearby_failing={"restaurant"})
    source = CandidateSource(llm=None, places=places, max_nearby_types=3)

    candidates = asyncio.run(source.fetch(HUB, _profile(["foodie"])))

    assert [c.place_id for c in candidates] == ["cafe-0", "bakery-0"]


def test_exhausted_llm_retries_raise_upstream_unavailable():
    calls = []

    def boom(_prompt):
        calls.append(1)
        raise RuntimeError("503 from provider")

    source = CandidateSource(llm=RunnableLambda(boom), places=None, llm_attempts=2, retry_delay=0)
    with pytest.raises(UpstreamUnavailable):
        asyncio.run(source._invoke_llm({"mood_tags": []}))
    assert len(calls) == 2
