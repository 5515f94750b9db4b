import asyncio
import sys
from pathlib import Path

# Allow importing from backend/hangout
sys.path.insert(0, str(Path(__file__).parent.parent))

from fakes import FakeGeocoder, member

from hangout.agents.hub_selector import MIDPOINT_HUB_ID, HubSelector, group_spread_km
from hangout.agents.preference_agent import PreferenceAggregator


def _profile(locations: list[str]):
    members = [member("g1", f"m{i}", loc) for i, loc in enumerate(locations)]
    return asyncio.run(PreferenceAggregator(FakeGeocoder()).aggregate("g1", members))


def test_midpoint_hub_always_first():
    profile = _profile(["Bandra", "Thane"])
    hubs = asyncio.run(HubSelector(FakeGeocoder(area="Kurla")).select(profile))

    assert hubs[0].id == MIDPOINT_HUB_ID
    assert hubs[0].name == "Fair Midpoint (Kurla)"
    assert hubs[0].kind == "centroid"
    assert hubs[0].radius_meters == 10000
    assert hubs[0].lat == profile.centroid.lat


def test_midpoint_without_reverse_geocoding():
    profile = _profile(["Bandra"])
    hubs = asyncio.run(HubSelector(geocoder=None).select(profile))
    assert hubs[0].name == "Fair Midpoint"


def test_close_group_gets_member_area_hubs():
    profile = _profile(["Bandra", "Dadar", "Mahim"])
    assert group_spread_km(profile) <= 5.5

    hubs = asyncio.run(HubSelector(FakeGeocoder()).select(profile))
    poi = [h for h in hubs if h.kind == "poi"]
    assert [h.name for h in poi] == ["Near Bandra", "Near Dadar", "Near Mahim"]
    assert all(h.score == 0.8 and h.radius_meters == 5000 for h in poi)
    assert len(hubs) == 4


def test_spread_group_gets_cluster_hubs():
    profile = _profile(["Colaba", "Churchgate", "Thane", "Thane East"])
    assert group_spread_km(profile) > 5.5

    hubs = asyncio.run(HubSelector(FakeGeocoder(area=None)).select(profile))
    clusters = [h for h in hubs if h.kind == "cluster"]
    assert len(clusters) == 2
    assert all(h.score == 0.9 for h in clusters)
    assert clusters[0].name.startswith("Colaba")
    assert clusters[1].name.startswith("Thane")


def test_hub_count_is_capped():
    profile = _profile(["Bandra", "Dadar", "Mahim"])
    hubs = asyncio.run(HubSelector(FakeGeocoder(), max_hubs=2).select(profile))
    assert [h.id for h in hubs] == [MIDPOINT_HUB_ID, "hub-poi-1"]
