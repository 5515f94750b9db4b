"""
HTTP flow through the FastAPI app with an injected in-memory store and a
planner wired to fakes.
"""

import json
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage
from langchain_core.runnables import RunnableLambda

# Allow importing from backend/hangout
sys.path.insert(0, str(Path(__file__).parent.parent))

from fakes import FakePlaces, build_planner

from hangout.db.memory import InMemoryGroupStore
from hangout.main import create_app

AI_RESPONSE = {
    "locations": [
        {
            "name": "Mahim, Mumbai",
            "description": "Bay views and seafood",
            "itinerary": ["Seafood lunch at Gajalee"],
            "estimatedCost": 900,
        }
    ]
}


@pytest.fixture
def client():
    store = InMemoryGroupStore()
    llm = RunnableLambda(lambda _prompt: AIMessage(content=json.dumps(AI_RESPONSE)))
    planner = build_planner(store, places=FakePlaces(), llm=llm)
    with TestClient(create_app(store=store, orchestrator=planner)) as c:
        yield c


def _create_group(client) -> dict:
    resp = client.post("/groups", json={"name": "Friday hangout"})
    assert resp.status_code == 201
    return resp.json()["data"]


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "healthy"
    assert client.get("/").json()["code"] == 0


def test_create_and_join_group(client):
    group = _create_group(client)
    assert len(group["code"]) == 6

    joined = client.get(f"/groups/{group['code'].lower()}")
    assert joined.status_code == 200
    assert joined.json()["data"]["id"] == group["id"]

    assert client.get("/groups/NOPE00").status_code == 404
    assert client.post("/groups").status_code == 201


def test_member_preferences(client):
    gid = _create_group(client)["id"]

    resp = client.put(
        f"/groups/{gid}/members/alice",
        json={"name": "Alice", "home_location": "Bandra", "budget": 800, "mood_tags": ["Foodie", "foodie "]},
    )
    assert resp.status_code == 200
    assert resp.json()["data"]["mood_tags"] == ["foodie"]

    resp = client.put(
        f"/groups/{gid}/members/bob",
        json={"coordinates": {"lat": 19.0178, "lng": 72.8478}, "budget": 600},
    )
    assert resp.status_code == 200

    # Re-submitting overwrites
    client.put(f"/groups/{gid}/members/alice", json={"home_location": "Mahim", "budget": 900})
    members = client.get(f"/groups/{gid}/members").json()["data"]
    assert members["count"] == 2
    assert members["members"][0]["home_location"] == "Mahim"

    assert client.put(f"/groups/{gid}/members/cara", json={"budget": 100}).status_code == 422
    assert client.put("/groups/missing/members/cara", json={"home_location": "Dadar"}).status_code == 404
    assert client.get("/groups/missing/members").status_code == 404


def test_generate_vote_and_clear(client):
    gid = _create_group(client)["id"]
    client.put(f"/groups/{gid}/members/alice", json={"home_location": "Bandra", "budget": 800, "mood_tags": ["foodie"]})
    client.put(f"/groups/{gid}/members/bob", json={"home_location": "Dadar", "budget": 600, "mood_tags": ["chill"]})

    assert client.get(f"/groups/{gid}/recommendations").status_code == 404

    generated = client.post(f"/groups/{gid}/recommendations")
    assert generated.status_code == 200
    data = generated.json()["data"]
    assert data["status"] == "ok"
    assert 1 <= len(data["itineraries"]) <= 5

    stored = client.get(f"/groups/{gid}/recommendations").json()["data"]["itineraries"]
    assert [it["id"] for it in stored] == [it["id"] for it in data["itineraries"]]

    first = client.post("/votes", json={"group_id": gid, "member_id": "alice", "itinerary_idx": 0})
    assert first.status_code == 200
    second = client.post("/votes", json={"group_id": gid, "member_id": "bob", "itinerary_idx": 0})
    assert second.json()["data"] == {"vote_counts": {"0": 2}, "finalized_idx": 0}

    bad_idx = client.post("/votes", json={"group_id": gid, "member_id": "bob", "itinerary_idx": 99})
    assert bad_idx.status_code == 400
    stranger = client.post("/votes", json={"group_id": gid, "member_id": "mallory", "itinerary_idx": 0})
    assert stranger.status_code == 400
    assert client.post("/votes", json={"group_id": "missing", "member_id": "bob", "itinerary_idx": 0}).status_code == 404

    mine = client.get(f"/votes/{gid}", params={"member_id": "alice"}).json()["data"]
    assert mine["member_vote"] == 0
    assert mine["finalized_idx"] == 0

    cleared = client.delete(f"/groups/{gid}/recommendations")
    assert cleared.json()["data"] == {"group_id": gid, "cleared": True}
    assert client.get(f"/groups/{gid}/recommendations").status_code == 404
    assert client.get(f"/votes/{gid}").json()["data"] == {"vote_counts": {}, "finalized_idx": None}


def test_generate_errors(client):
    assert client.post("/groups/missing/recommendations").status_code == 404

    gid = _create_group(client)["id"]
    assert client.post(f"/groups/{gid}/recommendations").status_code == 400

    client.put(f"/groups/{gid}/members/alice", json={"home_location": "Atlantis"})
    resp = client.post(f"/groups/{gid}/recommendations")
    assert resp.status_code == 422
