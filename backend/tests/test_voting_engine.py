import asyncio
import sys
from pathlib import Path

import pytest

# Allow importing from backend/hangout
sys.path.insert(0, str(Path(__file__).parent.parent))

from fakes import FlakyStore, make_itinerary, member

from hangout.agents.voting_engine import VotingEngine, tally_votes
from hangout.core.errors import GroupNotFound, InputError
from hangout.db.memory import InMemoryGroupStore
from hangout.models import Vote


def print_section(title: str) -> None:
    print("\n" + "=" * 80)
    print(f"  {title}")
    print("=" * 80)


async def _seed(store, members=("alice", "bob", "cara"), plans=3) -> str:
    group = await store.create_group("Friday hangout")
    for mid in members:
        await store.upsert_member(member(group.id, mid, "Bandra"))
    await store.save_itinerary_set(group.id, [make_itinerary(i) for i in range(plans)])
    return group.id


def test_tally_plurality_and_lowest_index_tie_break():
    print_section("Tally rules")
    votes = [Vote(group_id="g", member_id=m, itinerary_idx=i) for m, i in [("a", 0), ("b", 1), ("c", 1)]]
    result = tally_votes(votes)
    assert result.vote_counts == {0: 1, 1: 2}
    assert result.finalized_idx == 1

    tie = tally_votes([Vote(group_id="g", member_id="a", itinerary_idx=0), Vote(group_id="g", member_id="b", itinerary_idx=1)])
    assert tie.finalized_idx == 0

    reverse = tally_votes([Vote(group_id="g", member_id="b", itinerary_idx=1), Vote(group_id="g", member_id="a", itinerary_idx=0)])
    assert reverse.finalized_idx == 0

    empty = tally_votes([])
    assert empty.vote_counts == {}
    assert empty.finalized_idx is None


def test_last_vote_wins():
    async def scenario():
        store = InMemoryGroupStore()
        engine = VotingEngine(store)
        gid = await _seed(store)
        await engine.cast_vote(gid, "alice", 0)
        result = await engine.cast_vote(gid, "alice", 2)
        votes = await store.list_votes(gid)
        return result, votes, await engine.member_vote(gid, "alice")

    result, votes, mine = asyncio.run(scenario())
    assert len(votes) == 1
    assert result.vote_counts == {2: 1}
    assert result.finalized_idx == 2
    assert mine == 2


def test_three_members_finalize_majority():
    async def scenario():
        store = InMemoryGroupStore()
        engine = VotingEngine(store)
        gid = await _seed(store)
        await engine.cast_vote(gid, "alice", 0)
        await engine.cast_vote(gid, "bob", 1)
        return await engine.cast_vote(gid, "cara", 1)

    result = asyncio.run(scenario())
    assert result.vote_counts == {0: 1, 1: 2}
    assert result.finalized_idx == 1


def test_concurrent_votes_from_one_member_leave_one_record():
    async def scenario():
        store = InMemoryGroupStore()
        engine = VotingEngine(store)
        gid = await _seed(store)
        await asyncio.gather(*(engine.cast_vote(gid, "bob", i % 3) for i in range(10)))
        return await store.list_votes(gid)

    votes = asyncio.run(scenario())
    assert len(votes) == 1


def test_vote_survives_transient_store_conflicts():
    async def scenario():
        store = FlakyStore(failures=2)
        engine = VotingEngine(store)
        gid = await _seed(store)
        result = await engine.cast_vote(gid, "alice", 1)
        return store, gid, result

    store, gid, result = asyncio.run(scenario())
    assert store.vote_calls == 3
    assert result.vote_counts == {1: 1}


def test_invalid_votes_are_rejected():
    async def scenario(group_id=None, member_id="alice", idx=0, plans=3):
        store = InMemoryGroupStore()
        gid = await _seed(store, plans=plans)
        await VotingEngine(store).cast_vote(group_id or gid, member_id, idx)

    with pytest.raises(GroupNotFound):
        asyncio.run(scenario(group_id="missing"))
    with pytest.raises(InputError):
        asyncio.run(scenario(member_id="mallory"))
    with pytest.raises(InputError):
        asyncio.run(scenario(idx=3))
    with pytest.raises(InputError):
        asyncio.run(scenario(idx=-1))
    with pytest.raises(InputError):
        asyncio.run(scenario(plans=0))


def test_member_without_vote():
    async def scenario():
        store = InMemoryGroupStore()
        engine = VotingEngine(store)
        gid = await _seed(store)
        return await engine.member_vote(gid, "bob"), await engine.tally(gid)

    mine, result = asyncio.run(scenario())
    assert mine is None
    assert result.finalized_idx is None


def test_tie_goes_to_lowest_index_whatever_the_vote_order():
    async def scenario():
        store = InMemoryGroupStore()
        engine = VotingEngine(store)
        gid = await _seed(store)
        await engine.cast_vote(gid, "bob", 2)
        await engine.cast_vote(gid, "alice", 1)
        return await engine.tally(gid)

    result = asyncio.run(scenario())
    assert result.vote_counts == {1: 1, 2: 1}
    assert result.finalized_idx == 1


def test_member_locks_are_released_after_voting():
    async def scenario():
        store = InMemoryGroupStore()
        engine = VotingEngine(store)
        gid = await _seed(store)
        await asyncio.gather(
            *(engine.cast_vote(gid, mid, i % 3) for i in range(6) for mid in ("alice", "bob"))
        )
        return engine

    engine = asyncio.run(scenario())
    assert engine._locks == {}
