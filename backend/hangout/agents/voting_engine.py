# voting_engine.py - One live vote per member, plurality finalization
from __future__ import annotations

import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager
from typing import AsyncIterator

from hangout.core.errors import GroupNotFound, InputError
from hangout.db.store import GroupStore, with_store_retry
from hangout.models import FinalizationResult, Vote

AGENT_LABEL = "voting"

logger = logging.getLogger(__name__)


def tally_votes(votes: list[Vote]) -> FinalizationResult:
    """
    Count votes per itinerary index. The strictly highest count wins; a tie goes
    to the lowest index. No votes means nothing is finalized.
    """
    counts = Counter(v.itinerary_idx for v in votes)
    if not counts:
        return FinalizationResult(vote_counts={}, finalized_idx=None)
    best = max(counts.values())
    winner = min(idx for idx, n in counts.items() if n == best)
    return FinalizationResult(vote_counts=dict(sorted(counts.items())), finalized_idx=winner)


class VotingEngine:
    """
    Votes are serialized per (group, member) in-process and written with the
    store's atomic upsert, so concurrent re-votes from one member leave exactly
    one record. Finalization is advisory and never closes voting.
    """

    def __init__(self, store: GroupStore) -> None:
        self.store = store
        # (group_id, member_id) -> [lock, holders + waiters]
        self._locks: dict[tuple[str, str], list] = {}

    @asynccontextmanager
    async def _member_lock(self, group_id: str, member_id: str) -> AsyncIterator[None]:
        """Serialize one member's writes; the entry is dropped once nobody holds or awaits it."""
        key = (group_id, member_id)
        entry = self._locks.get(key)
        if entry is None:
            entry = self._locks[key] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                self._locks.pop(key, None)

    async def _validate(self, group_id: str, member_id: str, itinerary_idx: int) -> None:
        group = await with_store_retry(lambda: self.store.get_group_by_id(group_id), label=AGENT_LABEL)
        if group is None:
            raise GroupNotFound(f"Unknown group: {group_id}")

        members = await with_store_retry(lambda: self.store.list_members(group_id), label=AGENT_LABEL)
        if member_id not in {m.member_id for m in members}:
            raise InputError(f"{member_id} is not a member of group {group_id}")

        itineraries = await with_store_retry(
            lambda: self.store.get_itinerary_set(group_id), label=AGENT_LABEL
        )
        if not itineraries:
            raise InputError(f"Group {group_id} has no itineraries to vote on")
        if not 0 <= itinerary_idx < len(itineraries):
            raise InputError(
                f"itinerary_idx {itinerary_idx} out of range (0..{len(itineraries) - 1})"
            )

    async def cast_vote(
        self, group_id: str, member_id: str, itinerary_idx: int
    ) -> FinalizationResult:
        if itinerary_idx < 0:
            raise InputError("itinerary_idx must be >= 0")
        await self._validate(group_id, member_id, itinerary_idx)

        async with self._member_lock(group_id, member_id):
            await with_store_retry(
                lambda: self.store.upsert_vote(group_id, member_id, itinerary_idx),
                label=AGENT_LABEL,
            )
        result = await self.tally(group_id)
        logger.info(
            "[%s] %s voted %d in %s -> counts %s, finalized %s",
            AGENT_LABEL,
            member_id,
            itinerary_idx,
            group_id,
            result.vote_counts,
            result.finalized_idx,
        )
        return result

    async def tally(self, group_id: str) -> FinalizationResult:
        votes = await with_store_retry(lambda: self.store.list_votes(group_id), label=AGENT_LABEL)
        return tally_votes(votes)

    async def member_vote(self, group_id: str, member_id: str) -> int | None:
        votes = await with_store_retry(lambda: self.store.list_votes(group_id), label=AGENT_LABEL)
        for vote in votes:
            if vote.member_id == member_id:
                return vote.itinerary_idx
        return None


__all__ = ["VotingEngine", "tally_votes"]
