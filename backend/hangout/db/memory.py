"""
In-process GroupStore for local runs without MongoDB and for tests.
"""

from datetime import datetime, timezone

from hangout.models import GeneratedItinerary, Group, MemberPreference, Vote


class InMemoryGroupStore:
    """
    Same contract as MongoGroupStore. Every method returns copies so callers
    cannot mutate stored records.
    """

    def __init__(self) -> None:
        self._groups: dict[str, Group] = {}
        self._codes: dict[str, str] = {}
        self._members: dict[tuple[str, str], MemberPreference] = {}
        self._votes: dict[tuple[str, str], Vote] = {}
        self._itinerary_sets: dict[str, list[GeneratedItinerary]] = {}

    async def create_group(self, name: str | None = None) -> Group:
        group = Group(name=name)
        while group.code in self._codes:
            group = Group(name=name)
        self._groups[group.id] = group
        self._codes[group.code] = group.id
        return group.model_copy(deep=True)

    async def get_group(self, code: str) -> Group | None:
        group_id = self._codes.get(code.strip().upper())
        return await self.get_group_by_id(group_id) if group_id else None

    async def get_group_by_id(self, group_id: str) -> Group | None:
        group = self._groups.get(group_id)
        return group.model_copy(deep=True) if group else None

    async def upsert_member(self, pref: MemberPreference) -> MemberPreference:
        stored = pref.model_copy(deep=True)
        self._members[(pref.group_id, pref.member_id)] = stored
        return stored.model_copy(deep=True)

    async def list_members(self, group_id: str) -> list[MemberPreference]:
        members = [m for (gid, _), m in self._members.items() if gid == group_id]
        return [m.model_copy(deep=True) for m in sorted(members, key=lambda m: m.member_id)]

    async def upsert_vote(self, group_id: str, member_id: str, itinerary_idx: int) -> Vote:
        vote = Vote(
            group_id=group_id,
            member_id=member_id,
            itinerary_idx=itinerary_idx,
            updated_at=datetime.now(timezone.utc),
        )
        self._votes[(group_id, member_id)] = vote
        return vote.model_copy(deep=True)

    async def list_votes(self, group_id: str) -> list[Vote]:
        return [v.model_copy(deep=True) for (gid, _), v in self._votes.items() if gid == group_id]

    async def clear_votes(self, group_id: str) -> int:
        keys = [k for k in self._votes if k[0] == group_id]
        for key in keys:
            del self._votes[key]
        return len(keys)

    async def save_itinerary_set(
        self, group_id: str, itineraries: list[GeneratedItinerary]
    ) -> None:
        self._itinerary_sets[group_id] = [it.model_copy(deep=True) for it in itineraries]

    async def get_itinerary_set(self, group_id: str) -> list[GeneratedItinerary] | None:
        stored = self._itinerary_sets.get(group_id)
        if stored is None:
            return None
        return [it.model_copy(deep=True) for it in stored]

    async def clear_itinerary_set(self, group_id: str) -> None:
        self._itinerary_sets.pop(group_id, None)
        await self.clear_votes(group_id)
