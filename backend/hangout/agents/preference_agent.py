# preference_agent.py - Aggregates member preferences into one group profile
from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import Counter
from typing import Protocol

from hangout.core.config import BUDGET_TIER_STEP
from hangout.core.errors import CannotGenerateRecommendations, InputError
from hangout.core.geo import centroid
from hangout.models import GeoPoint, GroupPreferenceProfile, MemberPreference, ResolvedMember

AGENT_LABEL = "preference"

logger = logging.getLogger(__name__)


class Geocoder(Protocol):
    async def geocode(self, query: str) -> GeoPoint | None: ...

    async def reverse(self, lat: float, lng: float) -> str | None: ...


def budget_tier(mean_budget: float, step: float = BUDGET_TIER_STEP) -> int:
    """1 (cheap) .. 4 (luxury); every `step` currency units is one tier."""
    if step <= 0:
        return 1
    return min(4, max(1, math.ceil(mean_budget / step)))


class PreferenceAggregator:
    """
    Turns the stored member preferences of a group into a GroupPreferenceProfile.

    Members without coordinates are geocoded concurrently. A member whose
    location cannot be resolved is skipped (and reported), never fatal, unless
    nobody can be resolved.
    """

    def __init__(self, geocoder: Geocoder, budget_step: float = BUDGET_TIER_STEP) -> None:
        self.geocoder = geocoder
        self.budget_step = budget_step

    async def _resolve(self, member: MemberPreference) -> GeoPoint | None:
        if member.coordinates is not None:
            return member.coordinates
        if not member.home_location:
            return None
        return await self.geocoder.geocode(member.home_location)

    async def aggregate(
        self, group_id: str, members: list[MemberPreference]
    ) -> GroupPreferenceProfile:
        if not members:
            raise InputError(f"Group {group_id} has no member preferences")

        t0 = time.time()
        points = await asyncio.gather(*(self._resolve(m) for m in members))

        resolved: list[ResolvedMember] = []
        unresolved: list[str] = []
        for member, point in zip(members, points):
            if point is None:
                logger.warning(
                    "[%s] could not resolve location %r for member %s",
                    AGENT_LABEL,
                    member.home_location,
                    member.member_id,
                )
                unresolved.append(member.member_id)
                continue
            resolved.append(
                ResolvedMember(
                    member_id=member.member_id, home_location=member.home_location, point=point
                )
            )

        if not resolved:
            raise CannotGenerateRecommendations(
                "Cannot generate recommendations: no member location could be resolved"
            )

        mean_budget = sum(m.budget for m in members) / len(members)
        frequency = Counter(tag for m in members for tag in m.mood_tags)
        tags = sorted(frequency, key=lambda t: (-frequency[t], t))

        profile = GroupPreferenceProfile(
            group_id=group_id,
            member_count=len(members),
            resolved_members=resolved,
            unresolved_member_ids=unresolved,
            centroid=centroid([r.point for r in resolved]),
            mean_budget=mean_budget,
            budget_tier=budget_tier(mean_budget, self.budget_step),
            mood_tags=tags,
            tag_frequency=dict(frequency),
            member_locations=[r.home_location for r in resolved if r.home_location],
        )
        logger.info(
            "[%s] group %s: %d/%d members resolved, tier %d, tags %s (%.0fms)",
            AGENT_LABEL,
            group_id,
            len(resolved),
            len(members),
            profile.budget_tier,
            tags,
            (time.time() - t0) * 1000,
        )
        return profile


__all__ = ["Geocoder", "PreferenceAggregator", "budget_tier"]
