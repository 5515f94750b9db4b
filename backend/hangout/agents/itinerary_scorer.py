# itinerary_scorer.py - Scores candidates and assembles archetype itineraries per hub
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable

from hangout.core.config import (
    AVERAGE_SPEED_KMH,
    DEFAULT_LEG_MINUTES,
    DISTANCE_HORIZON_KM,
    ITINERARY_TARGET_ITEMS,
    MAX_ITINERARIES,
    MAX_TRAVEL_TIME_MINUTES,
    MIN_CANDIDATE_SCORE,
    SCORING_WEIGHTS,
    ScoringWeights,
)
from hangout.core.geo import haversine_km, travel_minutes
from hangout.core.taxonomy import (
    ADVENTURE_CATEGORIES,
    FOOD_CATEGORIES,
    RELAXED_CATEGORIES,
    has_category,
    primary_category,
    tag_satisfied,
)
from hangout.models import (
    Candidate,
    GeneratedItinerary,
    GroupPreferenceProfile,
    Hub,
    ItineraryItem,
    ScoreBreakdown,
)

AGENT_LABEL = "scorer"

logger = logging.getLogger(__name__)

NEUTRAL = 0.5

Ranked = tuple[Candidate, ScoreBreakdown]


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class ArchetypeSpec:
    name: str
    cost_factor: float
    duration_minutes: int
    default_reason: str
    keep: Callable[[Candidate], bool]
    by_rating: bool = False


ARCHETYPES: list[ArchetypeSpec] = [
    ArchetypeSpec("balanced", 1.0, 90, "Top rated match", lambda c: True),
    ArchetypeSpec(
        "premium",
        1.5,
        120,
        "Premium spot",
        lambda c: (c.price_level or 0) >= 3 or (c.rating or 0) >= 4.5,
        by_rating=True,
    ),
    ArchetypeSpec(
        "budget",
        0.6,
        60,
        "Great value",
        lambda c: c.price_level is None or c.price_level <= 2,
    ),
    ArchetypeSpec(
        "adventure", 1.0, 120, "Fun activity", lambda c: has_category(c.categories, ADVENTURE_CATEGORIES)
    ),
    ArchetypeSpec(
        "relaxed", 0.7, 90, "Cozy vibes", lambda c: has_category(c.categories, RELAXED_CATEGORIES)
    ),
    ArchetypeSpec(
        "foodie", 1.0, 75, "Great food", lambda c: has_category(c.categories, FOOD_CATEGORIES)
    ),
]

ARCHETYPE_TITLES = {
    "premium": "Premium Hangout Experience",
    "budget": "Pocket-Friendly Gems",
    "adventure": "Activity & Fun",
    "relaxed": "Chill Cafe Hopping",
    "foodie": "Foodie Trail",
}

_REASONS = {
    "distance": "close to the meeting point",
    "tag_match": "matches the group's mood",
    "rating": "highly rated",
    "budget": "fits the group budget",
}


def _hub_area(hub: Hub) -> str:
    """`Fair Midpoint (Dadar)` -> `Dadar`; names without a bracket are used as is."""
    if "(" in hub.name and hub.name.endswith(")"):
        return hub.name.rsplit("(", 1)[1].rstrip(")").strip() or "Central"
    return hub.name


class ItineraryScorer:
    """
    Deterministic ranking: same candidates, hub and profile always give the same
    itineraries. Missing data (coordinates, rating, price) scores neutral.
    """

    def __init__(
        self,
        weights: ScoringWeights = SCORING_WEIGHTS,
        min_score: float = MIN_CANDIDATE_SCORE,
        max_travel_minutes: int = MAX_TRAVEL_TIME_MINUTES,
        target_items: int = ITINERARY_TARGET_ITEMS,
        max_itineraries: int = MAX_ITINERARIES,
        distance_horizon_km: float = DISTANCE_HORIZON_KM,
        speed_kmh: float = AVERAGE_SPEED_KMH,
        default_leg_minutes: int = DEFAULT_LEG_MINUTES,
    ) -> None:
        self.weights = weights.normalized()
        self.min_score = min_score
        self.max_travel_minutes = max_travel_minutes
        self.target_items = min(4, max(3, target_items))
        self.max_itineraries = max_itineraries
        self.distance_horizon_km = distance_horizon_km
        self.speed_kmh = speed_kmh
        self.default_leg_minutes = default_leg_minutes

    # ---- Scoring ----
    def score(
        self, candidate: Candidate, hub: Hub, profile: GroupPreferenceProfile
    ) -> ScoreBreakdown:
        if candidate.lat is None or candidate.lng is None:
            distance = NEUTRAL
        else:
            km = haversine_km(hub.lat, hub.lng, candidate.lat, candidate.lng)
            distance = max(0.0, 1.0 - km / self.distance_horizon_km)

        total_weight = sum(profile.tag_frequency.get(t, 1) for t in profile.mood_tags)
        if not profile.mood_tags or total_weight <= 0:
            tag_match = NEUTRAL
        else:
            text = f"{candidate.name} {candidate.description or ''}"
            hit = sum(
                profile.tag_frequency.get(t, 1)
                for t in profile.mood_tags
                if tag_satisfied(t, candidate.categories, text)
            )
            tag_match = hit / total_weight

        if candidate.rating is None:
            rating = NEUTRAL
        else:
            rating = _clamp((candidate.rating - 3.5) / 1.5)

        if candidate.price_level is None:
            budget = NEUTRAL
        else:
            budget = max(0.0, 1.0 - 0.25 * abs(candidate.price_level - profile.budget_tier))

        w = self.weights
        total = (
            w.distance * distance + w.tag_match * tag_match + w.rating * rating + w.budget * budget
        )
        return ScoreBreakdown(
            total=round(total, 4),
            distance=round(distance, 4),
            tag_match=round(tag_match, 4),
            rating=round(rating, 4),
            budget=round(budget, 4),
        )

    def rank(
        self, candidates: list[Candidate], hub: Hub, profile: GroupPreferenceProfile
    ) -> list[Ranked]:
        """Score, drop anything under the floor, order by total desc then place_id."""
        scored: list[Ranked] = []
        seen: set[str] = set()
        for cand in candidates:
            if cand.place_id in seen:
                continue
            seen.add(cand.place_id)
            breakdown = self.score(cand, hub, profile)
            if breakdown.total >= self.min_score:
                scored.append((cand, breakdown))
        scored.sort(key=lambda pair: (-pair[1].total, pair[0].place_id))
        return scored

    # ---- Route building ----
    def _leg_minutes(
        self, a_lat: float | None, a_lng: float | None, b: Candidate
    ) -> int:
        if a_lat is None or a_lng is None or b.lat is None or b.lng is None:
            return self.default_leg_minutes
        return travel_minutes(haversine_km(a_lat, a_lng, b.lat, b.lng), self.speed_kmh)

    def select_route(self, ranked: list[Ranked], hub: Hub) -> tuple[list[Ranked], int]:
        """
        Greedily take candidates in order while the cumulative travel time
        (hub -> first stop -> ... -> last stop) stays within budget.
        """
        chosen: list[Ranked] = []
        used: set[str] = set()
        travel = 0
        cur_lat, cur_lng = hub.lat, hub.lng
        for cand, breakdown in ranked:
            if len(chosen) >= self.target_items:
                break
            if cand.place_id in used:
                continue
            leg = self._leg_minutes(cur_lat, cur_lng, cand)
            if travel + leg > self.max_travel_minutes:
                continue
            chosen.append((cand, breakdown))
            used.add(cand.place_id)
            travel += leg
            cur_lat, cur_lng = cand.lat, cand.lng
        return chosen, travel

    @staticmethod
    def _reason(breakdown: ScoreBreakdown, default: str) -> str:
        dims = sorted(
            ((getattr(breakdown, k), k) for k in _REASONS),
            key=lambda pair: (-pair[0], pair[1]),
        )
        strong = [_REASONS[k] for value, k in dims[:2] if value >= 0.6]
        if not strong:
            return default
        text = " and ".join(strong)
        return text[0].upper() + text[1:]

    def _itinerary_name(self, spec: ArchetypeSpec, hub: Hub) -> str:
        if spec.name == "balanced":
            return f"Best Middle Choice ({_hub_area(hub)})"
        return ARCHETYPE_TITLES[spec.name]

    def build_itineraries(
        self, hub: Hub, candidates: list[Candidate], profile: GroupPreferenceProfile
    ) -> list[GeneratedItinerary]:
        ranked = self.rank(candidates, hub, profile)
        out: list[GeneratedItinerary] = []
        for spec in ARCHETYPES:
            pool = [pair for pair in ranked if spec.keep(pair[0])]
            if spec.by_rating:
                pool.sort(key=lambda pair: (-(pair[0].rating or 0.0), -pair[1].total, pair[0].place_id))
            chosen, travel = self.select_route(pool, hub)
            if not chosen:
                continue
            items = [
                ItineraryItem(
                    **cand.model_dump(),
                    item_id=f"item-{cand.place_id}-{pos}",
                    duration_minutes=spec.duration_minutes,
                    reason=self._reason(breakdown, spec.default_reason),
                    scores=breakdown,
                )
                for pos, (cand, breakdown) in enumerate(chosen)
            ]
            distinct = {primary_category(item.categories) for item in items}
            out.append(
                GeneratedItinerary(
                    id=f"gen-{hub.id}-{spec.name}",
                    hub_id=hub.id,
                    hub_name=hub.name,
                    archetype=spec.name,
                    name=self._itinerary_name(spec, hub),
                    items=items,
                    total_cost_estimate=round(profile.mean_budget * spec.cost_factor, 2),
                    total_travel_minutes=travel,
                    diversity_score=round(len(distinct) / len(items), 4),
                )
            )
        logger.info(
            "[%s] %s: %d ranked candidates -> %d itineraries",
            AGENT_LABEL,
            hub.id,
            len(ranked),
            len(out),
        )
        return out

    def assemble(
        self,
        itineraries: list[GeneratedItinerary],
        hubs: list[Hub],
        profile: GroupPreferenceProfile,
    ) -> list[GeneratedItinerary]:
        """
        Final set across hubs: first itinerary of each name wins, capped at
        max_itineraries. With nothing left, one empty relaxed plan at the first
        hub (enrichment gives it the hub item).
        """
        unique: list[GeneratedItinerary] = []
        names: set[str] = set()
        for it in itineraries:
            if it.name in names:
                continue
            names.add(it.name)
            unique.append(it)

        if not unique and hubs:
            hub = hubs[0]
            unique.append(
                GeneratedItinerary(
                    id=f"gen-fallback-{hub.id}",
                    hub_id=hub.id,
                    hub_name=hub.name,
                    archetype="relaxed",
                    name=f"Chill at {hub.name}",
                    items=[],
                    total_cost_estimate=round(profile.mean_budget, 2),
                    total_travel_minutes=0,
                    diversity_score=0.0,
                )
            )
        return unique[: max(0, self.max_itineraries)]


__all__ = ["ARCHETYPES", "ItineraryScorer", "Ranked"]
