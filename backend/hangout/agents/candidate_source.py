# candidate_source.py - AI suggestions and nearby places around a hub
from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from typing import Any

from langchain_core.prompts import ChatPromptTemplate
from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

from hangout.agents.preference_agent import budget_tier
from hangout.core.config import LLM_TIMEOUT_SECONDS, MAX_NEARBY_TYPES
from hangout.core.cache import BoundedCache
from hangout.core.errors import EnrichmentFailure, UpstreamParseError, UpstreamUnavailable
from hangout.core.taxonomy import infer_categories, place_types_for
from hangout.models import Candidate, GroupPreferenceProfile, Hub
from hangout.services.places import GooglePlacesClient

AGENT_LABEL = "candidates"

logger = logging.getLogger(__name__)


# ====== Models ======


class AILocation(BaseModel):
    """One suggested area from the chat model."""

    name: str = Field(..., min_length=1)
    description: str = ""
    itinerary: list[str] = Field(default_factory=list)
    estimated_cost: float | None = Field(
        default=None, validation_alias=AliasChoices("estimated_cost", "estimatedCost")
    )

    @field_validator("itinerary", mode="before")
    @classmethod
    def _coerce_itinerary(cls, value: Any) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return [str(v).strip() for v in value if str(v or "").strip()]


# ====== Prompt ======

SYSTEM = """
You are the Hangout Suggestion Agent.
Given:
- The group's mood tags (most shared first),
- The group's budget tier (1=cheap .. 4=luxury),
- The meeting hub coordinates and the members' home areas,
suggest real, existing places for a group hangout near the hub.

Rules:
- Suggest 2-3 locations near the hub, each with 3-4 specific activities at real, named venues.
- Activities in one location should be within walking distance or a short ride of each other.
- Match the mood tags and stay within the budget tier.
- estimatedCost is the per-person cost in local currency as a number.
- Return JSON only, with no surrounding prose or code fences, in this exact shape:
  {{"locations": [{{"name": "Area, City", "description": "why it fits",
    "itinerary": ["Activity at Venue", "..."], "estimatedCost": 800}}]}}
"""


# ====== Parsing ======

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def extract_json_object(text: str) -> dict[str, Any]:
    """
    Pull the outermost JSON object out of a model response. Code fences and
    surrounding prose are tolerated.
    """
    if not text or not text.strip():
        raise UpstreamParseError("Empty response")
    cleaned = _FENCE.sub("", text).strip()
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end <= start:
        raise UpstreamParseError("No JSON object found in response")
    try:
        data = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError as e:
        raise UpstreamParseError(f"Invalid JSON in response: {e}") from e
    if not isinstance(data, dict):
        raise UpstreamParseError("Response JSON is not an object")
    return data


def parse_ai_locations(text: str) -> list[AILocation]:
    """Locations that fail validation are skipped; a missing `locations` list is an error."""
    data = extract_json_object(text)
    raw = data.get("locations")
    if not isinstance(raw, list):
        raise UpstreamParseError("Response has no `locations` list")
    out: list[AILocation] = []
    for idx, item in enumerate(raw):
        try:
            out.append(AILocation.model_validate(item))
        except ValidationError as e:
            logger.warning("[%s] skipping invalid location #%d: %s", AGENT_LABEL, idx, e)
    return out


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "_", text.lower()).strip("_")


def candidates_from_locations(locations: list[AILocation]) -> list[Candidate]:
    """Every itinerary entry becomes one coordinate-less Candidate."""
    out: list[Candidate] = []
    seen: set[str] = set()
    for loc in locations:
        price = budget_tier(loc.estimated_cost) if loc.estimated_cost else None
        entries = loc.itinerary or [loc.name]
        for entry in entries:
            place_id = f"ai_{_slug(entry)}"
            if place_id == "ai_" or place_id in seen:
                continue
            seen.add(place_id)
            out.append(
                Candidate(
                    place_id=place_id,
                    name=entry,
                    address=loc.name,
                    categories=infer_categories(entry, loc.description),
                    price_level=price,
                    source="ai",
                    description=loc.description or None,
                )
            )
    return out


def merge_candidates(places: list[Candidate], ai: list[Candidate]) -> list[Candidate]:
    """De-duplicate by place_id; the first occurrence wins and places come first."""
    merged: list[Candidate] = []
    seen: set[str] = set()
    for cand in [*places, *ai]:
        if cand.place_id in seen:
            continue
        seen.add(cand.place_id)
        merged.append(cand)
    return merged


# ====== Agent Implementation ======


class CandidateSource:
    """
    Gathers raw candidates for a hub from two sources concurrently. Either source
    failing (or being unconfigured) only empties its own contribution.
    """

    def __init__(
        self,
        llm: Any | None = None,
        places: GooglePlacesClient | None = None,
        max_nearby_types: int = MAX_NEARBY_TYPES,
        llm_timeout: float = LLM_TIMEOUT_SECONDS,
        llm_attempts: int = 2,
        retry_delay: float = 1.0,
        llm_unavailable_reason: str = "",
    ) -> None:
        self.llm = llm
        self.places = places
        self.max_nearby_types = max_nearby_types
        self.llm_timeout = llm_timeout
        self.llm_attempts = max(1, llm_attempts)
        self.retry_delay = retry_delay
        self._llm_unavailable_reason = llm_unavailable_reason or (
            "" if llm is not None else "No chat model configured"
        )
        self._cache: BoundedCache[str, list[Candidate]] = BoundedCache()
        self._prompt = ChatPromptTemplate.from_messages(
            [("system", SYSTEM), ("user", "Input:\n{payload}\n\nReturn JSON only.")]
        )

    # ---- AI suggestions ----
    async def _invoke_llm(self, payload: dict[str, Any]) -> str:
        run = self._prompt | self.llm
        last_error: Exception | None = None
        for attempt in range(1, self.llm_attempts + 1):
            t0 = time.time()
            try:
                msg = await asyncio.wait_for(
                    run.ainvoke({"payload": json.dumps(payload)}), timeout=self.llm_timeout
                )
                logger.info(
                    "[%s] LLM call succeeded in %.0fms", AGENT_LABEL, (time.time() - t0) * 1000
                )
                return msg if isinstance(msg, str) else str(getattr(msg, "content", msg))
            except asyncio.TimeoutError as e:
                last_error = e
                logger.warning(
                    "[%s] LLM call timed out after %ss (attempt %d/%d)",
                    AGENT_LABEL,
                    self.llm_timeout,
                    attempt,
                    self.llm_attempts,
                )
            except Exception as e:  # provider SDKs raise their own error types
                last_error = e
                logger.warning(
                    "[%s] LLM call failed (attempt %d/%d): %s: %s",
                    AGENT_LABEL,
                    attempt,
                    self.llm_attempts,
                    type(e).__name__,
                    e,
                )
            if attempt < self.llm_attempts:
                await asyncio.sleep(self.retry_delay * (2 ** (attempt - 1)))
        raise UpstreamUnavailable(f"LLM unavailable after {self.llm_attempts} attempts: {last_error}")

    async def ai_candidates(self, hub: Hub, profile: GroupPreferenceProfile) -> list[Candidate]:
        if self.llm is None:
            logger.info("[%s] AI suggestions skipped: %s", AGENT_LABEL, self._llm_unavailable_reason)
            return []
        payload = {
            "mood_tags": profile.mood_tags,
            "budget_tier": profile.budget_tier,
            "hub": {"name": hub.name, "lat": round(hub.lat, 5), "lng": round(hub.lng, 5)},
            "member_locations": profile.member_locations,
        }
        cache_key = json.dumps(payload, sort_keys=True)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return list(cached)

        try:
            text = await self._invoke_llm(payload)
            locations = parse_ai_locations(str(text))
        except UpstreamParseError as e:
            logger.warning("[%s] could not parse AI suggestions for %s: %s", AGENT_LABEL, hub.id, e)
            return []
        except UpstreamUnavailable as e:
            logger.warning("[%s] %s", AGENT_LABEL, e)
            return []

        candidates = candidates_from_locations(locations)
        self._cache.put(cache_key, candidates)
        logger.info("[%s] %d AI candidates for %s", AGENT_LABEL, len(candidates), hub.id)
        return list(candidates)

    # ---- Nearby places ----
    async def _nearby_for_type(self, hub: Hub, place_type: str) -> list[Candidate]:
        try:
            return await self.places.nearby_search(hub.lat, hub.lng, hub.radius_meters, place_type)
        except EnrichmentFailure as e:
            logger.warning("[%s] nearby %s around %s failed: %s", AGENT_LABEL, place_type, hub.id, e)
            return []

    async def nearby_candidates(
        self, hub: Hub, profile: GroupPreferenceProfile
    ) -> list[Candidate]:
        if self.places is None or not self.places.configured:
            logger.info("[%s] nearby search skipped: GOOGLE_MAPS_API_KEY is not configured", AGENT_LABEL)
            return []
        types = place_types_for(profile.mood_tags, self.max_nearby_types)
        batches = await asyncio.gather(*(self._nearby_for_type(hub, t) for t in types))
        found = merge_candidates([c for batch in batches for c in batch], [])
        logger.info("[%s] %d nearby candidates for %s (%s)", AGENT_LABEL, len(found), hub.id, types)
        return found

    # ---- Public API ----
    async def fetch(self, hub: Hub, profile: GroupPreferenceProfile) -> list[Candidate]:
        results = await asyncio.gather(
            self.nearby_candidates(hub, profile),
            self.ai_candidates(hub, profile),
            return_exceptions=True,
        )
        sources: list[list[Candidate]] = []
        for name, result in zip(("places", "ai"), results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                logger.error("[%s] %s source crashed for %s: %r", AGENT_LABEL, name, hub.id, result)
                sources.append([])
            else:
                sources.append(result)
        return merge_candidates(sources[0], sources[1])


__all__ = [
    "AILocation",
    "CandidateSource",
    "candidates_from_locations",
    "extract_json_object",
    "merge_candidates",
    "parse_ai_locations",
]
