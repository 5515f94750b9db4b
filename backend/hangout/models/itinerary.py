"""
Hubs, candidates and generated itineraries
"""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

Archetype = Literal["foodie", "adventure", "relaxed", "balanced", "budget", "premium"]
HubKind = Literal["centroid", "cluster", "poi"]


class Hub(BaseModel):
    """A plausible meeting area; each hub seeds its own itineraries."""

    id: str
    name: str
    lat: float
    lng: float
    kind: HubKind = "centroid"
    score: float = 1.0
    radius_meters: int = Field(default=5000, description="Search radius around the hub")


class ScoreBreakdown(BaseModel):
    total: float = 0.0
    distance: float = 0.0
    tag_match: float = 0.0
    rating: float = 0.0
    budget: float = 0.0


class Candidate(BaseModel):
    """
    Raw place/activity from a candidate source. Lives only while scoring.
    AI suggestions have no coordinates.
    """

    place_id: str
    name: str
    address: str = ""
    lat: float | None = None
    lng: float | None = None
    categories: list[str] = Field(default_factory=list)
    rating: float | None = None
    rating_count: int | None = None
    price_level: int | None = Field(default=None, ge=0, le=4)
    photos: list[str] = Field(default_factory=list)
    source: Literal["places", "ai", "hub"] = "places"
    description: str | None = None


class EnrichmentStatus(str, Enum):
    PENDING = "pending"
    ENRICHED = "enriched"
    PLACEHOLDER = "placeholder"
    HUB_FALLBACK = "hub_fallback"


class ItemEnrichment(BaseModel):
    """Live place details attached after ranking is final."""

    status: EnrichmentStatus = EnrichmentStatus.PENDING
    name: str | None = None
    address: str = ""
    rating: float | None = None
    photos: list[str] = Field(default_factory=list)
    price_level: int | None = None


class ItineraryItem(Candidate):
    item_id: str = Field(..., description="Unique within the owning itinerary")
    start_time: str | None = Field(default=None, description="HH:MM 24-hour, optional")
    duration_minutes: int = 90
    reason: str = ""
    scores: ScoreBreakdown = Field(default_factory=ScoreBreakdown)
    enrichment: ItemEnrichment = Field(default_factory=ItemEnrichment)


class GeneratedItinerary(BaseModel):
    """
    One (hub, archetype) plan. Immutable after generation except for item enrichment.
    """

    id: str
    hub_id: str
    hub_name: str = ""
    archetype: Archetype
    name: str
    items: list[ItineraryItem] = Field(default_factory=list)
    total_cost_estimate: float = 0.0
    total_travel_minutes: int = 0
    diversity_score: float = 0.0

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "gen-hub-midpoint-balanced",
                "hub_id": "hub-midpoint",
                "hub_name": "Fair Midpoint (Dadar)",
                "archetype": "balanced",
                "name": "Best Middle Choice (Dadar)",
                "items": [],
                "total_cost_estimate": 800,
                "total_travel_minutes": 24,
                "diversity_score": 1.0,
            }
        }
    )


class GenerationResult(BaseModel):
    """Outcome of one recommendation run."""

    group_id: str
    status: Literal["ok", "no_itineraries", "cannot_generate"] = "ok"
    itineraries: list[GeneratedItinerary] = Field(default_factory=list)
    hubs: list[Hub] = Field(default_factory=list)
    insights: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    metrics: dict = Field(default_factory=dict)
