"""
Member preference and the derived group profile
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hangout.models.common import GeoPoint


class MemberPreference(BaseModel):
    """
    One member's input for a group. Re-submitting overwrites by member_id.
    """

    group_id: str = Field(..., description="Owning group id")
    member_id: str = Field(..., description="Member id, unique within the group")
    name: str | None = Field(default=None, description="Display name")
    home_location: str = Field(default="", description="Free-text home location")
    coordinates: GeoPoint | None = Field(
        default=None, description="Exact coordinates; skips geocoding when present"
    )
    budget: float = Field(default=0.0, ge=0, description="Budget in currency units")
    mood_tags: list[str] = Field(default_factory=list, description="e.g. romantic, foodie, chill")
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("mood_tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            value = value.split(",")
        seen: list[str] = []
        for tag in value:
            key = str(tag or "").strip().lower()
            if key and key not in seen:
                seen.append(key)
        return seen

    @field_validator("home_location", mode="before")
    @classmethod
    def _strip_location(cls, value):
        return str(value or "").strip()

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "group_id": "5f1c0b7e9d8a4c2e8b1a3f6d7e9c0a12",
                "member_id": "user_alice",
                "name": "Alice",
                "home_location": "Bandra West, Mumbai",
                "budget": 800,
                "mood_tags": ["foodie", "chill"],
            }
        }
    )


class ResolvedMember(BaseModel):
    member_id: str
    home_location: str
    point: GeoPoint


class GroupPreferenceProfile(BaseModel):
    """
    Aggregate of all member preferences for a group. Derived, never persisted.
    """

    group_id: str
    member_count: int
    resolved_members: list[ResolvedMember] = Field(default_factory=list)
    unresolved_member_ids: list[str] = Field(default_factory=list)
    centroid: GeoPoint
    mean_budget: float = 0.0
    budget_tier: int = Field(default=2, ge=1, le=4, description="1=cheap ... 4=luxury")
    mood_tags: list[str] = Field(default_factory=list, description="Union, most frequent first")
    tag_frequency: dict[str, int] = Field(default_factory=dict)
    member_locations: list[str] = Field(default_factory=list)
