"""
Votes and the derived finalization result
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field


class Vote(BaseModel):
    """At most one live vote per (group_id, member_id)."""

    group_id: str
    member_id: str
    itinerary_idx: int = Field(..., ge=0)
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class FinalizationResult(BaseModel):
    """Recomputed on every vote; advisory, does not lock voting."""

    vote_counts: dict[int, int] = Field(default_factory=dict)
    finalized_idx: int | None = None
