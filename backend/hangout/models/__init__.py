"""
Models package for group, preference, itinerary and vote records
"""

from hangout.models.common import APIResponse, GeoPoint
from hangout.models.group import Group
from hangout.models.itinerary import (
    Candidate,
    EnrichmentStatus,
    GeneratedItinerary,
    GenerationResult,
    Hub,
    ItemEnrichment,
    ItineraryItem,
    ScoreBreakdown,
)
from hangout.models.preference import GroupPreferenceProfile, MemberPreference, ResolvedMember
from hangout.models.vote import FinalizationResult, Vote

__all__ = [
    "APIResponse",
    "GeoPoint",
    "Group",
    "Candidate",
    "EnrichmentStatus",
    "GeneratedItinerary",
    "GenerationResult",
    "Hub",
    "ItemEnrichment",
    "ItineraryItem",
    "ScoreBreakdown",
    "GroupPreferenceProfile",
    "MemberPreference",
    "ResolvedMember",
    "FinalizationResult",
    "Vote",
]
