# agent_state.py - State shared by the recommendation graph nodes
import operator
from typing import Annotated, Any, TypedDict

from langgraph.graph.message import add_messages

from hangout.models import Candidate, GeneratedItinerary, GroupPreferenceProfile, Hub, MemberPreference


class PlanningState(TypedDict, total=False):
    """
    State for one recommendation run. Every node reads what earlier nodes
    produced and returns only the keys it changes.

    - members: stored preferences loaded before the run
    - profile: output of the preference aggregator
    - hubs: candidate meeting areas, centroid hub first
    - candidates: hub_id -> candidates from the candidate source
    - itineraries: ranked itineraries, enriched by the last node
    - status: ok | no_itineraries | cannot_generate
    """

    # ========== Core Communication Fields ==========
    messages: Annotated[list, add_messages]

    # ========== Identifiers ==========
    group_id: str

    # ========== Pipeline data ==========
    members: list[MemberPreference]
    profile: GroupPreferenceProfile | None
    hubs: list[Hub]
    candidates: dict[str, list[Candidate]]
    itineraries: list[GeneratedItinerary]

    # ========== Outcome ==========
    status: str
    insights: Annotated[list[str], operator.add]
    warnings: Annotated[list[str], operator.add]
    metrics: dict[str, Any]
