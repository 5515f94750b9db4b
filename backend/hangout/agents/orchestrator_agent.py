# orchestrator_agent.py - Recommendation pipeline for a group, wired as a LangGraph
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any

from langchain_core.messages import AIMessage
from langgraph.graph import END, StateGraph

from hangout.agents.agent_state import PlanningState
from hangout.agents.candidate_source import CandidateSource
from hangout.agents.enrichment_pipeline import EnrichmentPipeline
from hangout.agents.hub_selector import HubSelector
from hangout.agents.itinerary_scorer import ItineraryScorer
from hangout.agents.preference_agent import PreferenceAggregator
from hangout.core.errors import CannotGenerateRecommendations, GroupNotFound, InputError
from hangout.db.store import GroupStore, with_store_retry
from hangout.models import GeneratedItinerary, GenerationResult, MemberPreference

AGENT_LABEL = "orchestrator"

logger = logging.getLogger(__name__)


class RecommendationOrchestrator:
    """
    aggregate -> select_hubs -> fetch_candidates -> build_itineraries -> enrich

    Ends right after aggregation when no member location resolves. Every
    collaborator is injected, so one instance serves one app (or one test).
    """

    def __init__(
        self,
        store: GroupStore,
        aggregator: PreferenceAggregator,
        hub_selector: HubSelector,
        candidate_source: CandidateSource,
        scorer: ItineraryScorer,
        enrichment: EnrichmentPipeline,
    ) -> None:
        self.store = store
        self.aggregator = aggregator
        self.hub_selector = hub_selector
        self.candidate_source = candidate_source
        self.scorer = scorer
        self.enrichment = enrichment
        self.app = self._build_graph()

    # ---- Nodes ----
    async def _aggregate(self, state: PlanningState) -> dict[str, Any]:
        group_id = state["group_id"]
        try:
            profile = await self.aggregator.aggregate(group_id, state.get("members") or [])
        except CannotGenerateRecommendations as e:
            logger.warning("[%s] %s: %s", AGENT_LABEL, group_id, e)
            return {
                "profile": None,
                "status": "cannot_generate",
                "warnings": [str(e)],
                "insights": ["Ask members to enter a more specific home location"],
                "messages": [AIMessage(content=f"[{AGENT_LABEL}] Cannot generate for {group_id}.")],
            }
        warnings = [
            f"Could not locate member {mid}; they were left out of the midpoint"
            for mid in profile.unresolved_member_ids
        ]
        return {"profile": profile, "warnings": warnings}

    def _route_after_aggregate(self, state: PlanningState) -> str:
        return "end" if state.get("status") == "cannot_generate" else "select_hubs"

    async def _select_hubs(self, state: PlanningState) -> dict[str, Any]:
        hubs = await self.hub_selector.select(state["profile"])
        return {"hubs": hubs}

    async def _fetch_candidates(self, state: PlanningState) -> dict[str, Any]:
        profile = state["profile"]
        hubs = state.get("hubs") or []
        batches = await asyncio.gather(*(self.candidate_source.fetch(h, profile) for h in hubs))
        candidates = {hub.id: batch for hub, batch in zip(hubs, batches)}
        insights: list[str] = []
        if not any(candidates.values()):
            insights.append("No places found near any hub; try broader mood tags")
        return {"candidates": candidates, "insights": insights}

    async def _build_itineraries(self, state: PlanningState) -> dict[str, Any]:
        profile = state["profile"]
        hubs = state.get("hubs") or []
        candidates = state.get("candidates") or {}
        built: list[GeneratedItinerary] = []
        for hub in hubs:
            built.extend(self.scorer.build_itineraries(hub, candidates.get(hub.id, []), profile))
        itineraries = self.scorer.assemble(built, hubs, profile)
        return {"itineraries": itineraries}

    async def _enrich(self, state: PlanningState) -> dict[str, Any]:
        itineraries = await self.enrichment.enrich(
            state.get("itineraries") or [], state.get("hubs") or []
        )
        status = "ok" if itineraries else "no_itineraries"
        return {
            "itineraries": itineraries,
            "status": status,
            "messages": [
                AIMessage(
                    content=f"[{AGENT_LABEL}] Completed for group {state['group_id']}. "
                    f"Generated {len(itineraries)} itineraries."
                )
            ],
        }

    # ---- Graph ----
    def _build_graph(self):
        g = StateGraph(PlanningState)
        g.add_node("aggregate", self._aggregate)
        g.add_node("select_hubs", self._select_hubs)
        g.add_node("fetch_candidates", self._fetch_candidates)
        g.add_node("build_itineraries", self._build_itineraries)
        g.add_node("enrich", self._enrich)

        g.set_entry_point("aggregate")
        g.add_conditional_edges(
            "aggregate",
            self._route_after_aggregate,
            {"select_hubs": "select_hubs", "end": END},
        )
        g.add_edge("select_hubs", "fetch_candidates")
        g.add_edge("fetch_candidates", "build_itineraries")
        g.add_edge("build_itineraries", "enrich")
        g.add_edge("enrich", END)
        return g.compile()

    # ---- Public API ----
    async def run(self, group_id: str, members: list[MemberPreference]) -> GenerationResult:
        """Run the pipeline without touching the store."""
        if not members:
            raise InputError(f"Group {group_id} has no member preferences")
        t0 = time.time()
        base: PlanningState = {
            "messages": [],
            "group_id": group_id,
            "members": members,
            "profile": None,
            "hubs": [],
            "candidates": {},
            "itineraries": [],
            "status": "",
            "insights": [],
            "warnings": [],
            "metrics": {},
        }
        result = await self.app.ainvoke(base)

        itineraries = result.get("itineraries") or []
        candidates = result.get("candidates") or {}
        metrics = {
            "latency_ms": int((time.time() - t0) * 1000),
            "members": len(members),
            "hubs": len(result.get("hubs") or []),
            "candidates": sum(len(v) for v in candidates.values()),
            "itineraries": len(itineraries),
        }
        logger.info("[%s] group %s -> %s %s", AGENT_LABEL, group_id, result.get("status"), metrics)
        return GenerationResult(
            group_id=group_id,
            status=result.get("status") or "no_itineraries",
            itineraries=itineraries,
            hubs=result.get("hubs") or [],
            insights=result.get("insights") or [],
            warnings=result.get("warnings") or [],
            metrics=metrics,
        )

    async def generate(self, group_id: str) -> GenerationResult:
        """
        Load the group's preferences, run the pipeline and replace the stored
        itinerary set. Votes for the old set are cleared first, then the new set
        overwrites the old one in a single upsert, so a failed save still leaves
        the previous set readable. A run that cannot generate changes nothing.
        """
        group = await with_store_retry(lambda: self.store.get_group_by_id(group_id), label=AGENT_LABEL)
        if group is None:
            raise GroupNotFound(f"Unknown group: {group_id}")
        members = await with_store_retry(lambda: self.store.list_members(group_id), label=AGENT_LABEL)

        result = await self.run(group_id, members)
        if result.status == "cannot_generate":
            return result

        await with_store_retry(lambda: self.store.clear_votes(group_id), label=AGENT_LABEL)
        await with_store_retry(
            lambda: self.store.save_itinerary_set(group_id, result.itineraries), label=AGENT_LABEL
        )
        return result

    async def get_recommendations(self, group_id: str) -> list[GeneratedItinerary] | None:
        return await with_store_retry(
            lambda: self.store.get_itinerary_set(group_id), label=AGENT_LABEL
        )

    async def clear_recommendations(self, group_id: str) -> None:
        await with_store_retry(lambda: self.store.clear_itinerary_set(group_id), label=AGENT_LABEL)
        logger.info("[%s] cleared recommendations and votes for %s", AGENT_LABEL, group_id)


__all__ = ["RecommendationOrchestrator"]
