"""
Recommendations Router
Generate, read and clear a group's itinerary set
"""

from fastapi import APIRouter, Depends, HTTPException

from hangout.agents.orchestrator_agent import RecommendationOrchestrator
from hangout.core.errors import HangoutError
from hangout.models import APIResponse
from hangout.router.deps import get_orchestrator, raise_http

router = APIRouter(prefix="/groups", tags=["Recommendations"])


@router.post("/{group_id}/recommendations", response_model=APIResponse)
async def generate_recommendations(
    group_id: str, orchestrator: RecommendationOrchestrator = Depends(get_orchestrator)
):
    """
    Run the planner for the group and replace its itinerary set.
    Existing votes are cleared together with the old set.
    """
    try:
        result = await orchestrator.generate(group_id)
    except HangoutError as e:
        raise_http(e, "recommendations")

    if result.status == "cannot_generate":
        raise HTTPException(
            status_code=422,
            detail=result.warnings[0] if result.warnings else "Cannot generate recommendations",
        )
    return APIResponse(code=0, msg="ok", data=result.model_dump(mode="json"))


@router.get("/{group_id}/recommendations", response_model=APIResponse)
async def get_recommendations(
    group_id: str, orchestrator: RecommendationOrchestrator = Depends(get_orchestrator)
):
    try:
        itineraries = await orchestrator.get_recommendations(group_id)
    except HangoutError as e:
        raise_http(e, "recommendations")
    if itineraries is None:
        raise HTTPException(status_code=404, detail="No recommendations generated yet")
    return APIResponse(
        code=0, msg="ok", data={"itineraries": [it.model_dump(mode="json") for it in itineraries]}
    )


@router.delete("/{group_id}/recommendations", response_model=APIResponse)
async def clear_recommendations(
    group_id: str, orchestrator: RecommendationOrchestrator = Depends(get_orchestrator)
):
    try:
        await orchestrator.clear_recommendations(group_id)
    except HangoutError as e:
        raise_http(e, "recommendations")
    return APIResponse(code=0, msg="ok", data={"group_id": group_id, "cleared": True})
