"""
Votes Router
One live vote per member; every response carries the current tally
"""

import logging

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from hangout.agents.voting_engine import VotingEngine
from hangout.core.errors import HangoutError
from hangout.models import APIResponse
from hangout.router.deps import get_voting, raise_http

router = APIRouter(prefix="/votes", tags=["Votes"])

logger = logging.getLogger(__name__)


class CastVoteRequest(BaseModel):
    group_id: str
    member_id: str
    itinerary_idx: int = Field(..., ge=0, description="Index into the group's itinerary set")


@router.post("", response_model=APIResponse)
async def cast_vote(body: CastVoteRequest, voting: VotingEngine = Depends(get_voting)):
    try:
        result = await voting.cast_vote(body.group_id, body.member_id, body.itinerary_idx)
    except HangoutError as e:
        raise_http(e, "votes")
    return APIResponse(code=0, msg="ok", data=result.model_dump(mode="json"))


@router.get("/{group_id}", response_model=APIResponse)
async def get_votes(
    group_id: str,
    member_id: str | None = Query(default=None, description="Also return this member's vote"),
    voting: VotingEngine = Depends(get_voting),
):
    try:
        result = await voting.tally(group_id)
        data = result.model_dump(mode="json")
        if member_id:
            data["member_vote"] = await voting.member_vote(group_id, member_id)
    except HangoutError as e:
        raise_http(e, "votes")
    return APIResponse(code=0, msg="ok", data=data)
