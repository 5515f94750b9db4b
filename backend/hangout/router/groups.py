"""
Groups Router
Create / join groups and submit member preferences
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from hangout.core.errors import HangoutError
from hangout.db.store import GroupStore, with_store_retry
from hangout.models import APIResponse, GeoPoint, MemberPreference
from hangout.router.deps import get_store, raise_http

router = APIRouter(prefix="/groups", tags=["Groups"])

logger = logging.getLogger(__name__)


class CreateGroupRequest(BaseModel):
    name: str | None = Field(default=None, max_length=120)


class MemberPreferenceRequest(BaseModel):
    name: str | None = Field(default=None, description="Display name")
    home_location: str = Field(default="", description="Free-text home location")
    coordinates: GeoPoint | None = None
    budget: float = Field(default=0.0, ge=0)
    mood_tags: list[str] = Field(default_factory=list)


async def _require_group(store: GroupStore, group_id: str):
    group = await with_store_retry(lambda: store.get_group_by_id(group_id), label="groups")
    if group is None:
        raise HTTPException(status_code=404, detail="Group not found")
    return group


@router.post("", status_code=201, response_model=APIResponse)
async def create_group(body: CreateGroupRequest | None = None, store: GroupStore = Depends(get_store)):
    name = body.name if body else None
    try:
        group = await with_store_retry(lambda: store.create_group(name), label="groups")
    except HangoutError as e:
        raise_http(e, "groups")
    logger.info("[groups] created group %s (code %s)", group.id, group.code)
    return APIResponse(code=0, msg="ok", data=group.model_dump(mode="json"))


@router.get("/{code}", response_model=APIResponse)
async def get_group(code: str, store: GroupStore = Depends(get_store)):
    try:
        group = await with_store_retry(lambda: store.get_group(code), label="groups")
    except HangoutError as e:
        raise_http(e, "groups")
    if group is None:
        raise HTTPException(status_code=404, detail="Group not found")
    return APIResponse(code=0, msg="ok", data=group.model_dump(mode="json"))


@router.put("/{group_id}/members/{member_id}", response_model=APIResponse)
async def upsert_member(
    group_id: str,
    member_id: str,
    body: MemberPreferenceRequest,
    store: GroupStore = Depends(get_store),
):
    """
    Submit or overwrite a member's preference. The latest submission wins.
    """
    if not body.home_location and body.coordinates is None:
        raise HTTPException(status_code=422, detail="home_location or coordinates is required")
    try:
        await _require_group(store, group_id)
        pref = MemberPreference(group_id=group_id, member_id=member_id, **body.model_dump())
        saved = await with_store_retry(lambda: store.upsert_member(pref), label="groups")
    except HangoutError as e:
        raise_http(e, "groups")
    logger.info("[groups] preference saved for %s in %s, tags=%s", member_id, group_id, saved.mood_tags)
    return APIResponse(code=0, msg="ok", data=saved.model_dump(mode="json"))


@router.get("/{group_id}/members", response_model=APIResponse)
async def list_members(group_id: str, store: GroupStore = Depends(get_store)):
    try:
        await _require_group(store, group_id)
        members = await with_store_retry(lambda: store.list_members(group_id), label="groups")
    except HangoutError as e:
        raise_http(e, "groups")
    return APIResponse(
        code=0,
        msg="ok",
        data={"members": [m.model_dump(mode="json") for m in members], "count": len(members)},
    )
