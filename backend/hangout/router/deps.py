"""
Request-scoped access to the services created in the app lifespan, and the
error -> HTTP status mapping shared by all routers.
"""

import logging
from typing import NoReturn

from fastapi import HTTPException, Request

from hangout.agents.orchestrator_agent import RecommendationOrchestrator
from hangout.agents.voting_engine import VotingEngine
from hangout.core.errors import GroupNotFound, HangoutError, InputError, StoreError
from hangout.db.store import GroupStore

logger = logging.getLogger(__name__)


def get_store(request: Request) -> GroupStore:
    return request.app.state.store


def get_orchestrator(request: Request) -> RecommendationOrchestrator:
    return request.app.state.orchestrator


def get_voting(request: Request) -> VotingEngine:
    return request.app.state.voting


def raise_http(error: HangoutError, label: str) -> NoReturn:
    if isinstance(error, GroupNotFound):
        raise HTTPException(status_code=404, detail=str(error)) from error
    if isinstance(error, InputError):
        raise HTTPException(status_code=400, detail=str(error)) from error
    if isinstance(error, StoreError):
        logger.error("[%s] store unavailable: %s", label, error)
        raise HTTPException(status_code=503, detail="Storage temporarily unavailable") from error
    logger.error("[%s] unexpected planner error: %s", label, error)
    raise HTTPException(status_code=500, detail=str(error)) from error
