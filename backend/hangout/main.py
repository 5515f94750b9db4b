import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hangout.agents.candidate_source import CandidateSource
from hangout.agents.enrichment_pipeline import EnrichmentPipeline
from hangout.agents.hub_selector import HubSelector
from hangout.agents.itinerary_scorer import ItineraryScorer
from hangout.agents.orchestrator_agent import RecommendationOrchestrator
from hangout.agents.preference_agent import PreferenceAggregator
from hangout.agents.voting_engine import VotingEngine
from hangout.core.config import (
    APP_NAME,
    APP_VERSION,
    CORS_ORIGINS,
    LOG_LEVEL,
    MONGODB_URI,
    PLACES_TIMEOUT_SECONDS,
    SERVER_HOST,
    SERVER_PORT,
)
from hangout.db.database import close_database_connection, get_database, init_indexes, test_connection
from hangout.db.memory import InMemoryGroupStore
from hangout.db.store import GroupStore, MongoGroupStore
from hangout.router.groups import router as groups_router
from hangout.router.recommendations import router as recommendations_router
from hangout.router.system import router as system_router
from hangout.router.votes import router as votes_router
from hangout.services.geocoding import NominatimGeocoder
from hangout.services.llm import build_chat_model
from hangout.services.places import GooglePlacesClient

logger = logging.getLogger(__name__)


def setup_logging(level: str = LOG_LEVEL) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def build_orchestrator(store: GroupStore, client: httpx.AsyncClient | None) -> RecommendationOrchestrator:
    """Wire the planner against the live geocoding, places and chat model services."""
    geocoder = NominatimGeocoder(client=client)
    places = GooglePlacesClient(client=client)
    llm, reason = build_chat_model()
    return RecommendationOrchestrator(
        store=store,
        aggregator=PreferenceAggregator(geocoder),
        hub_selector=HubSelector(geocoder),
        candidate_source=CandidateSource(llm=llm, places=places, llm_unavailable_reason=reason),
        scorer=ItineraryScorer(),
        enrichment=EnrichmentPipeline(places),
    )


def create_app(
    store: GroupStore | None = None,
    orchestrator: RecommendationOrchestrator | None = None,
) -> FastAPI:
    """
    Build the API. Without an injected store the lifespan connects to MongoDB
    when MONGODB_URI is set and falls back to the in-memory store otherwise.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging()
        logger.info("[startup] starting %s %s", APP_NAME, APP_VERSION)
        client = httpx.AsyncClient(timeout=PLACES_TIMEOUT_SECONDS)
        using_mongo = False

        active_store = store
        if active_store is None:
            if MONGODB_URI:
                using_mongo = True
                await test_connection()
                await init_indexes()
                active_store = MongoGroupStore(get_database())
            else:
                logger.warning("[startup] MONGODB_URI not set; using the in-memory store")
                active_store = InMemoryGroupStore()

        app.state.store = active_store
        app.state.http_client = client
        app.state.orchestrator = orchestrator or build_orchestrator(active_store, client)
        app.state.voting = VotingEngine(active_store)
        try:
            yield
        finally:
            logger.info("[shutdown] shutting down %s", APP_NAME)
            await client.aclose()
            if using_mongo:
                await close_database_connection()

    app = FastAPI(title=APP_NAME, version=APP_VERSION, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=CORS_ORIGINS != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Mount routers
    app.include_router(system_router)
    app.include_router(groups_router)
    app.include_router(recommendations_router)
    app.include_router(votes_router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=SERVER_HOST, port=SERVER_PORT)
