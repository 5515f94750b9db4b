# enrichment_pipeline.py - Attaches live place details to ranked itineraries
from __future__ import annotations

import asyncio
import logging
import time
from typing import Protocol

from hangout.core.cache import BoundedCache
from hangout.core.errors import EnrichmentFailure
from hangout.models import (
    EnrichmentStatus,
    GeneratedItinerary,
    Hub,
    ItemEnrichment,
    ItineraryItem,
)
from hangout.services.places import PlaceLookup

AGENT_LABEL = "enrichment"

logger = logging.getLogger(__name__)

MAX_ITEM_PHOTOS = 2


class PlaceLookupService(Protocol):
    async def text_search(self, query: str) -> PlaceLookup | None: ...

    def photo_url(self, reference: str) -> str: ...


def _placeholder(item: ItineraryItem) -> ItemEnrichment:
    return ItemEnrichment(status=EnrichmentStatus.PLACEHOLDER, name=item.name)


class EnrichmentPipeline:
    """
    Runs after ranking is final, so it only ever fills `enrichment`: scores,
    order and place ids are untouched. One lookup failing never affects its
    siblings.

    Successful lookups are cached per query on this instance, size-capped.
    Each lookup runs as its own task and is awaited through `asyncio.shield`,
    so a cancelled caller leaves in-flight lookups running to completion and
    into the cache.
    """

    def __init__(self, places: PlaceLookupService | None) -> None:
        self.places = places
        self._cache: BoundedCache[str, PlaceLookup] = BoundedCache()
        self._inflight: dict[str, asyncio.Task] = {}

    async def _lookup(self, query: str) -> PlaceLookup | None:
        try:
            found = await self.places.text_search(query)
        except (EnrichmentFailure, asyncio.TimeoutError) as e:
            logger.warning("[%s] lookup failed for %r: %s", AGENT_LABEL, query, e)
            return None
        except Exception as e:  # any other lookup error still only costs this item
            logger.error(
                "[%s] unexpected lookup error for %r: %s: %s", AGENT_LABEL, query, type(e).__name__, e
            )
            return None
        if found is None:
            logger.info("[%s] no result for %r", AGENT_LABEL, query)
            return None
        self._cache.put(query, found)
        return found

    async def _resolve(self, query: str) -> PlaceLookup | None:
        cached = self._cache.get(query)
        if cached is not None:
            return cached
        if self.places is None:
            return None
        task = self._inflight.get(query)
        if task is None:
            task = asyncio.ensure_future(self._lookup(query))
            self._inflight[query] = task
            task.add_done_callback(lambda _t, q=query: self._inflight.pop(q, None))
        return await asyncio.shield(task)

    def _enriched(self, item: ItineraryItem, found: PlaceLookup) -> ItemEnrichment:
        refs = found.photo_references[:MAX_ITEM_PHOTOS]
        return ItemEnrichment(
            status=EnrichmentStatus.ENRICHED,
            name=found.name or item.name,
            address=found.formatted_address,
            rating=found.rating,
            photos=[self.places.photo_url(r) for r in refs],
            price_level=found.price_level,
        )

    @staticmethod
    def _hub_item(itinerary: GeneratedItinerary, hub: Hub | None, position: int) -> ItineraryItem:
        name = hub.name if hub else (itinerary.hub_name or itinerary.hub_id)
        return ItineraryItem(
            place_id=f"hub_{itinerary.hub_id}",
            name=name,
            address=name,
            lat=hub.lat if hub else None,
            lng=hub.lng if hub else None,
            categories=["meeting_point"],
            source="hub",
            item_id=f"item-hub_{itinerary.hub_id}-{position}",
            reason="Meet at the hub",
            enrichment=ItemEnrichment(
                status=EnrichmentStatus.HUB_FALLBACK, name=name, address=name
            ),
        )

    async def enrich(
        self, itineraries: list[GeneratedItinerary], hubs: list[Hub]
    ) -> list[GeneratedItinerary]:
        t0 = time.time()
        hubs_by_id = {h.id: h for h in hubs}

        # Work on copies; earlier hub fallbacks are rebuilt, not stacked
        work: list[GeneratedItinerary] = []
        for it in itineraries:
            copy = it.model_copy(deep=True)
            copy.items = [
                item
                for item in copy.items
                if item.enrichment.status != EnrichmentStatus.HUB_FALLBACK
            ]
            work.append(copy)

        jobs: list[tuple[int, int, str]] = []
        for i, it in enumerate(work):
            hub = hubs_by_id.get(it.hub_id)
            hub_name = hub.name if hub else it.hub_name
            for j, item in enumerate(it.items):
                jobs.append((i, j, f"{item.name} near {hub_name}"))

        results = await asyncio.gather(*(self._resolve(q) for _, _, q in jobs))

        for (i, j, _query), found in zip(jobs, results):
            item = work[i].items[j]
            item.enrichment = self._enriched(item, found) if found else _placeholder(item)

        enriched_count = 0
        for it in work:
            ok = [i for i in it.items if i.enrichment.status == EnrichmentStatus.ENRICHED]
            enriched_count += len(ok)
            if not ok:
                it.items.append(self._hub_item(it, hubs_by_id.get(it.hub_id), len(it.items)))

        logger.info(
            "[%s] %d/%d items enriched across %d itineraries (%.0fms)",
            AGENT_LABEL,
            enriched_count,
            len(jobs),
            len(work),
            (time.time() - t0) * 1000,
        )
        return work


__all__ = ["EnrichmentPipeline", "PlaceLookupService"]
