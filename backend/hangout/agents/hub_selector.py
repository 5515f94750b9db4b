# hub_selector.py - Picks the meeting areas itineraries are built around
from __future__ import annotations

import logging

from hangout.agents.preference_agent import Geocoder
from hangout.core.config import CLUSTER_RADIUS_KM, MAX_HUBS, SPREAD_THRESHOLD_KM
from hangout.core.geo import centroid, haversine_km
from hangout.models import GroupPreferenceProfile, Hub, ResolvedMember

AGENT_LABEL = "hubs"

logger = logging.getLogger(__name__)

MIDPOINT_HUB_ID = "hub-midpoint"
MIDPOINT_RADIUS_M = 10000
LOCAL_RADIUS_M = 5000
MAX_POI_HUBS = 3
MAX_CLUSTER_HUBS = 2


def group_spread_km(profile: GroupPreferenceProfile) -> float:
    c = profile.centroid
    return max(
        (haversine_km(c.lat, c.lng, m.point.lat, m.point.lng) for m in profile.resolved_members),
        default=0.0,
    )


def cluster_members(members: list[ResolvedMember], radius_km: float) -> list[list[ResolvedMember]]:
    """
    Greedy proximity clustering: each unassigned member seeds a cluster that
    takes every other unassigned member within `radius_km` of the seed.
    """
    clusters: list[list[ResolvedMember]] = []
    assigned: set[str] = set()
    for seed in members:
        if seed.member_id in assigned:
            continue
        cluster = [seed]
        assigned.add(seed.member_id)
        for other in members:
            if other.member_id in assigned:
                continue
            d = haversine_km(seed.point.lat, seed.point.lng, other.point.lat, other.point.lng)
            if d <= radius_km:
                cluster.append(other)
                assigned.add(other.member_id)
        clusters.append(cluster)
    return clusters


class HubSelector:
    def __init__(
        self,
        geocoder: Geocoder | None = None,
        max_hubs: int = MAX_HUBS,
        spread_threshold_km: float = SPREAD_THRESHOLD_KM,
        cluster_radius_km: float = CLUSTER_RADIUS_KM,
    ) -> None:
        self.geocoder = geocoder
        self.max_hubs = max_hubs
        self.spread_threshold_km = spread_threshold_km
        self.cluster_radius_km = cluster_radius_km

    async def _area_name(self, lat: float, lng: float) -> str | None:
        if self.geocoder is None:
            return None
        return await self.geocoder.reverse(lat, lng)

    async def select(self, profile: GroupPreferenceProfile) -> list[Hub]:
        c = profile.centroid
        area = await self._area_name(c.lat, c.lng)
        hubs = [
            Hub(
                id=MIDPOINT_HUB_ID,
                name=f"Fair Midpoint ({area})" if area else "Fair Midpoint",
                lat=c.lat,
                lng=c.lng,
                kind="centroid",
                score=1.0,
                radius_meters=MIDPOINT_RADIUS_M,
            )
        ]

        spread = group_spread_km(profile)
        if spread <= self.spread_threshold_km:
            # Close-knit group: each member's own area is a plausible spot too
            seen: set[str] = set()
            for member in profile.resolved_members:
                key = member.home_location.strip().lower()
                if not key or key in seen:
                    continue
                seen.add(key)
                hubs.append(
                    Hub(
                        id=f"hub-poi-{len(seen)}",
                        name=f"Near {member.home_location}",
                        lat=member.point.lat,
                        lng=member.point.lng,
                        kind="poi",
                        score=0.8,
                        radius_meters=LOCAL_RADIUS_M,
                    )
                )
                if len(seen) >= MAX_POI_HUBS:
                    break
        else:
            total = len(profile.resolved_members)
            clusters = cluster_members(profile.resolved_members, self.cluster_radius_km)
            count = 0
            for cluster in clusters:
                if len(cluster) < 2 or len(cluster) == total:
                    continue
                count += 1
                point = centroid([m.point for m in cluster])
                cluster_area = await self._area_name(point.lat, point.lng)
                label = cluster_area or cluster[0].home_location or f"cluster {count}"
                hubs.append(
                    Hub(
                        id=f"hub-cluster-{count}",
                        name=f"{label} Cluster ({len(cluster)} members)",
                        lat=point.lat,
                        lng=point.lng,
                        kind="cluster",
                        score=0.9,
                        radius_meters=LOCAL_RADIUS_M,
                    )
                )
                if count >= MAX_CLUSTER_HUBS:
                    break

        hubs = hubs[: max(1, self.max_hubs)]
        logger.info(
            "[%s] spread %.1fkm -> %d hubs: %s",
            AGENT_LABEL,
            spread,
            len(hubs),
            [h.id for h in hubs],
        )
        return hubs


__all__ = ["HubSelector", "MIDPOINT_HUB_ID", "cluster_members", "group_spread_km"]
