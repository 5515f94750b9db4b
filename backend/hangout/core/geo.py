"""
Small geographic helpers shared by the hub selector and the scorer.
"""

import math

from hangout.models.common import GeoPoint

EARTH_RADIUS_KM = 6371.0088


def haversine_km(a_lat: float, a_lng: float, b_lat: float, b_lng: float) -> float:
    """Great-circle distance in kilometres."""
    phi1, phi2 = math.radians(a_lat), math.radians(b_lat)
    dphi = math.radians(b_lat - a_lat)
    dlmb = math.radians(b_lng - a_lng)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def centroid(points: list[GeoPoint]) -> GeoPoint:
    """Arithmetic mean of the points; always inside their convex hull."""
    if not points:
        raise ValueError("centroid of an empty point set")
    lat = sum(p.lat for p in points) / len(points)
    lng = sum(p.lng for p in points) / len(points)
    return GeoPoint(lat=lat, lng=lng)


def travel_minutes(distance_km: float, speed_kmh: float) -> int:
    if speed_kmh <= 0:
        raise ValueError("speed must be positive")
    return int(math.ceil(distance_km / speed_kmh * 60))
