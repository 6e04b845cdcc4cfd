"""Great-circle helpers for the nearby-reports search."""

from __future__ import annotations

import math

EARTH_RADIUS_KM = 6371.0088


def haversine_km(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlmb = math.radians(lng2 - lng1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


def bounding_box(lng: float, lat: float, radius_km: float) -> tuple[float, float, float, float]:
    """(min_lng, min_lat, max_lng, max_lat) enclosing the circle; used as a cheap SQL prefilter.

    Longitude is left unbounded when the circle reaches a pole and is not
    wrapped at the antimeridian.
    """
    angular = radius_km / EARTH_RADIUS_KM
    dlat = math.degrees(angular)
    min_lat, max_lat = max(-90.0, lat - dlat), min(90.0, lat + dlat)
    cos_lat = math.cos(math.radians(lat))
    if math.sin(angular) >= cos_lat:
        return -180.0, min_lat, 180.0, max_lat
    # widest point of the circle lies poleward of ``lat``, not on it
    dlng = math.degrees(math.asin(math.sin(angular) / cos_lat))
    return lng - dlng, min_lat, lng + dlng, max_lat
