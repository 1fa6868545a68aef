from __future__ import annotations

import math
from typing import Dict, List, Sequence

from .constants import BBOX_PAD_DEG, EARTH_RADIUS_M, NEAR_ROUTE_BUFFER_M, STEP_HAZARD_RADIUS_M
from .models import DirectionStep, GeoPoint, Hazard, StepWithHazards


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in metres."""
    lat1 = math.radians(a.lat)
    lat2 = math.radians(b.lat)
    dlat = math.radians(b.lat - a.lat)
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    h = min(1.0, h)  # rounding can exceed 1 near antipodal points
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def is_near_route(point: GeoPoint, geometry: Sequence[GeoPoint], buffer_m: float = NEAR_ROUTE_BUFFER_M) -> bool:
    """True when any route vertex lies within buffer_m of point.

    Vertex-only test: dense polylines (as returned by routing services) are assumed.
    """
    return any(haversine_m(point, p) <= buffer_m for p in geometry)


def route_bbox(geometry: Sequence[GeoPoint], pad_deg: float = BBOX_PAD_DEG) -> Dict[str, float]:
    """Padded bounding box (south/west/north/east) for an Overpass query."""
    if not geometry:
        raise ValueError("route_bbox needs at least one point.")
    lats = [p.lat for p in geometry]
    lngs = [p.lng for p in geometry]
    return {
        "south": min(lats) - pad_deg,
        "west": min(lngs) - pad_deg,
        "north": max(lats) + pad_deg,
        "east": max(lngs) + pad_deg,
    }


def hazards_near_route(
    hazards: Sequence[Hazard],
    geometry: Sequence[GeoPoint],
    buffer_m: float = NEAR_ROUTE_BUFFER_M,
) -> List[Hazard]:
    """Keep hazards within buffer_m of the route. Unlocated hazards, or routes without
    geometry, are kept as given."""
    if not geometry:
        return list(hazards)
    return [h for h in hazards if h.location is None or is_near_route(h.location, geometry, buffer_m)]


def assign_hazards_to_steps(
    steps: Sequence[DirectionStep],
    hazards: Sequence[Hazard],
    radius_m: float = STEP_HAZARD_RADIUS_M,
) -> List[StepWithHazards]:
    """Attach each located hazard to every direction step whose manoeuvre point is within radius_m."""
    out: List[StepWithHazards] = []
    for step in steps:
        near = tuple(
            h for h in hazards if h.location is not None and haversine_m(h.location, step.location) < radius_m
        )
        out.append(StepWithHazards(step=step, hazards=near))
    return out
