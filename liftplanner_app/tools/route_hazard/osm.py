from __future__ import annotations

import re
from typing import Any, Dict, List, Optional

from loguru import logger

from .classification import classify_hazard
from .constants import FT_TO_M, IN_TO_M
from .models import (
    GeoPoint,
    Hazard,
    HazardType,
    LoadSpecifications,
    ScoringConfig,
    VehicleSpecifications,
)

# 4.5 | 4.5 m | 4,5m
_METRIC_RE = re.compile(r"^\s*(\d+(?:[.,]\d+)?)\s*(?:m|t)?\s*$", re.IGNORECASE)
# 14'6" | 14 ft 6 in | 14'
_IMPERIAL_RE = re.compile(
    r"^\s*(\d+(?:\.\d+)?)\s*(?:'|ft)\s*(?:(\d+(?:\.\d+)?)\s*(?:\"|in)?)?\s*$", re.IGNORECASE
)


def parse_osm_measure(raw: Any) -> Optional[float]:
    """
    Parse an OSM maxheight/maxwidth/maxweight value to metres (or tonnes).

    Returns None for non-numeric values such as "default", "none" or "below_default".
    """
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    s = str(raw).strip()
    m = _METRIC_RE.match(s)
    if m:
        return float(m.group(1).replace(",", "."))
    m = _IMPERIAL_RE.match(s)
    if m:
        feet = float(m.group(1))
        inches = float(m.group(2)) if m.group(2) else 0.0
        return feet * FT_TO_M + inches * IN_TO_M
    return None


def _location(element: Dict[str, Any]) -> Optional[GeoPoint]:
    src = element.get("center") or element
    lat, lon = src.get("lat"), src.get("lon")
    if lat is None or lon is None:
        return None
    return GeoPoint(lat=float(lat), lng=float(lon))


def hazard_from_osm_element(
    element: Dict[str, Any],
    load: LoadSpecifications,
    vehicle: VehicleSpecifications,
    config: Optional[ScoringConfig] = None,
) -> Optional[Hazard]:
    """
    Convert one Overpass element into a classified Hazard.

    Tag precedence: maxheight, maxweight, maxwidth, railway=level_crossing,
    power=line. Elements with none of these return None.
    """
    tags = element.get("tags") or {}
    osm_id = element.get("id")
    base: Dict[str, Any] = {
        "id": f"osm-{osm_id}" if osm_id is not None else None,
        "osm_id": str(osm_id) if osm_id is not None else None,
        "location": _location(element),
    }

    height = parse_osm_measure(tags.get("maxheight"))
    weight = parse_osm_measure(tags.get("maxweight"))
    width = parse_osm_measure(tags.get("maxwidth"))

    if height is not None:
        is_tunnel = tags.get("tunnel") == "yes"
        fields = {
            "type": HazardType.TUNNEL if is_tunnel else HazardType.LOW_BRIDGE,
            "name": tags.get("name") or ("Tunnel" if is_tunnel else "Bridge"),
            "clearance_m": height,
            "description": f"Height restriction: {height:g}m",
        }
    elif weight is not None:
        fields = {
            "type": HazardType.WEIGHT_RESTRICTION,
            "name": tags.get("name") or "Weight Restricted Road",
            "weight_limit_t": weight,
            "description": f"Weight limit: {weight:g}t",
        }
    elif width is not None:
        fields = {
            "type": HazardType.WIDTH_RESTRICTION,
            "name": tags.get("name") or "Width Restriction",
            "width_limit_m": width,
            "description": f"Width limit: {width:g}m",
        }
    elif tags.get("railway") == "level_crossing":
        fields = {
            "type": HazardType.LEVEL_CROSSING,
            "name": "Railway Level Crossing",
            "description": "Slow down - railway crossing ahead",
        }
    elif tags.get("power") == "line":
        fields = {
            "type": HazardType.OVERHEAD_LINES,
            "name": "Overhead Power Lines",
            "description": "Caution: overhead power lines",
        }
    else:
        return None

    hazard = Hazard(**base, **fields)
    return hazard.model_copy(update={"severity": classify_hazard(hazard, load, vehicle, config)})


def hazards_from_osm(
    elements: List[Dict[str, Any]],
    load: LoadSpecifications,
    vehicle: VehicleSpecifications,
    config: Optional[ScoringConfig] = None,
) -> List[Hazard]:
    out: List[Hazard] = []
    skipped = 0
    for el in elements:
        h = hazard_from_osm_element(el, load, vehicle, config)
        if h is None:
            skipped += 1
            continue
        out.append(h)
    if skipped:
        logger.debug(f"Skipped {skipped} OSM element(s) without hazard tags")
    return out
