from __future__ import annotations

import math
from typing import Optional

from .models import (
    Hazard,
    HazardSeverity,
    LoadSpecifications,
    ScoringConfig,
    VehicleSpecifications,
)

DEFAULT_SCORING = ScoringConfig()


def _finite(x: Optional[float]) -> bool:
    return x is not None and math.isfinite(float(x))


def clearance_severity(clearance_m: float, vehicle_height_m: float, buffer_m: float) -> HazardSeverity:
    """unsafe if the vehicle is taller than the clearance, caution inside the buffer, else safe."""
    margin = float(clearance_m) - float(vehicle_height_m)
    if margin < 0:
        return HazardSeverity.UNSAFE
    if margin < buffer_m:
        return HazardSeverity.CAUTION
    return HazardSeverity.SAFE


def weight_severity(weight_limit_t: float, load_weight_t: float, caution_fraction: float) -> HazardSeverity:
    if load_weight_t > weight_limit_t:
        return HazardSeverity.UNSAFE
    if load_weight_t > weight_limit_t * caution_fraction:
        return HazardSeverity.CAUTION
    return HazardSeverity.SAFE


def width_severity(width_limit_m: float, load_width_m: float, buffer_m: float) -> HazardSeverity:
    margin = float(width_limit_m) - float(load_width_m)
    if margin < 0:
        return HazardSeverity.UNSAFE
    if margin < buffer_m:
        return HazardSeverity.CAUTION
    return HazardSeverity.SAFE


def classify_hazard(
    hazard: Hazard,
    load: LoadSpecifications,
    vehicle: VehicleSpecifications,
    config: Optional[ScoringConfig] = None,
) -> HazardSeverity:
    """
    Detector-level severity for a freshly detected hazard.

    Checked in order: clearance vs loaded vehicle height, weight limit vs load
    weight, width limit vs load width. Hazards with none of these limits (level
    crossings, power lines without a height tag, ...) default to caution.
    """
    cfg = config or DEFAULT_SCORING
    if _finite(hazard.clearance_m):
        return clearance_severity(hazard.clearance_m, vehicle.total_height_m, cfg.clearance_buffer_m)
    if _finite(hazard.weight_limit_t):
        return weight_severity(hazard.weight_limit_t, load.weight_t, cfg.weight_caution_fraction)
    if _finite(hazard.width_limit_m):
        return width_severity(hazard.width_limit_m, load.width_m, cfg.width_buffer_m)
    return HazardSeverity.CAUTION


def reclassify_for_vehicle(hazard: Hazard, vehicle_height_m: float, config: Optional[ScoringConfig] = None) -> Hazard:
    """
    Re-check a height-relevant hazard that has a clearance against the vehicle
    height. Every other hazard keeps the severity its detector assigned.
    """
    cfg = config or DEFAULT_SCORING
    if not hazard.type.height_relevant or not _finite(hazard.clearance_m):
        return hazard
    sev = clearance_severity(hazard.clearance_m, vehicle_height_m, cfg.clearance_buffer_m)
    if sev == hazard.severity:
        return hazard
    return hazard.model_copy(update={"severity": sev})
