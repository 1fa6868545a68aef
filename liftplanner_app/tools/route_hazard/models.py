from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import (
    CLEARANCE_BUFFER_M,
    NEAR_ROUTE_BUFFER_M,
    PENALTY_CAUTION,
    PENALTY_SAFE,
    PENALTY_UNSAFE,
    STEP_HAZARD_RADIUS_M,
    WEIGHT_CAUTION_FRACTION,
    WIDTH_BUFFER_M,
)


class HazardType(str, Enum):
    LOW_BRIDGE = "low_bridge"
    WEIGHT_RESTRICTION = "weight_restriction"
    WIDTH_RESTRICTION = "width_restriction"
    HEIGHT_RESTRICTION = "height_restriction"
    SHARP_TURN = "sharp_turn"
    OVERHEAD_LINES = "overhead_lines"
    NARROW_ROAD = "narrow_road"
    LEVEL_CROSSING = "level_crossing"
    TUNNEL = "tunnel"

    @property
    def label(self) -> str:
        return HAZARD_LABELS[self]

    @property
    def height_relevant(self) -> bool:
        return self in HEIGHT_RELEVANT_TYPES


class HazardSeverity(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"
    UNSAFE = "unsafe"

    @property
    def rank(self) -> int:
        return SEVERITY_RANK[self]


SEVERITY_RANK: Dict[HazardSeverity, int] = {
    HazardSeverity.SAFE: 0,
    HazardSeverity.CAUTION: 1,
    HazardSeverity.UNSAFE: 2,
}

SEVERITY_COLORS: Dict[HazardSeverity, str] = {
    HazardSeverity.SAFE: "#22c55e",
    HazardSeverity.CAUTION: "#f59e0b",
    HazardSeverity.UNSAFE: "#ef4444",
}

HAZARD_LABELS: Dict[HazardType, str] = {
    HazardType.LOW_BRIDGE: "Low Bridge",
    HazardType.WEIGHT_RESTRICTION: "Weight Restriction",
    HazardType.WIDTH_RESTRICTION: "Width Restriction",
    HazardType.HEIGHT_RESTRICTION: "Height Restriction",
    HazardType.SHARP_TURN: "Sharp Turn",
    HazardType.OVERHEAD_LINES: "Overhead Lines",
    HazardType.NARROW_ROAD: "Narrow Road",
    HazardType.LEVEL_CROSSING: "Level Crossing",
    HazardType.TUNNEL: "Tunnel",
}

# Hazards whose clearance value is compared against the loaded vehicle height.
HEIGHT_RELEVANT_TYPES = frozenset(
    {
        HazardType.LOW_BRIDGE,
        HazardType.HEIGHT_RESTRICTION,
        HazardType.TUNNEL,
        HazardType.OVERHEAD_LINES,
    }
)


def worst_severity(severities: Iterable[HazardSeverity]) -> HazardSeverity:
    """Highest severity under safe < caution < unsafe; safe for an empty input."""
    return max(severities, key=lambda s: s.rank, default=HazardSeverity.SAFE)


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class Hazard(BaseModel):
    """One obstruction or restriction along a route."""

    model_config = ConfigDict(frozen=True)

    type: HazardType
    severity: HazardSeverity = HazardSeverity.CAUTION
    clearance_m: Optional[float] = Field(None, description="Vertical clearance under the structure (m).")
    weight_limit_t: Optional[float] = Field(None, description="Posted weight limit (t).")
    width_limit_m: Optional[float] = Field(None, description="Posted width limit (m).")

    id: Optional[str] = None
    name: Optional[str] = None
    description: str = ""
    location: Optional[GeoPoint] = None
    osm_id: Optional[str] = None
    recommended_speed_kmh: Optional[float] = None


class LoadSpecifications(BaseModel):
    height_m: float = Field(4.0, ge=0.0, description="Load height (m).")
    width_m: float = Field(2.5, ge=0.0, description="Load width (m).")
    length_m: float = Field(12.0, ge=0.0, description="Load length (m).")
    weight_t: float = Field(30.0, ge=0.0, description="Load weight (t).")


class VehicleSpecifications(BaseModel):
    total_height_m: float = Field(4.5, gt=0.0, description="Overall height of the loaded vehicle (m).")
    axle_weight_t: float = Field(10.0, ge=0.0, description="Weight per axle (t).")
    number_of_axles: int = Field(5, ge=1, description="Number of axles.")
    turning_radius_m: float = Field(12.0, ge=0.0, description="Turning radius (m).")
    vehicle_length_m: float = Field(16.5, ge=0.0, description="Vehicle length (m).")


class DirectionStep(BaseModel):
    instruction: str = "Continue"
    distance_m: float = Field(0.0, ge=0.0)
    duration_s: float = Field(0.0, ge=0.0)
    location: GeoPoint
    road_name: Optional[str] = None
    turn_type: Optional[str] = None


class RouteCandidate(BaseModel):
    """A route as returned by the routing service, before hazard analysis.

    Hazards can be given directly or as raw Overpass elements (`osm_elements`),
    which are parsed and classified against the load/vehicle.
    """

    id: str
    name: str = ""
    geometry: List[GeoPoint] = Field(default_factory=list)
    distance_m: float = Field(0.0, ge=0.0)
    duration_s: float = Field(0.0, ge=0.0)
    steps: List[DirectionStep] = Field(default_factory=list)
    hazards: List[Hazard] = Field(default_factory=list)
    osm_elements: List[Dict[str, Any]] = Field(default_factory=list)
    summary: str = ""


class ScoringConfig(BaseModel):
    """Tunable scoring table and detector thresholds."""

    penalties: Dict[HazardSeverity, int] = Field(
        default_factory=lambda: {
            HazardSeverity.SAFE: PENALTY_SAFE,
            HazardSeverity.CAUTION: PENALTY_CAUTION,
            HazardSeverity.UNSAFE: PENALTY_UNSAFE,
        },
        description="Score deduction per hazard, one entry per severity.",
    )
    clearance_buffer_m: float = Field(CLEARANCE_BUFFER_M, ge=0.0)
    weight_caution_fraction: float = Field(WEIGHT_CAUTION_FRACTION, gt=0.0, le=1.0)
    width_buffer_m: float = Field(WIDTH_BUFFER_M, ge=0.0)
    near_route_buffer_m: float = Field(NEAR_ROUTE_BUFFER_M, gt=0.0)
    step_hazard_radius_m: float = Field(STEP_HAZARD_RADIUS_M, gt=0.0)

    @field_validator("penalties")
    @classmethod
    def _exhaustive_penalties(cls, v: Dict[HazardSeverity, int]) -> Dict[HazardSeverity, int]:
        missing = [s.value for s in HazardSeverity if s not in v]
        if missing:
            raise ValueError(f"penalties missing severities: {', '.join(missing)}")
        if any(p < 0 for p in v.values()):
            raise ValueError("penalties must be >= 0.")
        if not (v[HazardSeverity.UNSAFE] >= v[HazardSeverity.CAUTION] >= v[HazardSeverity.SAFE]):
            raise ValueError("penalties must satisfy unsafe >= caution >= safe.")
        return v

    def penalty(self, severity: HazardSeverity) -> int:
        return self.penalties[severity]


class RouteHazardInputs(BaseModel):
    """
    Inputs for the route hazard analysis.

    Each route carries the hazards detected along it (or raw Overpass elements).
    Height hazards are re-checked against the loaded vehicle height, then each route
    gets a safety score and overall severity and the routes are ranked.
    """

    vehicle: VehicleSpecifications = Field(default_factory=VehicleSpecifications)
    load: LoadSpecifications = Field(default_factory=LoadSpecifications)
    routes: List[RouteCandidate] = Field(default_factory=list)
    filter_to_route: bool = Field(
        True, description="Drop located hazards further than the near-route buffer from the route geometry."
    )

    @model_validator(mode="after")
    def _unique_route_ids(self):
        ids = [r.id for r in self.routes]
        if len(ids) != len(set(ids)):
            raise ValueError("route ids must be unique.")
        return self


@dataclass(frozen=True)
class RouteScore:
    hazards: Tuple[Hazard, ...]
    safety_score: int
    overall_severity: HazardSeverity
    counts: Dict[HazardSeverity, int] = field(default_factory=dict)


@dataclass(frozen=True)
class StepWithHazards:
    step: DirectionStep
    hazards: Tuple[Hazard, ...]


@dataclass(frozen=True)
class RouteOption:
    id: str
    name: str
    distance_m: float
    duration_s: float
    hazards: Tuple[Hazard, ...]
    steps: Tuple[StepWithHazards, ...]
    overall_severity: HazardSeverity
    safety_score: int
    summary: str
