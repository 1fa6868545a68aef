from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .constants import (
    HEIGHT_DERATE_FLOOR,
    HEIGHT_DERATE_SLOPE,
    RADIUS_DERATE_EXPONENT,
    RADIUS_DERATE_FLOOR,
)

CalcMode = Literal["single", "multi"]


class CraneEnvelope(BaseModel):
    """Rated capacity and geometric limits of one crane configuration."""

    model_config = ConfigDict(frozen=True)

    rated_capacity_t: float = Field(..., gt=0.0, description="Nominal maximum lift at minimum radius (t).")
    max_radius_m: float = Field(..., gt=0.0, description="Largest permitted working radius (m).")
    max_height_m: float = Field(..., gt=0.0, description="Largest permitted lift height (m).")
    crane_id: Optional[str] = Field(None, description="Registry id, when taken from the crane registry.")
    name: Optional[str] = Field(None, description="Display name.")


@dataclass(frozen=True)
class LiftRequest:
    # not validated: a negative radius or height derates above 1 (capacity over the rating);
    # NaN or infinite radius or height gives zero capacity
    radius_m: float
    height_m: float
    load_weight_t: float = 0.0


@dataclass(frozen=True)
class CapacityResult:
    available_capacity_t: float
    is_safe: bool
    safety_margin_pct: float

    radius_ratio: float
    radius_derate: float
    height_ratio: float
    height_derate: float
    out_of_envelope: bool


class DeratingConfig(BaseModel):
    """Tunable derating curve. Defaults reproduce the calculator's load-chart approximation."""

    radius_exponent: float = Field(RADIUS_DERATE_EXPONENT, gt=0.0, description="Exponent on (1 - radius ratio).")
    radius_floor: float = Field(RADIUS_DERATE_FLOOR, ge=0.0, le=1.0, description="Minimum radius derating factor.")
    height_slope: float = Field(HEIGHT_DERATE_SLOPE, ge=0.0, le=1.0, description="Capacity loss at full height.")
    height_floor: float = Field(HEIGHT_DERATE_FLOOR, ge=0.0, le=1.0, description="Minimum height derating factor.")


class CraneSelection(BaseModel):
    """A crane picked from the registry, optionally with envelope overrides, or fully custom."""

    crane_id: Optional[str] = Field("grove-gmk3050", description="Crane registry id.")
    rated_capacity_t: Optional[float] = Field(None, gt=0.0, description="Override rated capacity (t).")
    max_radius_m: Optional[float] = Field(None, gt=0.0, description="Override maximum radius (m).")
    max_height_m: Optional[float] = Field(None, gt=0.0, description="Override maximum height (m).")

    @model_validator(mode="after")
    def _needs_registry_or_custom(self):
        if self.crane_id is None and None in (self.rated_capacity_t, self.max_radius_m, self.max_height_m):
            raise ValueError(
                "Custom cranes need rated_capacity_t, max_radius_m and max_height_m when crane_id is empty."
            )
        return self

    def override_dict(self) -> dict:
        d = {}
        if self.rated_capacity_t is not None:
            d["rated_capacity_t"] = self.rated_capacity_t
        if self.max_radius_m is not None:
            d["max_radius_m"] = self.max_radius_m
        if self.max_height_m is not None:
            d["max_height_m"] = self.max_height_m
        return d


class MultiCraneEntry(CraneSelection):
    radius_m: float = Field(10.0, ge=0.0, description="Working radius of this crane (m).")
    height_m: float = Field(20.0, ge=0.0, description="Lift height of this crane (m).")


class CraneCapacityInputs(BaseModel):
    """
    Inputs for the crane capacity calculator.

    single: one crane, one lift. Available capacity is derated for radius and
            height and compared against the load weight.
    multi:  several cranes sharing one load. Each crane is derated on its own;
            the load is split in proportion to available capacity (rigid,
            evenly distributing spreader assumed).
    """

    mode: CalcMode = Field("single", description="single crane or multi-crane (tandem) lift.")

    # --- single
    crane: CraneSelection = Field(default_factory=CraneSelection, description="Crane for single lifts.")
    radius_m: float = Field(20.0, ge=0.0, description="Working radius (m).")
    height_m: float = Field(0.0, ge=0.0, description="Lift height (m).")
    load_weight_t: float = Field(10.0, ge=0.0, description="Load to be lifted (t).")

    # --- multi
    cranes: List[MultiCraneEntry] = Field(default_factory=list, description="Cranes taking part in a multi-crane lift.")
    total_load_t: float = Field(0.0, ge=0.0, description="Combined load for a multi-crane lift (t).")

    @model_validator(mode="after")
    def _cross_checks(self):
        if self.mode == "multi" and not self.cranes:
            raise ValueError("multi mode needs at least one entry in cranes.")
        return self
