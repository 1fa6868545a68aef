from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from .db.ground_types import CUSTOM_GROUND_ID, STANDARD_MATS


class GroundBearingInputs(BaseModel):
    """
    Outrigger ground bearing check.

    The outrigger load is spread over the pad (direct on ground) and over a
    spreader mat; both pressures are compared with the allowable bearing pressure
    (presumed ground capacity / safety factor).
    """

    outrigger_load_t: float = Field(50.0, ge=0.0, description="Maximum outrigger reaction (t).")
    ground_type: str = Field("gravel-medium", description="Ground type id, or 'custom'.")
    custom_capacity_kpa: Optional[float] = Field(
        None, gt=0.0, description="Bearing capacity when ground_type is 'custom' (kN/m2)."
    )
    safety_factor: float = Field(1.5, gt=0.0, description="Factor applied to the ground capacity.")

    pad_diameter_mm: float = Field(400.0, gt=0.0, description="Outrigger pad diameter (mm).")
    mat_size: Optional[str] = Field(None, description="Standard mat name; overrides mat width/length.")
    mat_width_mm: float = Field(1500.0, gt=0.0, description="Spreader mat width (mm).")
    mat_length_mm: float = Field(1500.0, gt=0.0, description="Spreader mat length (mm).")

    @model_validator(mode="after")
    def _check_ground_and_mat(self):
        if self.ground_type.strip().lower() == CUSTOM_GROUND_ID and self.custom_capacity_kpa is None:
            raise ValueError("custom_capacity_kpa is required when ground_type is 'custom'.")
        if self.mat_size is not None and self.mat_size not in STANDARD_MATS:
            raise ValueError(f"Unknown mat_size '{self.mat_size}'. Options: {list(STANDARD_MATS)}")
        return self


@dataclass(frozen=True)
class BearingCheck:
    area_m2: float
    pressure_kpa: float
    utilization_pct: float
    adequate: bool


@dataclass(frozen=True)
class GroundBearingResult:
    load_kn: float
    ground_capacity_kpa: float
    allowable_kpa: float
    pad: BearingCheck
    mat: BearingCheck
    min_mat_side_mm: float
