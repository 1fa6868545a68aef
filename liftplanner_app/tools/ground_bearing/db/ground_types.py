from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

CUSTOM_GROUND_ID = "custom"


@dataclass(frozen=True)
class GroundType:
    """Typical presumed bearing value for a ground type (kN/m2).

    Guidance values only; site investigation governs for critical lifts.
    """

    id: str
    name: str
    capacity_kpa: float


# id: (name, capacity kN/m2)
_GROUND_TYPES: Dict[str, Tuple[str, float]] = {
    "rock": ("Sound Rock", 10000.0),
    "gravel-dense": ("Dense Gravel/Sand", 600.0),
    "gravel-medium": ("Medium Gravel/Sand", 300.0),
    "gravel-loose": ("Loose Gravel/Sand", 100.0),
    "clay-stiff": ("Stiff Clay", 300.0),
    "clay-firm": ("Firm Clay", 150.0),
    "clay-soft": ("Soft Clay", 75.0),
    "peat": ("Peat/Made Ground", 25.0),
    "tarmac": ("Tarmac/Asphalt", 200.0),
    "concrete": ("Concrete (150mm)", 400.0),
}

# Standard timber/composite outrigger mats: name -> (width mm, length mm)
STANDARD_MATS: Dict[str, Tuple[float, float]] = {
    "1.0m x 1.0m": (1000.0, 1000.0),
    "1.2m x 1.2m": (1200.0, 1200.0),
    "1.5m x 1.5m": (1500.0, 1500.0),
    "2.0m x 1.0m": (2000.0, 1000.0),
    "2.0m x 2.0m": (2000.0, 2000.0),
    "2.4m x 1.2m": (2400.0, 1200.0),
    "3.0m x 1.0m": (3000.0, 1000.0),
    "3.0m x 3.0m": (3000.0, 3000.0),
}


def get_ground_type(ground_id: str) -> GroundType:
    key = ground_id.strip().lower()
    if key not in _GROUND_TYPES:
        raise ValueError(f"Unknown ground type '{ground_id}'. Use one of {sorted(_GROUND_TYPES)} or 'custom'.")
    name, cap = _GROUND_TYPES[key]
    return GroundType(id=key, name=name, capacity_kpa=cap)


def list_ground_types() -> List[GroundType]:
    return [get_ground_type(k) for k in _GROUND_TYPES]
