from __future__ import annotations

DEFAULT_UNITS_SYSTEM = "SI"
SETTINGS_SECTION = "route_hazard.scoring"

# Safety score
SCORE_START = 100
PENALTY_UNSAFE = 20
PENALTY_CAUTION = 5
PENALTY_SAFE = 0

# Detector thresholds (flagged for review; override via settings)
CLEARANCE_BUFFER_M = 0.3        # caution when headroom under a structure is below this
WEIGHT_CAUTION_FRACTION = 0.9   # caution above this fraction of a posted weight limit
WIDTH_BUFFER_M = 0.5            # caution when side clearance to a width limit is below this

# Geometry
EARTH_RADIUS_M = 6371000.0
NEAR_ROUTE_BUFFER_M = 100.0
STEP_HAZARD_RADIUS_M = 500.0
BBOX_PAD_DEG = 0.01

FT_TO_M = 0.3048
IN_TO_M = 0.0254
