from __future__ import annotations

DEFAULT_UNITS_SYSTEM = "SI"

# Derating curve defaults (load-chart approximation, not a manufacturer chart).
# Flagged for review by a lifting engineer; override via settings "crane_capacity.derating".
RADIUS_DERATE_EXPONENT = 1.5
RADIUS_DERATE_FLOOR = 0.05
HEIGHT_DERATE_SLOPE = 0.3
HEIGHT_DERATE_FLOOR = 0.7

SETTINGS_SECTION = "crane_capacity.derating"
