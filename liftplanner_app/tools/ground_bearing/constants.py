from __future__ import annotations

DEFAULT_UNITS_SYSTEM = "SI"

G = 9.81  # m/s2, tonnes to kN

# Display cap for utilization percentages.
UTILIZATION_DISPLAY_CAP_PCT = 999.0

# Recommended square mat side is rounded up to this step.
MAT_SIZE_STEP_MM = 100.0
