from __future__ import annotations

from typing import Any, Dict

from .db.mobile_cranes import get_mobile_crane
from .models import CraneEnvelope, CraneSelection


def resolve_envelope(selection: CraneSelection) -> CraneEnvelope:
    """Turn a registry pick (plus any overrides) or a custom crane into a CraneEnvelope."""
    overrides = selection.override_dict()
    if selection.crane_id is None:
        return CraneEnvelope(name="Custom crane", **overrides)

    crane = get_mobile_crane(selection.crane_id)
    d = crane.as_dict()
    d.update(overrides)
    return CraneEnvelope(**d)


def envelope_metadata(envelope: CraneEnvelope) -> Dict[str, Any]:
    """Metadata table exported in CalcTrace."""
    return {
        "crane_id": envelope.crane_id,
        "name": envelope.name,
        "rated_capacity_t": envelope.rated_capacity_t,
        "max_radius_m": envelope.max_radius_m,
        "max_height_m": envelope.max_height_m,
        "source": "registry" if envelope.crane_id else "custom",
    }
