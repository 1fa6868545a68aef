from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple


@dataclass(frozen=True)
class MobileCrane:
    """Registry record for one mobile crane model.

    Values are headline figures (max capacity at minimum radius, max radius and
    tip height on main boom). They feed the derating approximation only; they are
    not a substitute for the manufacturer's load chart for the rigged configuration.
    """

    id: str
    name: str
    rated_capacity_t: float
    max_radius_m: float
    max_height_m: float

    def as_dict(self) -> Dict[str, object]:
        return {
            "crane_id": self.id,
            "name": self.name,
            "rated_capacity_t": float(self.rated_capacity_t),
            "max_radius_m": float(self.max_radius_m),
            "max_height_m": float(self.max_height_m),
        }


# id: (name, capacity t, max radius m, max height m)
_MOBILE_CRANES: Dict[str, Tuple[str, float, float, float]] = {
    # 30 t
    "grove-rt530e": ("Grove RT530E-2", 30.0, 28.0, 42.0),
    "liebherr-ltm1030": ("Liebherr LTM 1030-2.1", 30.0, 30.0, 45.0),
    "tadano-gr300xl": ("Tadano GR-300XL", 30.0, 28.0, 42.0),
    "manitowoc-rt530e": ("Manitowoc RT530E", 30.0, 30.0, 44.0),
    "link-belt-rtc8030": ("Link-Belt RTC-8030", 30.0, 28.0, 42.0),
    # 35 t
    "grove-rt635c": ("Grove RT635C", 35.0, 30.0, 45.0),
    "liebherr-ltm1035": ("Liebherr LTM 1035-3.1", 35.0, 32.0, 48.0),
    "tadano-gr350xl": ("Tadano GR-350XL", 35.0, 30.0, 45.0),
    "manitowoc-rt635": ("Manitowoc RT635", 35.0, 30.0, 45.0),
    # 40 t
    "grove-rt740b": ("Grove RT740B", 40.0, 35.0, 52.0),
    "liebherr-ltm1040": ("Liebherr LTM 1040-2.1", 40.0, 35.0, 52.0),
    "tadano-gr400xl": ("Tadano GR-400XL", 40.0, 35.0, 52.0),
    "manitowoc-rt740": ("Manitowoc RT740", 40.0, 35.0, 52.0),
    "link-belt-rtc8040": ("Link-Belt RTC-8040", 40.0, 35.0, 52.0),
    # 50 t
    "grove-gmk3050": ("Grove GMK3050", 50.0, 40.0, 58.0),
    "liebherr-ltm1050": ("Liebherr LTM 1050-3.1", 50.0, 42.0, 60.0),
    "tadano-atf50g": ("Tadano ATF 50G-3", 50.0, 40.0, 58.0),
    "manitowoc-gmk3050": ("Manitowoc GMK3050", 50.0, 40.0, 58.0),
    # 60-75 t
    "grove-gmk3060": ("Grove GMK3060", 60.0, 45.0, 65.0),
    "liebherr-ltm1060": ("Liebherr LTM 1060-3.1", 60.0, 48.0, 65.0),
    "tadano-atf60g": ("Tadano ATF 60G-3", 60.0, 44.0, 62.0),
    "grove-gmk4075": ("Grove GMK4075", 75.0, 50.0, 72.0),
    "liebherr-ltm1070": ("Liebherr LTM 1070-4.2", 70.0, 50.0, 70.0),
    "tadano-atf70g": ("Tadano ATF 70G-4", 70.0, 48.0, 68.0),
    # 90-100 t
    "grove-gmk4090": ("Grove GMK4090", 90.0, 50.0, 72.0),
    "liebherr-ltm1090": ("Liebherr LTM 1090-4.2", 90.0, 52.0, 75.0),
    "tadano-atf90g": ("Tadano ATF 90G-4", 90.0, 50.0, 72.0),
    "link-belt-rtc8090": ("Link-Belt RTC-8090", 90.0, 38.0, 51.0),
    "grove-gmk5100": ("Grove GMK5100", 100.0, 60.0, 82.0),
    "liebherr-ltm1100": ("Liebherr LTM 1100-5.2", 100.0, 62.0, 85.0),
    "tadano-atf100g": ("Tadano ATF 100G-4", 100.0, 58.0, 78.0),
    "manitowoc-gmk5100": ("Manitowoc GMK5100", 100.0, 58.0, 80.0),
    # 130-200 t
    "grove-rt9130e": ("Grove RT9130E", 130.0, 40.0, 56.0),
    "liebherr-ltm1130": ("Liebherr LTM 1130-5.1", 130.0, 60.0, 85.0),
    "tadano-atf130g": ("Tadano ATF 130G-5", 130.0, 58.0, 82.0),
    "liebherr-ltm1160": ("Liebherr LTM 1160-5.2", 160.0, 68.0, 92.0),
    "grove-gmk5200": ("Grove GMK5200", 200.0, 70.0, 98.0),
    # 220-400 t
    "tadano-atf220g": ("Tadano ATF 220G-5", 220.0, 62.0, 94.0),
    "liebherr-ltm1300": ("Liebherr LTM 1300-6.2", 300.0, 78.0, 108.0),
    "grove-gmk6400": ("Grove GMK6400", 400.0, 68.0, 120.0),
    # 500-800 t
    "liebherr-ltm1500": ("Liebherr LTM 1500-8.1", 500.0, 84.0, 134.0),
    "tadano-atf600g": ("Tadano ATF 600G-8", 600.0, 88.0, 142.0),
    "grove-gmk7550": ("Grove GMK7550", 750.0, 90.0, 155.0),
    # heavy lift
    "manitowoc-18000": ("Manitowoc 18000", 680.0, 100.0, 150.0),
    "terex-ac1000": ("Terex-Demag AC 1000", 1000.0, 96.0, 168.0),
    "liebherr-ltm11200": ("Liebherr LTM 11200-9.1", 1200.0, 100.0, 188.0),
    "liebherr-lr13000": ("Liebherr LR 13000", 3000.0, 180.0, 245.0),
}


def get_mobile_crane(crane_id: str) -> MobileCrane:
    """Return a registry crane by id (e.g. 'grove-gmk3050'), case-insensitive."""
    key = crane_id.strip().lower()
    if key not in _MOBILE_CRANES:
        raise ValueError(f"Unknown crane id '{crane_id}'. See list_mobile_cranes() for supported models.")
    name, cap, r_max, h_max = _MOBILE_CRANES[key]
    return MobileCrane(id=key, name=name, rated_capacity_t=cap, max_radius_m=r_max, max_height_m=h_max)


def list_mobile_cranes(min_capacity_t: Optional[float] = None) -> List[MobileCrane]:
    """Registry cranes ordered by rated capacity, then name."""
    cranes = [get_mobile_crane(k) for k in _MOBILE_CRANES]
    if min_capacity_t is not None:
        cranes = [c for c in cranes if c.rated_capacity_t >= float(min_capacity_t)]
    return sorted(cranes, key=lambda c: (c.rated_capacity_t, c.name))
