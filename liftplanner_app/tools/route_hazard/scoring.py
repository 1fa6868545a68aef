from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

from loguru import logger
from pydantic import ValidationError

from liftplanner_app.blocks.calc_trace import CalcTrace, compute_step

from .classification import DEFAULT_SCORING, reclassify_for_vehicle
from .constants import SCORE_START
from .geo import assign_hazards_to_steps, hazards_near_route
from .models import (
    Hazard,
    HazardSeverity,
    LoadSpecifications,
    RouteCandidate,
    RouteOption,
    RouteScore,
    ScoringConfig,
    VehicleSpecifications,
    worst_severity,
)
from .osm import hazards_from_osm


def severity_counts(hazards: Iterable[Hazard]) -> Dict[HazardSeverity, int]:
    counts = {s: 0 for s in HazardSeverity}
    for h in hazards:
        counts[h.severity] += 1
    return counts


def _coerce_hazards(entries: Optional[Sequence[Any]]) -> List[Hazard]:
    """Hazard instances or hazard dicts; anything that does not validate is skipped."""
    out: List[Hazard] = []
    skipped = 0
    for entry in entries or ():
        if isinstance(entry, Hazard):
            out.append(entry)
            continue
        try:
            out.append(Hazard.model_validate(entry))
        except ValidationError:
            skipped += 1
    if skipped:
        logger.debug(f"Skipped {skipped} malformed hazard entr{'y' if skipped == 1 else 'ies'}")
    return out


def score_route(
    hazards: Optional[Sequence[Any]],
    vehicle_height_m: float,
    config: Optional[ScoringConfig] = None,
) -> RouteScore:
    """
    Score one route for a vehicle of the given loaded height.

      1. height-relevant hazards with a clearance are re-checked against the vehicle
      2. overall severity = worst hazard severity (safe when there are none)
      3. score = max(0, 100 - sum of per-severity penalties)

    Never raises; hazard dicts are validated and malformed entries (None, junk) are skipped.
    """
    cfg = config or DEFAULT_SCORING
    checked = tuple(reclassify_for_vehicle(h, vehicle_height_m, cfg) for h in _coerce_hazards(hazards))

    counts = severity_counts(checked)
    deduction = sum(cfg.penalty(sev) * n for sev, n in counts.items())
    score = max(0, min(SCORE_START, SCORE_START - deduction))

    return RouteScore(
        hazards=checked,
        safety_score=int(score),
        overall_severity=worst_severity(h.severity for h in checked),
        counts=counts,
    )


def analyze_route(
    route: RouteCandidate,
    load: LoadSpecifications,
    vehicle: VehicleSpecifications,
    config: Optional[ScoringConfig] = None,
    *,
    filter_to_route: bool = True,
) -> RouteOption:
    cfg = config or DEFAULT_SCORING
    hazards: List[Hazard] = list(route.hazards)
    hazards.extend(hazards_from_osm(route.osm_elements, load, vehicle, cfg))
    if filter_to_route:
        hazards = hazards_near_route(hazards, route.geometry, cfg.near_route_buffer_m)

    scored = score_route(hazards, vehicle.total_height_m, cfg)
    steps = assign_hazards_to_steps(route.steps, scored.hazards, cfg.step_hazard_radius_m)

    return RouteOption(
        id=route.id,
        name=route.name or route.id,
        distance_m=route.distance_m,
        duration_s=route.duration_s,
        hazards=scored.hazards,
        steps=tuple(steps),
        overall_severity=scored.overall_severity,
        safety_score=scored.safety_score,
        summary=route.summary,
    )


def analyze_routes(
    routes: Sequence[RouteCandidate],
    load: LoadSpecifications,
    vehicle: VehicleSpecifications,
    config: Optional[ScoringConfig] = None,
    *,
    filter_to_route: bool = True,
) -> List[RouteOption]:
    """Analyze every candidate and rank by safety score, best first (ties keep input order)."""
    options = [analyze_route(r, load, vehicle, config, filter_to_route=filter_to_route) for r in routes]
    return sorted(options, key=lambda o: o.safety_score, reverse=True)


def score_with_trace(trace: CalcTrace, option: RouteOption, config: Optional[ScoringConfig] = None, *, step_id: str) -> int:
    """Record the safety score of an analyzed route as a calculation step."""
    cfg = config or DEFAULT_SCORING
    counts = severity_counts(option.hazards)
    n_u = counts[HazardSeverity.UNSAFE]
    n_c = counts[HazardSeverity.CAUTION]
    n_s = counts[HazardSeverity.SAFE]

    def _score() -> float:
        return float(max(0, SCORE_START - sum(cfg.penalty(s) * n for s, n in counts.items())))

    score = compute_step(
        trace,
        id=step_id,
        section=f"Route {option.id}",
        title=f"Safety score: {option.name}",
        output_symbol="S",
        output_description="Route safety score (0-100)",
        equation_latex=r"S = \max(0, 100 - (P_u n_u + P_c n_c + P_s n_s))",
        variables=[
            {"symbol": "P_u", "description": "Penalty per unsafe hazard", "value": cfg.penalty(HazardSeverity.UNSAFE), "units": "-", "source": "config"},
            {"symbol": "P_c", "description": "Penalty per caution hazard", "value": cfg.penalty(HazardSeverity.CAUTION), "units": "-", "source": "config"},
            {"symbol": "P_s", "description": "Penalty per safe hazard", "value": cfg.penalty(HazardSeverity.SAFE), "units": "-", "source": "config"},
            {"symbol": "n_u", "description": "Unsafe hazards on route", "value": n_u, "units": "-", "source": "derived"},
            {"symbol": "n_c", "description": "Caution hazards on route", "value": n_c, "units": "-", "source": "derived"},
            {"symbol": "n_s", "description": "Safe hazards on route", "value": n_s, "units": "-", "source": "derived"},
        ],
        compute_fn=_score,
        units="-",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 0},
        references=[{"type": "config", "ref": "route_hazard.scoring.penalties"}],
        checks_builder=lambda s: [
            {
                "label": "Route has no unsafe hazards",
                "demand": float(n_u),
                "capacity": 0.0,
                "ratio": float(n_u),
                "pass_fail": "PASS" if option.overall_severity != HazardSeverity.UNSAFE else "FAIL",
            }
        ],
    )
    if option.overall_severity == HazardSeverity.UNSAFE:
        trace.steps[-1].warnings.append(f"{n_u} unsafe hazard(s): route not passable for this vehicle.")
    return int(score)
