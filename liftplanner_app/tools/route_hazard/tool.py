from __future__ import annotations

import traceback
from typing import Any, Dict, List

from liftplanner_app.blocks.calc_trace import (
    Assumption,
    CalcTrace,
    compute_input_hash,
    input_sources,
    write_run_record,
)
from liftplanner_app.core.logging import get_run_logger, remove_run_logger_sink
from liftplanner_app.core.paths import create_run_dir
from liftplanner_app.core.settings import load_section
from liftplanner_app.core.tool_base import ToolMeta

from .constants import DEFAULT_UNITS_SYSTEM, SETTINGS_SECTION
from .models import HazardSeverity, RouteHazardInputs, RouteOption, ScoringConfig
from .scoring import analyze_routes, score_with_trace, severity_counts


def _sample_route() -> Dict[str, Any]:
    # Short urban route with one low bridge and one level crossing near its manoeuvres.
    return {
        "id": "route-1",
        "name": "Via Industrial Estate",
        "distance_m": 4200.0,
        "duration_s": 540.0,
        "geometry": [
            {"lat": 51.5000, "lng": -0.1200},
            {"lat": 51.5005, "lng": -0.1190},
            {"lat": 51.5010, "lng": -0.1180},
        ],
        "steps": [
            {"instruction": "Head north-east", "distance_m": 150.0, "duration_s": 20.0, "location": {"lat": 51.5000, "lng": -0.1200}},
            {"instruction": "Arrive at site", "distance_m": 0.0, "duration_s": 0.0, "location": {"lat": 51.5010, "lng": -0.1180}},
        ],
        "osm_elements": [
            {"type": "way", "id": 1001, "center": {"lat": 51.5005, "lon": -0.1190}, "tags": {"maxheight": "4.6", "bridge": "yes"}},
            {"type": "node", "id": 1002, "lat": 51.5010, "lon": -0.1181, "tags": {"railway": "level_crossing"}},
        ],
    }


def _option_dict(o: RouteOption) -> Dict[str, Any]:
    counts = severity_counts(o.hazards)
    return {
        "id": o.id,
        "name": o.name,
        "distance_m": o.distance_m,
        "duration_s": o.duration_s,
        "safety_score": o.safety_score,
        "overall_severity": o.overall_severity.value,
        "hazard_counts": {s.value: n for s, n in counts.items()},
        "hazards": [h.model_dump(mode="json") for h in o.hazards],
        "steps": [
            {"instruction": s.step.instruction, "hazard_ids": [h.id for h in s.hazards]}
            for s in o.steps
        ],
    }


class RouteHazardTool:
    """Route hazard scorer for heavy-load transport.

    Candidate routes (with detected hazards or raw Overpass elements) are scored
    for the loaded vehicle and ranked by safety score.
    """

    meta = ToolMeta(
        id="route_hazard",
        name="Route Hazard Scorer",
        category="Transport",
        version="1.0.0",
        description="Clearance/weight/width hazard classification, route safety score and ranking.",
    )

    InputModel = RouteHazardInputs

    def default_inputs(self) -> dict:
        return self.InputModel(routes=[_sample_route()]).model_dump(mode="json")

    def scoring_config(self) -> ScoringConfig:
        return load_section(SETTINGS_SECTION, ScoringConfig)

    def _assumptions(self, trace: CalcTrace) -> None:
        trace.assumptions.extend(
            [
                Assumption(
                    id="A1",
                    text=(
                        "Height-relevant hazards (bridges, tunnels, height restrictions, overhead lines) "
                        "with a known clearance are re-checked against the loaded vehicle height."
                    ),
                ),
                Assumption(
                    id="A2",
                    text="Hazards without a usable limit keep the severity assigned when they were detected.",
                ),
                Assumption(
                    id="A3",
                    text=(
                        "Penalty weights and buffers are tuning values for route ranking, "
                        "not a substitute for a route survey."
                    ),
                ),
            ]
        )

    def run_batch(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        """Analyze and rank the routes, write the run record and return results."""

        model = self.InputModel.model_validate(inputs)
        inputs_norm = model.model_dump(mode="json")
        input_hash = compute_input_hash(inputs_norm)
        run_dir = create_run_dir(self.meta.id, input_hash)
        log, _log_sink = get_run_logger(run_dir, self.meta.id, input_hash)

        try:
            log.info(f"Starting route hazard run ({len(model.routes)} route(s))")
            log.info(f"Vehicle height: {model.vehicle.total_height_m} m, load: {model.load.weight_t} t")

            cfg = self.scoring_config()
            log.debug(f"Scoring config: {cfg.model_dump(mode='json')}")

            trace = CalcTrace.new(
                tool_id=self.meta.id,
                tool_version=self.meta.version,
                units_system=DEFAULT_UNITS_SYSTEM,
                code_basis="Heavy-load route hazard screening",
                inputs=inputs_norm,
                input_sources=input_sources(inputs_norm, self.default_inputs()),
                input_hash=input_hash,
            )
            self._assumptions(trace)
            trace.tables["scoring_config"] = cfg.model_dump(mode="json")

            options = analyze_routes(
                model.routes, model.load, model.vehicle, cfg, filter_to_route=model.filter_to_route
            )
            for i, o in enumerate(options, start=1):
                score_with_trace(trace, o, cfg, step_id=f"S{i}")

            ranked: List[Dict[str, Any]] = [_option_dict(o) for o in options]
            best = options[0] if options else None
            out: Dict[str, Any] = {
                "routes": ranked,
                "recommended_route_id": best.id if best else None,
                "is_safe": bool(best is not None and best.overall_severity != HazardSeverity.UNSAFE),
            }
            results: Dict[str, Any] = {
                "ok": True,
                "run_dir": str(run_dir),
                "input_hash": trace.meta.input_hash,
            }
            results.update(out)
            trace.summary = {
                "recommended_route_id": out["recommended_route_id"],
                "scores": {o.id: o.safety_score for o in options},
            }

            out_paths = write_run_record(trace, run_dir, results)
            results["outputs"] = {k: str(v) for k, v in out_paths.items()}

            for o in options:
                if o.overall_severity == HazardSeverity.UNSAFE:
                    log.warning(f"Route {o.id} has unsafe hazards (score {o.safety_score})")
            log.info("Batch run complete")
            return results

        except Exception as e:
            log.exception("Batch run failed")
            return {
                "ok": False,
                "run_dir": str(run_dir),
                "input_hash": input_hash,
                "error": str(e),
                "traceback": traceback.format_exc(),
            }

        finally:
            remove_run_logger_sink(_log_sink)

    def run(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return self.run_batch(inputs)


TOOL = RouteHazardTool()
