from __future__ import annotations

import traceback
from dataclasses import asdict
from typing import Any, Dict, List, Tuple

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
from .crane_library import envelope_metadata, resolve_envelope
from .evaluation import evaluate_with_trace
from .models import CraneCapacityInputs, CraneEnvelope, DeratingConfig, LiftRequest
from .multi_crane import evaluate_multi_with_trace


class CraneCapacityTool:
    """Crane capacity calculator (single crane and multi-crane lifts).

    run_batch() performs the deterministic calculation and writes the run record;
    run() is the host entry point and simply delegates.
    """

    meta = ToolMeta(
        id="crane_capacity",
        name="Crane Capacity",
        category="Cranes",
        version="1.0.0",
        description="Derated mobile crane capacity at working radius/height, with proportional multi-crane load sharing.",
    )

    InputModel = CraneCapacityInputs

    def default_inputs(self) -> dict:
        return self.InputModel().model_dump(mode="json")

    def _registry_keys(self, model: CraneCapacityInputs) -> List[str]:
        if model.mode == "multi":
            return ["cranes"] if any(c.crane_id for c in model.cranes) else []
        return ["crane"] if model.crane.crane_id else []

    def derating_config(self) -> DeratingConfig:
        return load_section(SETTINGS_SECTION, DeratingConfig)

    def _assumptions(self, trace: CalcTrace, multi: bool) -> None:
        trace.assumptions.extend(
            [
                Assumption(
                    id="A1",
                    text=(
                        "Capacity is approximated from the crane's headline rating with radius and height "
                        "derating curves; it does not replace the manufacturer's load chart."
                    ),
                ),
                Assumption(
                    id="A2",
                    text="Lifts beyond the maximum radius or maximum height are not permitted (capacity 0).",
                ),
                Assumption(
                    id="A3",
                    text="A lift is acceptable only when available capacity strictly exceeds the load.",
                ),
            ]
        )
        if multi:
            trace.assumptions.append(
                Assumption(
                    id="A4",
                    text=(
                        "Multi-crane load is shared in proportion to each crane's available capacity "
                        "(rigid, evenly distributing spreader; rigging redistribution not modelled)."
                    ),
                )
            )

    def _single(self, trace: CalcTrace, model: CraneCapacityInputs, cfg: DeratingConfig) -> Dict[str, Any]:
        envelope = resolve_envelope(model.crane)
        trace.tables["crane"] = envelope_metadata(envelope)
        request = LiftRequest(radius_m=model.radius_m, height_m=model.height_m, load_weight_t=model.load_weight_t)
        res = evaluate_with_trace(trace, envelope, request, cfg)
        return {
            "crane": envelope.name,
            "available_capacity_t": res.available_capacity_t,
            "is_safe": res.is_safe,
            "safety_margin_pct": res.safety_margin_pct,
            "radius_derate": res.radius_derate,
            "height_derate": res.height_derate,
            "out_of_envelope": res.out_of_envelope,
        }

    def _multi(self, trace: CalcTrace, model: CraneCapacityInputs, cfg: DeratingConfig) -> Dict[str, Any]:
        entries: List[Tuple[CraneEnvelope, LiftRequest]] = []
        for c in model.cranes:
            env = resolve_envelope(c)
            entries.append((env, LiftRequest(radius_m=c.radius_m, height_m=c.height_m)))
        trace.tables["cranes"] = [envelope_metadata(env) for env, _ in entries]

        per_crane, agg = evaluate_multi_with_trace(trace, entries, model.total_load_t, cfg)
        return {
            "total_capacity_t": agg.total_capacity_t,
            "total_load_t": agg.total_load_t,
            "is_safe": agg.is_safe,
            "safety_margin_pct": agg.safety_margin_pct,
            "shares": [asdict(s) for s in agg.shares],
            "out_of_envelope": [r.out_of_envelope for r in per_crane],
        }

    def run_batch(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        """Run the calculation, write the run record and return results.

        Safe to execute in a background thread.
        """

        model = self.InputModel.model_validate(inputs)
        inputs_norm = model.model_dump(mode="json")
        input_hash = compute_input_hash(inputs_norm)
        run_dir = create_run_dir(self.meta.id, input_hash)
        log, _log_sink = get_run_logger(run_dir, self.meta.id, input_hash)

        try:
            log.info(f"Starting crane capacity run ({model.mode})")
            log.info(f"Inputs (validated): {inputs_norm}")

            cfg = self.derating_config()
            log.debug(f"Derating config: {cfg.model_dump()}")

            trace = CalcTrace.new(
                tool_id=self.meta.id,
                tool_version=self.meta.version,
                units_system=DEFAULT_UNITS_SYSTEM,
                code_basis="Load-chart approximation (radius/height derating)",
                inputs=inputs_norm,
                input_sources=input_sources(inputs_norm, self.default_inputs(), self._registry_keys(model)),
                input_hash=input_hash,
            )
            self._assumptions(trace, multi=model.mode == "multi")
            trace.tables["derating_config"] = cfg.model_dump()

            if model.mode == "multi":
                out = self._multi(trace, model, cfg)
            else:
                out = self._single(trace, model, cfg)

            results: Dict[str, Any] = {
                "ok": True,
                "run_dir": str(run_dir),
                "input_hash": trace.meta.input_hash,
                "mode": model.mode,
            }
            results.update(out)
            trace.summary = dict(out)

            out_paths = write_run_record(trace, run_dir, results)
            results["outputs"] = {k: str(v) for k, v in out_paths.items()}

            if not results["is_safe"]:
                log.warning("Lift NOT acceptable: load meets or exceeds available capacity")
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


TOOL = CraneCapacityTool()
