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
from liftplanner_app.core.tool_base import ToolMeta

from .constants import DEFAULT_UNITS_SYSTEM
from .db.ground_types import CUSTOM_GROUND_ID, STANDARD_MATS, get_ground_type
from .evaluation import evaluate_with_trace
from .models import GroundBearingInputs


def _ground_capacity(model: GroundBearingInputs) -> Tuple[str, float]:
    if model.ground_type.strip().lower() == CUSTOM_GROUND_ID:
        return "Custom Value", float(model.custom_capacity_kpa)
    g = get_ground_type(model.ground_type)
    return g.name, g.capacity_kpa


class GroundBearingTool:
    meta = ToolMeta(
        id="ground_bearing",
        name="Ground Bearing Pressure",
        category="Cranes",
        version="1.0.0",
        description="Outrigger pad and spreader mat ground pressure check with minimum mat size.",
    )

    InputModel = GroundBearingInputs

    def default_inputs(self) -> dict:
        return self.InputModel().model_dump(mode="json")

    def _registry_keys(self, model: GroundBearingInputs) -> List[str]:
        keys: List[str] = []
        if model.ground_type.strip().lower() != CUSTOM_GROUND_ID:
            keys.append("ground_type")
        if model.mat_size is not None:
            keys.append("mat_size")
        return keys

    def run_batch(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        model = self.InputModel.model_validate(inputs)
        inputs_norm = model.model_dump(mode="json")
        input_hash = compute_input_hash(inputs_norm)
        run_dir = create_run_dir(self.meta.id, input_hash)
        log, _log_sink = get_run_logger(run_dir, self.meta.id, input_hash)

        try:
            log.info("Starting ground bearing run")
            log.info(f"Inputs (validated): {inputs_norm}")

            ground_name, capacity = _ground_capacity(model)
            if model.mat_size is not None:
                mat_w, mat_l = STANDARD_MATS[model.mat_size]
            else:
                mat_w, mat_l = model.mat_width_mm, model.mat_length_mm

            trace = CalcTrace.new(
                tool_id=self.meta.id,
                tool_version=self.meta.version,
                units_system=DEFAULT_UNITS_SYSTEM,
                code_basis="Presumed bearing values with global safety factor",
                inputs=inputs_norm,
                input_sources=input_sources(inputs_norm, self.default_inputs(), self._registry_keys(model)),
                input_hash=input_hash,
            )
            trace.assumptions.extend(
                [
                    Assumption(id="A1", text="Outrigger load is spread uniformly over the pad or mat (rigid bearing)."),
                    Assumption(
                        id="A2",
                        text=(
                            "Ground capacities are typical presumed values; verify ground conditions on site and "
                            "consult a geotechnical engineer for critical lifts."
                        ),
                    ),
                ]
            )
            trace.tables["ground"] = {"ground_type": model.ground_type, "name": ground_name, "capacity_kpa": capacity}

            res = evaluate_with_trace(
                trace, model.outrigger_load_t, capacity, model.safety_factor, model.pad_diameter_mm, mat_w, mat_l
            )
            out = {
                "ground": ground_name,
                "load_kn": res.load_kn,
                "ground_capacity_kpa": res.ground_capacity_kpa,
                "allowable_kpa": res.allowable_kpa,
                "pad": asdict(res.pad),
                "mat": asdict(res.mat),
                "mat_width_mm": mat_w,
                "mat_length_mm": mat_l,
                "min_mat_side_mm": res.min_mat_side_mm,
                "is_safe": res.mat.adequate,
            }
            results: Dict[str, Any] = {
                "ok": True,
                "run_dir": str(run_dir),
                "input_hash": trace.meta.input_hash,
            }
            results.update(out)
            trace.summary = dict(out)

            out_paths = write_run_record(trace, run_dir, results)
            results["outputs"] = {k: str(v) for k, v in out_paths.items()}

            if not res.mat.adequate:
                log.warning(f"Mat inadequate; minimum square mat {res.min_mat_side_mm:.0f} mm")
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


TOOL = GroundBearingTool()
