from __future__ import annotations

import math

from liftplanner_app.blocks.calc_trace import CalcTrace, compute_step

from .constants import G, MAT_SIZE_STEP_MM, UTILIZATION_DISPLAY_CAP_PCT
from .models import BearingCheck, GroundBearingResult


def _pad_area_m2(diameter_mm: float) -> float:
    return math.pi * (float(diameter_mm) / 2000.0) ** 2


def _mat_area_m2(width_mm: float, length_mm: float) -> float:
    return (float(width_mm) / 1000.0) * (float(length_mm) / 1000.0)


def _check(load_kn: float, area_m2: float, allowable_kpa: float) -> BearingCheck:
    pressure = load_kn / area_m2
    util = pressure / allowable_kpa * 100.0
    return BearingCheck(
        area_m2=float(area_m2),
        pressure_kpa=float(pressure),
        utilization_pct=float(min(util, UTILIZATION_DISPLAY_CAP_PCT)),
        adequate=bool(pressure <= allowable_kpa),
    )


def min_square_mat_side_mm(load_kn: float, allowable_kpa: float) -> float:
    """Side of the smallest square mat keeping pressure within allowable, rounded up to 100 mm."""
    side = math.sqrt(load_kn / allowable_kpa) * 1000.0
    return math.ceil(side / MAT_SIZE_STEP_MM) * MAT_SIZE_STEP_MM


def evaluate_ground_bearing(
    outrigger_load_t: float,
    ground_capacity_kpa: float,
    safety_factor: float,
    pad_diameter_mm: float,
    mat_width_mm: float,
    mat_length_mm: float,
) -> GroundBearingResult:
    load_kn = float(outrigger_load_t) * G
    allowable = float(ground_capacity_kpa) / float(safety_factor)
    return GroundBearingResult(
        load_kn=load_kn,
        ground_capacity_kpa=float(ground_capacity_kpa),
        allowable_kpa=allowable,
        pad=_check(load_kn, _pad_area_m2(pad_diameter_mm), allowable),
        mat=_check(load_kn, _mat_area_m2(mat_width_mm, mat_length_mm), allowable),
        min_mat_side_mm=float(min_square_mat_side_mm(load_kn, allowable)),
    )


def _pressure_step(
    trace: CalcTrace, *, id: str, label: str, load_kn: float, area_m2: float, allowable_kpa: float
) -> float:
    return compute_step(
        trace,
        id=id,
        section="Bearing pressure",
        title=f"{label} ground pressure",
        output_symbol="q",
        output_description=f"Ground pressure under {label.lower()}",
        equation_latex=r"q = P / A",
        variables=[
            {"symbol": "P", "description": "Outrigger load", "value": round(load_kn, 3), "units": "kN", "source": "derived"},
            {"symbol": "A", "description": f"{label} area", "value": round(area_m2, 4), "units": "m2", "source": "derived"},
        ],
        compute_fn=lambda: load_kn / area_m2,
        units="kN/m2",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 1},
        references=[{"type": "derived", "ref": "Uniform pressure under a rigid bearing area"}],
        checks_builder=lambda q: [
            {
                "label": f"{label} pressure <= allowable",
                "demand": q,
                "capacity": allowable_kpa,
                "ratio": q / allowable_kpa,
                "pass_fail": "PASS" if q <= allowable_kpa else "FAIL",
            }
        ],
    )


def evaluate_with_trace(
    trace: CalcTrace,
    outrigger_load_t: float,
    ground_capacity_kpa: float,
    safety_factor: float,
    pad_diameter_mm: float,
    mat_width_mm: float,
    mat_length_mm: float,
) -> GroundBearingResult:
    """Same result as evaluate_ground_bearing, with each step recorded in the trace."""
    res = evaluate_ground_bearing(
        outrigger_load_t, ground_capacity_kpa, safety_factor, pad_diameter_mm, mat_width_mm, mat_length_mm
    )

    compute_step(
        trace,
        id="G1",
        section="Loads",
        title="Outrigger load",
        output_symbol="P",
        output_description="Outrigger load in kN",
        equation_latex=r"P = W \cdot g",
        variables=[
            {"symbol": "W", "description": "Outrigger load", "value": outrigger_load_t, "units": "t", "source": "user"},
            {"symbol": "g", "description": "Gravitational acceleration", "value": G, "units": "m/s2", "source": "constant"},
        ],
        compute_fn=lambda: res.load_kn,
        units="kN",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 1},
        references=[{"type": "note", "ref": "1 t = 9.81 kN"}],
    )
    compute_step(
        trace,
        id="G2",
        section="Loads",
        title="Allowable bearing pressure",
        output_symbol="q_a",
        output_description="Allowable ground bearing pressure",
        equation_latex=r"q_a = q_{ult} / FS",
        variables=[
            {"symbol": "q_{ult}", "description": "Ground bearing capacity", "value": ground_capacity_kpa, "units": "kN/m2", "source": "registry"},
            {"symbol": "FS", "description": "Safety factor", "value": safety_factor, "units": "-", "source": "user"},
        ],
        compute_fn=lambda: res.allowable_kpa,
        units="kN/m2",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 1},
        references=[{"type": "table", "ref": "Typical presumed bearing values"}],
    )

    _pressure_step(trace, id="P1", label="Pad", load_kn=res.load_kn, area_m2=res.pad.area_m2, allowable_kpa=res.allowable_kpa)
    if not res.pad.adequate:
        trace.steps[-1].warnings.append("Pad pressure exceeds allowable: spreader mat required.")
    _pressure_step(trace, id="M1", label="Mat", load_kn=res.load_kn, area_m2=res.mat.area_m2, allowable_kpa=res.allowable_kpa)
    if not res.mat.adequate:
        trace.steps[-1].warnings.append("Mat pressure exceeds allowable: larger mat required.")

    compute_step(
        trace,
        id="M2",
        section="Mat sizing",
        title="Minimum square mat",
        output_symbol="b_{min}",
        output_description="Minimum square mat side",
        equation_latex=r"b_{min} = \lceil \sqrt{P / q_a} \cdot 1000 / 100 \rceil \cdot 100",
        variables=[
            {"symbol": "P", "description": "Outrigger load", "value": round(res.load_kn, 3), "units": "kN", "source": "derived"},
            {"symbol": "q_a", "description": "Allowable bearing pressure", "value": round(res.allowable_kpa, 3), "units": "kN/m2", "source": "derived"},
        ],
        compute_fn=lambda: res.min_mat_side_mm,
        units="mm",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 0},
        references=[{"type": "derived", "ref": "Rounded up to the next 100 mm"}],
    )
    return res
