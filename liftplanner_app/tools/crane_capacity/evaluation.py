from __future__ import annotations

import math
from typing import Optional, Tuple

from liftplanner_app.blocks.calc_trace import CalcTrace, compute_step

from .models import CapacityResult, CraneEnvelope, DeratingConfig, LiftRequest

DEFAULT_DERATING = DeratingConfig()


def _radius_derate(radius_m: float, max_radius_m: float, cfg: DeratingConfig) -> Tuple[float, float]:
    """
    Radius derating factor.

      r_ratio  = R / R_max
      f_R      = max(f_R,min, (1 - r_ratio)^n)

    The power term is taken on max(0, 1 - r_ratio) so reaches past R_max land on
    the floor instead of a complex root.
    """
    ratio = float(radius_m) / float(max_radius_m)
    base = max(0.0, 1.0 - ratio)
    return ratio, max(cfg.radius_floor, base ** cfg.radius_exponent)


def _height_derate(height_m: float, max_height_m: float, cfg: DeratingConfig) -> Tuple[float, float]:
    """
    Height derating factor.

      h_ratio = H / H_max
      f_H     = max(f_H,min, 1 - h_ratio * k_H)
    """
    ratio = float(height_m) / float(max_height_m)
    return ratio, max(cfg.height_floor, 1.0 - ratio * cfg.height_slope)


def _out_of_envelope(envelope: CraneEnvelope, request: LiftRequest) -> bool:
    # undefined or infinite radius/height never yields capacity
    if not (math.isfinite(request.radius_m) and math.isfinite(request.height_m)):
        return True
    return request.radius_m > envelope.max_radius_m or request.height_m > envelope.max_height_m


def safety_margin_pct(available_t: float, load_t: float) -> float:
    if available_t == 0:
        return 0.0
    return (available_t - load_t) / available_t * 100.0


def evaluate_capacity(
    envelope: CraneEnvelope,
    request: LiftRequest,
    config: Optional[DeratingConfig] = None,
) -> CapacityResult:
    """Derated lifting capacity for one crane at one radius/height.

    Both deratings apply; the envelope cutoff is checked afterwards and zeroes the
    capacity when radius or height exceeds the crane's limits or is not finite. Never raises.
    """
    cfg = config or DEFAULT_DERATING
    r_ratio, f_r = _radius_derate(request.radius_m, envelope.max_radius_m, cfg)
    h_ratio, f_h = _height_derate(request.height_m, envelope.max_height_m, cfg)

    capacity = envelope.rated_capacity_t * f_r * f_h
    outside = _out_of_envelope(envelope, request)
    if outside:
        capacity = 0.0
    capacity = max(0.0, capacity)

    load = float(request.load_weight_t)
    return CapacityResult(
        available_capacity_t=float(capacity),
        is_safe=bool(capacity > load),
        safety_margin_pct=float(safety_margin_pct(capacity, load)),
        radius_ratio=float(r_ratio),
        radius_derate=float(f_r),
        height_ratio=float(h_ratio),
        height_derate=float(f_h),
        out_of_envelope=bool(outside),
    )


def evaluate_with_trace(
    trace: CalcTrace,
    envelope: CraneEnvelope,
    request: LiftRequest,
    config: Optional[DeratingConfig] = None,
    *,
    step_prefix: str = "",
    section: str = "Capacity",
    check_load: bool = True,
) -> CapacityResult:
    """Same as evaluate_capacity, recording every intermediate value as a CalcStep."""
    cfg = config or DEFAULT_DERATING
    res = evaluate_capacity(envelope, request, cfg)
    p = step_prefix
    ref_cfg = {"type": "config", "ref": "crane_capacity.derating"}

    compute_step(
        trace,
        id=f"{p}R1",
        section=section,
        title="Radius ratio",
        output_symbol="r_{R}",
        output_description="Working radius as a fraction of maximum radius",
        equation_latex=r"r_{R} = \frac{R}{R_{max}}",
        variables=[
            {"symbol": "R_{max}", "description": "Maximum radius", "value": envelope.max_radius_m, "units": "m", "source": "crane"},
            {"symbol": "R", "description": "Working radius", "value": request.radius_m, "units": "m", "source": "input:radius_m"},
        ],
        compute_fn=lambda: res.radius_ratio,
        units="-",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 4},
        references=[{"type": "derived", "ref": "evaluation._radius_derate"}],
    )

    compute_step(
        trace,
        id=f"{p}R2",
        section=section,
        title="Radius derating factor",
        output_symbol="f_{R}",
        output_description="Capacity reduction for working radius",
        equation_latex=r"f_{R} = \max\left(f_{R,min},\ (1 - r_{R})^{n}\right)",
        variables=[
            {"symbol": "f_{R,min}", "description": "Radius derating floor", "value": cfg.radius_floor, "units": "-", "source": "config:radius_floor"},
            {"symbol": "r_{R}", "description": "Radius ratio", "value": res.radius_ratio, "units": "-", "source": f"step:{p}R1"},
            {"symbol": "n", "description": "Radius derating exponent", "value": cfg.radius_exponent, "units": "-", "source": "config:radius_exponent"},
        ],
        compute_fn=lambda: res.radius_derate,
        units="-",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 4},
        references=[ref_cfg],
    )

    compute_step(
        trace,
        id=f"{p}H1",
        section=section,
        title="Height ratio",
        output_symbol="r_{H}",
        output_description="Lift height as a fraction of maximum height",
        equation_latex=r"r_{H} = \frac{H}{H_{max}}",
        variables=[
            {"symbol": "H_{max}", "description": "Maximum height", "value": envelope.max_height_m, "units": "m", "source": "crane"},
            {"symbol": "H", "description": "Lift height", "value": request.height_m, "units": "m", "source": "input:height_m"},
        ],
        compute_fn=lambda: res.height_ratio,
        units="-",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 4},
        references=[{"type": "derived", "ref": "evaluation._height_derate"}],
    )

    compute_step(
        trace,
        id=f"{p}H2",
        section=section,
        title="Height derating factor",
        output_symbol="f_{H}",
        output_description="Capacity reduction for lift height",
        equation_latex=r"f_{H} = \max\left(f_{H,min},\ 1 - r_{H}\,k_{H}\right)",
        variables=[
            {"symbol": "f_{H,min}", "description": "Height derating floor", "value": cfg.height_floor, "units": "-", "source": "config:height_floor"},
            {"symbol": "r_{H}", "description": "Height ratio", "value": res.height_ratio, "units": "-", "source": f"step:{p}H1"},
            {"symbol": "k_{H}", "description": "Height derating slope", "value": cfg.height_slope, "units": "-", "source": "config:height_slope"},
        ],
        compute_fn=lambda: res.height_derate,
        units="-",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 4},
        references=[ref_cfg],
    )

    compute_step(
        trace,
        id=f"{p}C1",
        section=section,
        title="Available capacity",
        output_symbol="C_{av}",
        output_description="Derated capacity, zero outside the crane envelope",
        equation_latex=r"C_{av} = C_{rated}\,f_{R}\,f_{H}",
        variables=[
            {"symbol": "C_{rated}", "description": "Rated capacity", "value": envelope.rated_capacity_t, "units": "t", "source": "crane"},
            {"symbol": "f_{R}", "description": "Radius derating", "value": res.radius_derate, "units": "-", "source": f"step:{p}R2"},
            {"symbol": "f_{H}", "description": "Height derating", "value": res.height_derate, "units": "-", "source": f"step:{p}H2"},
        ],
        compute_fn=lambda: res.available_capacity_t,
        units="t",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 2},
        references=[{"type": "derived", "ref": "evaluation.evaluate_capacity"}],
    )
    if res.out_of_envelope:
        trace.steps[-1].warnings.append(
            f"Radius {request.radius_m:g} m / height {request.height_m:g} m outside envelope "
            f"({envelope.max_radius_m:g} m / {envelope.max_height_m:g} m): capacity set to 0."
        )

    if check_load:
        compute_step(
            trace,
            id=f"{p}S1",
            section=section,
            title="Safety margin",
            output_symbol="m_{s}",
            output_description="Headroom between available capacity and load",
            equation_latex=r"m_{s} = \frac{C_{av} - W}{C_{av}} \cdot 100",
            variables=[
                {"symbol": "C_{av}", "description": "Available capacity", "value": res.available_capacity_t, "units": "t", "source": f"step:{p}C1"},
                {"symbol": "W", "description": "Load weight", "value": request.load_weight_t, "units": "t", "source": "input:load_weight_t"},
            ],
            compute_fn=lambda: res.safety_margin_pct,
            units="%",
            rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 1},
            references=[{"type": "derived", "ref": "evaluation.safety_margin_pct"}],
            checks_builder=lambda _v: [
                {
                    "label": "Load < available capacity",
                    "demand": request.load_weight_t,
                    "capacity": res.available_capacity_t,
                    "ratio": (request.load_weight_t / res.available_capacity_t) if res.available_capacity_t > 0 else float("inf"),
                    "pass_fail": "PASS" if res.is_safe else "FAIL",
                }
            ],
        )

    return res
