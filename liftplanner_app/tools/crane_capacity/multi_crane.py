from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from liftplanner_app.blocks.calc_trace import CalcTrace, compute_step

from .evaluation import evaluate_capacity, evaluate_with_trace, safety_margin_pct
from .models import CapacityResult, CraneEnvelope, DeratingConfig, LiftRequest


@dataclass(frozen=True)
class CraneShare:
    index: int
    label: str
    available_capacity_t: float
    share_t: float
    utilization_pct: float


@dataclass(frozen=True)
class MultiCraneResult:
    total_capacity_t: float
    total_load_t: float
    is_safe: bool
    safety_margin_pct: float
    shares: List[CraneShare]


def aggregate_cranes(
    capacities_t: Sequence[float],
    total_load_t: float,
    labels: Optional[Sequence[str]] = None,
) -> MultiCraneResult:
    """
    Combine independently derated cranes into one multi-crane lift.

      C_tot   = sum(C_i)
      share_i = C_i / C_tot * W
      u_i     = share_i / C_i * 100

    Load is split in proportion to capacity, i.e. a rigid spreader that shares load
    evenly; rigging-induced redistribution is not modelled.
    """
    caps = [float(c) for c in capacities_t]
    names = list(labels) if labels is not None else [f"Crane {i + 1}" for i in range(len(caps))]
    total = sum(caps)
    load = float(total_load_t)

    shares: List[CraneShare] = []
    for i, cap in enumerate(caps):
        share = (cap / total) * load if total > 0 else 0.0
        util = (share / cap) * 100.0 if cap > 0 else 0.0
        shares.append(
            CraneShare(
                index=i,
                label=str(names[i]) if i < len(names) else f"Crane {i + 1}",
                available_capacity_t=cap,
                share_t=share,
                utilization_pct=util,
            )
        )

    return MultiCraneResult(
        total_capacity_t=total,
        total_load_t=load,
        is_safe=bool(total > load),
        safety_margin_pct=float(safety_margin_pct(total, load)),
        shares=shares,
    )


def evaluate_multi_crane(
    entries: Sequence[Tuple[CraneEnvelope, LiftRequest]],
    total_load_t: float,
    config: Optional[DeratingConfig] = None,
) -> Tuple[List[CapacityResult], MultiCraneResult]:
    """Derate each crane at its own radius/height, then aggregate."""
    results = [evaluate_capacity(env, req, config) for env, req in entries]
    labels = [env.name or f"Crane {i + 1}" for i, (env, _req) in enumerate(entries)]
    agg = aggregate_cranes([r.available_capacity_t for r in results], total_load_t, labels)
    return results, agg


def evaluate_multi_with_trace(
    trace: CalcTrace,
    entries: Sequence[Tuple[CraneEnvelope, LiftRequest]],
    total_load_t: float,
    config: Optional[DeratingConfig] = None,
) -> Tuple[List[CapacityResult], MultiCraneResult]:
    results: List[CapacityResult] = []
    for i, (env, req) in enumerate(entries):
        results.append(
            evaluate_with_trace(
                trace,
                env,
                req,
                config,
                step_prefix=f"K{i + 1}.",
                section=f"Crane {i + 1}: {env.name or 'custom'}",
                check_load=False,
            )
        )

    labels = [env.name or f"Crane {i + 1}" for i, (env, _req) in enumerate(entries)]
    agg = aggregate_cranes([r.available_capacity_t for r in results], total_load_t, labels)

    compute_step(
        trace,
        id="M1",
        section="Multi-crane",
        title="Combined available capacity",
        output_symbol="C_{tot}",
        output_description="Sum of independently derated crane capacities",
        equation_latex=r"C_{tot} = \sum_i C_{av,i}",
        variables=[
            {"symbol": f"C_{{av,{i + 1}}}", "description": s.label, "value": s.available_capacity_t, "units": "t", "source": f"step:K{i + 1}.C1"}
            for i, s in enumerate(agg.shares)
        ],
        compute_fn=lambda: agg.total_capacity_t,
        units="t",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 2},
        references=[{"type": "derived", "ref": "multi_crane.aggregate_cranes"}],
    )

    for s in agg.shares:
        compute_step(
            trace,
            id=f"M2.{s.index + 1}",
            section="Multi-crane",
            title=f"Load share - {s.label}",
            output_symbol=f"W_{{{s.index + 1}}}",
            output_description="Proportional share of the combined load",
            equation_latex=r"W_{i} = \frac{C_{av,i}}{C_{tot}}\,W",
            variables=[
                {"symbol": "C_{av,i}", "description": "Crane capacity", "value": s.available_capacity_t, "units": "t", "source": f"step:K{s.index + 1}.C1"},
                {"symbol": "C_{tot}", "description": "Combined capacity", "value": agg.total_capacity_t, "units": "t", "source": "step:M1"},
                {"symbol": "W", "description": "Total load", "value": agg.total_load_t, "units": "t", "source": "input:total_load_t"},
            ],
            compute_fn=lambda s=s: s.share_t,
            units="t",
            rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 2},
            references=[{"type": "note", "ref": "Rigid spreader, load shared in proportion to capacity"}],
            checks_builder=lambda _v, s=s: [
                {
                    "label": "Share <= crane capacity",
                    "demand": s.share_t,
                    "capacity": s.available_capacity_t,
                    "ratio": s.utilization_pct / 100.0,
                    "pass_fail": "PASS" if s.share_t < s.available_capacity_t else "FAIL",
                }
            ],
        )

    compute_step(
        trace,
        id="M3",
        section="Multi-crane",
        title="Combined safety margin",
        output_symbol="m_{s}",
        output_description="Headroom between combined capacity and total load",
        equation_latex=r"m_{s} = \frac{C_{tot} - W}{C_{tot}} \cdot 100",
        variables=[
            {"symbol": "C_{tot}", "description": "Combined capacity", "value": agg.total_capacity_t, "units": "t", "source": "step:M1"},
            {"symbol": "W", "description": "Total load", "value": agg.total_load_t, "units": "t", "source": "input:total_load_t"},
        ],
        compute_fn=lambda: agg.safety_margin_pct,
        units="%",
        rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 1},
        references=[{"type": "derived", "ref": "evaluation.safety_margin_pct"}],
        checks_builder=lambda _v: [
            {
                "label": "Total load < combined capacity",
                "demand": agg.total_load_t,
                "capacity": agg.total_capacity_t,
                "ratio": (agg.total_load_t / agg.total_capacity_t) if agg.total_capacity_t > 0 else float("inf"),
                "pass_fail": "PASS" if agg.is_safe else "FAIL",
            }
        ],
    )

    return results, agg
