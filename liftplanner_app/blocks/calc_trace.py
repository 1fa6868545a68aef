from __future__ import annotations

import hashlib
import json
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional

RECORD_VERSION = "1.0"

SOURCE_USER = "user"
SOURCE_DEFAULT = "default"
SOURCE_REGISTRY = "registry"

# key suffix -> units shown in the input listing
_UNIT_SUFFIXES = (
    ("_mm", "mm"),
    ("_m", "m"),
    ("_kpa", "kN/m2"),
    ("_kn", "kN"),
    ("_t", "t"),
    ("_pct", "%"),
    ("_deg", "deg"),
    ("_s", "s"),
)


@dataclass(frozen=True)
class TraceMeta:
    tool_id: str
    tool_version: str
    record_version: str
    timestamp: str
    units_system: str
    input_hash: str
    code_basis: Optional[str] = None


@dataclass(frozen=True)
class TraceInput:
    id: str
    label: str
    value: Any
    units: str
    source: str  # user/default/registry


@dataclass(frozen=True)
class Assumption:
    id: str
    text: str


@dataclass(frozen=True)
class CalcVar:
    symbol: str
    description: str
    value: Any
    units: str
    source: str


@dataclass(frozen=True)
class CalcResult:
    value: float
    units: str


@dataclass(frozen=True)
class Rounding:
    rule: str  # "decimals" | "sigfigs"
    digits: int

    def apply(self, x: float) -> float:
        if self.rule == "decimals":
            return round(x, self.digits)
        if self.rule == "sigfigs":
            if x == 0 or not math.isfinite(x):
                return x
            return round(x, self.digits - 1 - int(math.floor(math.log10(abs(x)))))
        raise ValueError(f"Unsupported rounding rule: {self.rule}")


@dataclass(frozen=True)
class Reference:
    type: str  # "config" | "table" | "note" | "derived"
    ref: str


@dataclass(frozen=True)
class CheckResult:
    label: str
    demand: float
    capacity: float
    ratio: float
    pass_fail: str


@dataclass
class CalcStep:
    id: str
    section: str
    title: str
    output_symbol: str
    output_description: str
    equation_latex: str
    substitution_latex: str
    variables: List[CalcVar]
    result_unrounded: CalcResult
    rounding: Rounding
    result_rounded: CalcResult
    references: List[Reference]
    checks: List[CheckResult] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class CalcTrace:
    """Calculation record for one tool run.

    results.json and calc_trace.json are both written from this object; reported
    numbers come from its steps and summary, never from a second computation.
    """

    meta: TraceMeta
    inputs: List[TraceInput] = field(default_factory=list)
    assumptions: List[Assumption] = field(default_factory=list)
    steps: List[CalcStep] = field(default_factory=list)
    tables: Dict[str, Any] = field(default_factory=dict)
    summary: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def new(
        cls,
        *,
        tool_id: str,
        tool_version: str,
        inputs: Dict[str, Any],
        units_system: str = "SI",
        input_hash: Optional[str] = None,
        code_basis: Optional[str] = None,
        input_sources: Optional[Dict[str, str]] = None,
    ) -> "CalcTrace":
        """Start a record for validated inputs.

        Top-level inputs are listed in key order with units inferred from the key
        suffix. input_sources tags them (see input_sources()); untagged keys are "user".
        """
        meta = TraceMeta(
            tool_id=tool_id,
            tool_version=tool_version,
            record_version=RECORD_VERSION,
            timestamp=datetime.now().isoformat(timespec="seconds"),
            units_system=units_system,
            input_hash=input_hash or compute_input_hash(inputs),
            code_basis=code_basis,
        )
        sources = input_sources or {}
        listing = [
            TraceInput(
                id=k,
                label=k.replace("_", " "),
                value=inputs[k],
                units=_infer_units(k),
                source=sources.get(k, SOURCE_USER),
            )
            for k in sorted(inputs)
        ]
        return cls(meta=meta, inputs=listing)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def input_sources(
    inputs: Dict[str, Any],
    defaults: Dict[str, Any],
    registry_keys: Iterable[str] = (),
) -> Dict[str, str]:
    """Source tag per top-level input.

    registry_keys are values resolved from a static table (crane models, ground
    types); other keys are "default" when unchanged from the tool defaults.
    """
    registry = set(registry_keys)
    tags: Dict[str, str] = {}
    for k, v in inputs.items():
        if k in registry:
            tags[k] = SOURCE_REGISTRY
        elif k in defaults and _normalize(defaults[k]) == _normalize(v):
            tags[k] = SOURCE_DEFAULT
        else:
            tags[k] = SOURCE_USER
    return tags


def _infer_units(key: str) -> str:
    for suffix, units in _UNIT_SUFFIXES:
        if key.endswith(suffix):
            return units
    return "-"


def _normalize(v: Any) -> Any:
    if isinstance(v, dict):
        return {str(k): _normalize(v[k]) for k in sorted(v, key=str)}
    if isinstance(v, (list, tuple)):
        return [_normalize(x) for x in v]
    if isinstance(v, Enum):
        return v.value
    if isinstance(v, float):
        # 12 significant digits keeps hashes stable across platforms
        return float(f"{v:.12g}")
    return v


def compute_input_hash(inputs: Dict[str, Any]) -> str:
    """First 12 hex chars of the SHA-256 of the normalized, key-sorted inputs."""
    payload = json.dumps(_normalize(inputs), sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:12]


def _latex_value(value: Any, units: str) -> str:
    text = f"{value:g}" if isinstance(value, (int, float)) else str(value)
    if units and units != "-":
        return f"{text}\\,\\mathrm{{{units}}}"
    return text


def _require(d: Dict[str, Any], keys: Iterable[str], what: str, step_id: str) -> None:
    missing = [k for k in keys if k not in d]
    if missing:
        raise ValueError(f"{what} missing {', '.join(missing)} in step {step_id}.")


def _variables(raw: List[Dict[str, Any]], step_id: str) -> List[CalcVar]:
    out: List[CalcVar] = []
    for v in raw:
        _require(v, ("symbol", "description", "value", "units", "source"), "Variable", step_id)
        out.append(CalcVar(str(v["symbol"]), str(v["description"]), v["value"], str(v["units"]), str(v["source"])))
    return out


def _references(raw: List[Dict[str, Any]], step_id: str) -> List[Reference]:
    out: List[Reference] = []
    for r in raw:
        _require(r, ("type", "ref"), "Reference", step_id)
        out.append(Reference(type=str(r["type"]), ref=str(r["ref"])))
    return out


def _checks(raw: Iterable[Dict[str, Any]]) -> List[CheckResult]:
    return [
        CheckResult(
            label=str(c["label"]),
            demand=float(c["demand"]),
            capacity=float(c["capacity"]),
            ratio=float(c["ratio"]),
            pass_fail=str(c["pass_fail"]),
        )
        for c in raw
    ]


def compute_step(
    trace: CalcTrace,
    *,
    id: str,
    section: str,
    title: str,
    output_symbol: str,
    output_description: str,
    equation_latex: str,
    variables: List[Dict[str, Any]],
    compute_fn: Callable[[], float],
    units: str,
    rounding_rule: Dict[str, Any],
    references: List[Dict[str, Any]],
    checks_builder: Optional[Callable[[float], List[Dict[str, Any]]]] = None,
) -> float:
    """Evaluate one step and append it to the trace.

    Every variable needs symbol/description/value/units/source and every reference
    type/ref, else ValueError. Returns the unrounded value; rounding only affects
    what the record shows.
    """
    if not (id and section and title):
        raise ValueError("compute_step requires non-empty id/section/title.")

    var_objs = _variables(variables, id)
    ref_objs = _references(references, id)
    rounding = Rounding(rule=str(rounding_rule["rule"]), digits=int(rounding_rule["decimals_or_sigfigs"]))

    value = float(compute_fn())

    substitution = equation_latex
    for v in var_objs:
        substitution = substitution.replace(v.symbol, _latex_value(v.value, v.units))

    trace.steps.append(
        CalcStep(
            id=id,
            section=section,
            title=title,
            output_symbol=output_symbol,
            output_description=output_description,
            equation_latex=equation_latex,
            substitution_latex=substitution,
            variables=var_objs,
            result_unrounded=CalcResult(value=value, units=units),
            rounding=rounding,
            result_rounded=CalcResult(value=rounding.apply(value), units=units),
            references=ref_objs,
            checks=_checks(checks_builder(value)) if checks_builder else [],
        )
    )
    return value


def write_run_record(trace: CalcTrace, out_dir: Path, results: Dict[str, Any]) -> Dict[str, Path]:
    """Write calc_trace.json and results.json into the run directory."""
    paths = {"calc_trace": out_dir / "calc_trace.json", "results": out_dir / "results.json"}
    paths["calc_trace"].write_text(json.dumps(trace.to_dict(), indent=2, sort_keys=True, default=str), encoding="utf-8")
    paths["results"].write_text(json.dumps(results, indent=2, ensure_ascii=True, default=str), encoding="utf-8")
    return paths
