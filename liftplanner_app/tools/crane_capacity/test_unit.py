from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from liftplanner_app.blocks.calc_trace import CalcTrace

from .crane_library import resolve_envelope
from .db.mobile_cranes import get_mobile_crane, list_mobile_cranes
from .evaluation import evaluate_capacity, evaluate_with_trace
from .models import CraneCapacityInputs, CraneEnvelope, CraneSelection, DeratingConfig, LiftRequest
from .multi_crane import aggregate_cranes, evaluate_multi_crane

ENV = CraneEnvelope(rated_capacity_t=100.0, max_radius_m=40.0, max_height_m=58.0)


def _trace() -> CalcTrace:
    return CalcTrace.new(tool_id="crane_capacity", tool_version="test", inputs={}, input_hash="testhash")


def test_half_radius_example() -> None:
    res = evaluate_capacity(ENV, LiftRequest(radius_m=20.0, height_m=0.0, load_weight_t=50.0))
    assert res.radius_ratio == pytest.approx(0.5)
    assert res.radius_derate == pytest.approx(0.5 ** 1.5)
    assert res.height_derate == pytest.approx(1.0)
    assert res.available_capacity_t == pytest.approx(35.355, abs=1e-3)
    assert res.is_safe is False
    assert res.safety_margin_pct < 0.0


def test_radius_beyond_envelope_is_zero() -> None:
    res = evaluate_capacity(ENV, LiftRequest(radius_m=45.0, height_m=0.0, load_weight_t=1.0))
    assert res.out_of_envelope is True
    assert res.available_capacity_t == 0.0
    assert res.is_safe is False
    assert res.safety_margin_pct == 0.0


def test_height_beyond_envelope_is_zero() -> None:
    res = evaluate_capacity(ENV, LiftRequest(radius_m=5.0, height_m=58.5))
    assert res.available_capacity_t == 0.0


def test_floors_at_envelope_limits() -> None:
    res = evaluate_capacity(ENV, LiftRequest(radius_m=40.0, height_m=58.0))
    assert res.out_of_envelope is False
    assert res.radius_derate == pytest.approx(0.05)
    assert res.height_derate == pytest.approx(0.7)
    assert res.available_capacity_t == pytest.approx(100.0 * 0.05 * 0.7)


def test_capacity_equal_to_load_is_not_safe() -> None:
    res = evaluate_capacity(ENV, LiftRequest(radius_m=0.0, height_m=0.0, load_weight_t=100.0))
    assert res.available_capacity_t == pytest.approx(100.0)
    assert res.is_safe is False
    assert res.safety_margin_pct == pytest.approx(0.0)


def test_capacity_non_increasing_with_radius() -> None:
    prev = math.inf
    for i in range(0, 41):
        cap = evaluate_capacity(ENV, LiftRequest(radius_m=float(i), height_m=12.0)).available_capacity_t
        assert cap <= prev + 1e-12
        prev = cap


def test_capacity_never_negative_or_raises() -> None:
    for r in (-5.0, 0.0, 10.0, 39.9, 40.0, 41.0, 1e9, math.inf, math.nan):
        for h in (-3.0, 0.0, 30.0, 58.0, 70.0, math.nan):
            res = evaluate_capacity(ENV, LiftRequest(radius_m=r, height_m=h, load_weight_t=10.0))
            assert res.available_capacity_t >= 0.0
            assert res.is_safe == (res.available_capacity_t > 10.0)


def test_negative_radius_flows_through_formula() -> None:
    # evaluator does not validate; the tool input model rejects negatives
    res = evaluate_capacity(ENV, LiftRequest(radius_m=-5.0, height_m=0.0))
    assert res.radius_derate == pytest.approx(1.125 ** 1.5)
    assert res.available_capacity_t == pytest.approx(100.0 * 1.125 ** 1.5)
    assert res.available_capacity_t > ENV.rated_capacity_t
    with pytest.raises(ValidationError):
        CraneCapacityInputs(radius_m=-5.0)


@pytest.mark.parametrize(
    "radius, height", [(math.nan, 0.0), (10.0, math.nan), (math.nan, math.nan), (-math.inf, 0.0), (5.0, -math.inf)]
)
def test_non_finite_radius_or_height_gives_no_capacity(radius: float, height: float) -> None:
    res = evaluate_capacity(ENV, LiftRequest(radius_m=radius, height_m=height, load_weight_t=4.0))
    assert res.available_capacity_t == 0.0
    assert res.is_safe is False
    assert res.out_of_envelope is True


def test_derating_config_override() -> None:
    cfg = DeratingConfig(radius_exponent=1.0, height_slope=0.0)
    res = evaluate_capacity(ENV, LiftRequest(radius_m=20.0, height_m=29.0), cfg)
    assert res.available_capacity_t == pytest.approx(50.0)


def test_multi_crane_sum_and_shares() -> None:
    agg = aggregate_cranes([30.0, 10.0, 0.0], total_load_t=20.0)
    assert agg.total_capacity_t == pytest.approx(40.0)
    assert sum(s.share_t for s in agg.shares) == pytest.approx(20.0)
    assert agg.shares[0].share_t == pytest.approx(15.0)
    assert agg.shares[0].utilization_pct == pytest.approx(50.0)
    assert agg.shares[1].utilization_pct == pytest.approx(50.0)
    assert agg.shares[2].share_t == 0.0
    assert agg.shares[2].utilization_pct == 0.0
    assert agg.is_safe is True
    assert agg.safety_margin_pct == pytest.approx(50.0)


def test_multi_crane_zero_capacity() -> None:
    agg = aggregate_cranes([0.0, 0.0], total_load_t=5.0)
    assert agg.total_capacity_t == 0.0
    assert all(s.share_t == 0.0 for s in agg.shares)
    assert agg.is_safe is False
    assert agg.safety_margin_pct == 0.0


def test_multi_crane_total_matches_individual_evaluations() -> None:
    entries = [
        (ENV, LiftRequest(radius_m=10.0, height_m=20.0)),
        (ENV, LiftRequest(radius_m=25.0, height_m=5.0)),
        (ENV, LiftRequest(radius_m=45.0, height_m=5.0)),
    ]
    per_crane, agg = evaluate_multi_crane(entries, total_load_t=30.0)
    assert agg.total_capacity_t == pytest.approx(sum(r.available_capacity_t for r in per_crane))
    assert per_crane[2].available_capacity_t == 0.0
    assert sum(s.share_t for s in agg.shares) == pytest.approx(30.0)


def test_registry_lookup() -> None:
    c = get_mobile_crane("Grove-GMK3050")
    assert c.rated_capacity_t == 50.0
    assert c.max_radius_m == 40.0
    assert c.max_height_m == 58.0
    with pytest.raises(ValueError):
        get_mobile_crane("no-such-crane")
    caps = [c.rated_capacity_t for c in list_mobile_cranes(min_capacity_t=500.0)]
    assert caps == sorted(caps)
    assert min(caps) >= 500.0


def test_resolve_envelope_overrides_and_custom() -> None:
    env = resolve_envelope(CraneSelection(crane_id="grove-gmk3050", max_radius_m=35.0))
    assert env.rated_capacity_t == 50.0
    assert env.max_radius_m == 35.0
    custom = resolve_envelope(
        CraneSelection(crane_id=None, rated_capacity_t=12.0, max_radius_m=15.0, max_height_m=20.0)
    )
    assert custom.crane_id is None
    assert custom.rated_capacity_t == 12.0
    with pytest.raises(ValidationError):
        CraneSelection(crane_id=None, rated_capacity_t=12.0)


def test_inputs_reject_negative_form_values() -> None:
    with pytest.raises(ValidationError):
        CraneCapacityInputs(radius_m=-1.0)
    with pytest.raises(ValidationError):
        CraneCapacityInputs(mode="multi")


def test_trace_records_steps_and_envelope_warning() -> None:
    tr = _trace()
    res = evaluate_with_trace(tr, ENV, LiftRequest(radius_m=45.0, height_m=0.0, load_weight_t=5.0))
    ids = [s.id for s in tr.steps]
    assert ids == ["R1", "R2", "H1", "H2", "C1", "S1"]
    c1 = tr.steps[4]
    assert c1.result_unrounded.value == res.available_capacity_t == 0.0
    assert c1.warnings
    assert tr.steps[5].checks[0].pass_fail == "FAIL"
