from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from liftplanner_app.blocks.calc_trace import CalcTrace

from .db.ground_types import get_ground_type, list_ground_types
from .evaluation import evaluate_ground_bearing, evaluate_with_trace, min_square_mat_side_mm
from .models import GroundBearingInputs


def test_default_case_mat_inadequate() -> None:
    # 50 t on medium gravel (300 kN/m2, FS 1.5), 400 mm pad, 1.5 m mat
    res = evaluate_ground_bearing(50.0, 300.0, 1.5, 400.0, 1500.0, 1500.0)
    assert res.load_kn == pytest.approx(490.5)
    assert res.allowable_kpa == pytest.approx(200.0)
    assert res.pad.area_m2 == pytest.approx(math.pi * 0.04)
    assert res.pad.pressure_kpa == pytest.approx(490.5 / (math.pi * 0.04))
    assert res.pad.adequate is False
    assert res.pad.utilization_pct == 999.0
    assert res.mat.area_m2 == pytest.approx(2.25)
    assert res.mat.pressure_kpa == pytest.approx(218.0)
    assert res.mat.utilization_pct == pytest.approx(109.0)
    assert res.mat.adequate is False
    assert res.min_mat_side_mm == 1600.0


def test_pressure_equal_to_allowable_is_adequate() -> None:
    cap = 100.0 * 9.81
    res = evaluate_ground_bearing(100.0, cap, 1.0, 400.0, 1000.0, 1000.0)
    assert res.mat.adequate is True
    assert res.mat.utilization_pct == pytest.approx(100.0)


def test_min_mat_side_rounds_up() -> None:
    assert min_square_mat_side_mm(98.1, 500.0) == 500.0
    assert min_square_mat_side_mm(0.0, 200.0) == 0.0


def test_ground_registry() -> None:
    assert get_ground_type("Clay-Soft").capacity_kpa == 75.0
    assert len(list_ground_types()) == 10
    with pytest.raises(ValueError):
        get_ground_type("custom")
    with pytest.raises(ValueError):
        get_ground_type("swamp")


def test_input_validation() -> None:
    with pytest.raises(ValidationError):
        GroundBearingInputs(ground_type="custom")
    with pytest.raises(ValidationError):
        GroundBearingInputs(ground_type="custom", custom_capacity_kpa=0.0)
    with pytest.raises(ValidationError):
        GroundBearingInputs(mat_size="9m x 9m")
    with pytest.raises(ValidationError):
        GroundBearingInputs(safety_factor=0.0)
    assert GroundBearingInputs(ground_type="custom", custom_capacity_kpa=250.0).custom_capacity_kpa == 250.0


def test_trace_steps() -> None:
    trace = CalcTrace.new(tool_id="ground_bearing", tool_version="test", inputs={}, input_hash="testhash")
    res = evaluate_with_trace(trace, 50.0, 300.0, 1.5, 400.0, 1500.0, 1500.0)
    assert [s.id for s in trace.steps] == ["G1", "G2", "P1", "M1", "M2"]
    assert trace.steps[3].result_unrounded.value == pytest.approx(res.mat.pressure_kpa)
    assert trace.steps[3].checks[0].pass_fail == "FAIL"
    assert trace.steps[3].warnings
    assert trace.steps[4].result_rounded.value == 1600.0
