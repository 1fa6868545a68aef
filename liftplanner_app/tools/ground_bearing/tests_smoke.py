from __future__ import annotations

from pathlib import Path

import pytest

from liftplanner_app.core.paths import DATA_DIR_ENV

from .tool import TOOL


def _assert_artifacts(run_dir: Path) -> None:
    required = ["calc_trace.json", "results.json", "run.log"]
    missing = [f for f in required if not (run_dir / f).exists()]
    assert not missing, f"Missing artifacts in {run_dir}: {missing}"


@pytest.fixture(autouse=True)
def _isolated_data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path))


def test_smoke_default():
    res = TOOL.run_batch(TOOL.default_inputs())
    assert res["ok"] is True
    assert res["ground"] == "Medium Gravel/Sand"
    assert res["mat"]["adequate"] is False
    assert res["min_mat_side_mm"] == 1600.0
    assert res["is_safe"] is False
    _assert_artifacts(Path(res["run_dir"]))


def test_smoke_standard_mat_and_custom_ground():
    inputs = TOOL.default_inputs()
    inputs.update({"ground_type": "custom", "custom_capacity_kpa": 1000.0, "safety_factor": 2.0, "mat_size": "2.0m x 2.0m"})
    res = TOOL.run_batch(inputs)
    assert res["ok"] is True
    assert res["mat_width_mm"] == 2000.0
    assert res["allowable_kpa"] == pytest.approx(500.0)
    assert res["mat"]["pressure_kpa"] == pytest.approx(490.5 / 4.0)
    assert res["is_safe"] is True


def test_smoke_unknown_ground_type():
    inputs = TOOL.default_inputs()
    inputs["ground_type"] = "swamp"
    res = TOOL.run_batch(inputs)
    assert res["ok"] is False
    assert "swamp" in res["error"]
