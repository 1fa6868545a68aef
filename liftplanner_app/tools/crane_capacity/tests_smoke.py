from __future__ import annotations

import json
from pathlib import Path

import pytest

from liftplanner_app.core.paths import DATA_DIR_ENV
from liftplanner_app.core.settings import save_settings

from .tool import TOOL


def _assert_artifacts(run_dir: Path) -> None:
    required = ["calc_trace.json", "results.json", "run.log"]
    missing = [f for f in required if not (run_dir / f).exists()]
    assert not missing, f"Missing artifacts in {run_dir}: {missing}"


@pytest.fixture(autouse=True)
def _isolated_data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path))


def test_smoke_single_default():
    res = TOOL.run_batch(TOOL.default_inputs())
    assert res["ok"] is True
    assert res["mode"] == "single"
    # GMK3050 at 20 m of 40 m, no height: 50 * 0.5^1.5
    assert res["available_capacity_t"] == pytest.approx(17.678, abs=1e-3)
    assert res["is_safe"] is True
    run_dir = Path(res["run_dir"])
    _assert_artifacts(run_dir)
    saved = json.loads((run_dir / "results.json").read_text(encoding="utf-8"))
    assert saved["input_hash"] == res["input_hash"]
    trace = json.loads((run_dir / "calc_trace.json").read_text(encoding="utf-8"))
    sources = {i["id"]: i["source"] for i in trace["inputs"]}
    assert sources["crane"] == "registry"
    assert sources["radius_m"] == "default"


def test_smoke_multi_crane():
    inputs = TOOL.default_inputs()
    inputs.update(
        {
            "mode": "multi",
            "total_load_t": 40.0,
            "cranes": [
                {"crane_id": "liebherr-ltm1100", "radius_m": 12.0, "height_m": 20.0},
                {"crane_id": "grove-gmk4090", "radius_m": 14.0, "height_m": 20.0},
            ],
        }
    )
    res = TOOL.run_batch(inputs)
    assert res["ok"] is True
    assert len(res["shares"]) == 2
    assert sum(s["share_t"] for s in res["shares"]) == pytest.approx(40.0)
    assert res["total_capacity_t"] == pytest.approx(sum(s["available_capacity_t"] for s in res["shares"]))
    _assert_artifacts(Path(res["run_dir"]))


def test_smoke_settings_override_and_bad_crane():
    save_settings({"crane_capacity": {"derating": {"radius_exponent": 1.0}}})
    res = TOOL.run_batch(TOOL.default_inputs())
    assert res["available_capacity_t"] == pytest.approx(25.0)

    inputs = TOOL.default_inputs()
    inputs["crane"] = {"crane_id": "not-a-crane"}
    bad = TOOL.run_batch(inputs)
    assert bad["ok"] is False
    assert "not-a-crane" in bad["error"]
    assert (Path(bad["run_dir"]) / "run.log").exists()
