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


def test_smoke_default_route():
    res = TOOL.run_batch(TOOL.default_inputs())
    assert res["ok"] is True
    assert res["recommended_route_id"] == "route-1"
    route = res["routes"][0]
    # 4.6 m bridge under a 4.5 m vehicle (caution) plus a level crossing (caution)
    assert route["safety_score"] == 90
    assert route["overall_severity"] == "caution"
    assert route["hazard_counts"] == {"safe": 0, "caution": 2, "unsafe": 0}
    assert res["is_safe"] is True

    run_dir = Path(res["run_dir"])
    _assert_artifacts(run_dir)
    trace = json.loads((run_dir / "calc_trace.json").read_text(encoding="utf-8"))
    assert [s["id"] for s in trace["steps"]] == ["S1"]


def test_smoke_taller_vehicle_is_ranked_below_clear_route():
    inputs = TOOL.default_inputs()
    inputs["vehicle"]["total_height_m"] = 4.8
    inputs["routes"].append({"id": "route-2", "name": "Ring road", "distance_m": 6100.0})
    res = TOOL.run_batch(inputs)
    assert res["ok"] is True
    assert [r["id"] for r in res["routes"]] == ["route-2", "route-1"]
    assert res["routes"][1]["overall_severity"] == "unsafe"
    assert res["routes"][1]["safety_score"] == 75
    _assert_artifacts(Path(res["run_dir"]))


def test_smoke_settings_override_and_failure():
    save_settings({"route_hazard": {"scoring": {"penalties": {"safe": 0, "caution": 10, "unsafe": 40}}}})
    res = TOOL.run_batch(TOOL.default_inputs())
    assert res["routes"][0]["safety_score"] == 80

    inputs = TOOL.default_inputs()
    inputs["routes"][0]["osm_elements"].append({"id": 9, "lat": 120.0, "lon": 0.0, "tags": {"maxheight": "4"}})
    bad = TOOL.run_batch(inputs)
    assert bad["ok"] is False
    assert (Path(bad["run_dir"]) / "run.log").exists()
