from __future__ import annotations

import pytest
from pydantic import BaseModel, Field

from liftplanner_app.blocks.calc_trace import CalcTrace, compute_input_hash, compute_step, input_sources

from .loader import discover_tools, tools_by_id
from .paths import DATA_DIR_ENV, create_run_dir, user_data_dir
from .schema_utils import validate_inputs
from .settings import load_section, load_settings, save_settings, settings_path


class _Section(BaseModel):
    factor: float = Field(1.0, gt=0.0)


@pytest.fixture(autouse=True)
def _isolated_data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv(DATA_DIR_ENV, str(tmp_path))


def test_data_dir_override(tmp_path):
    assert user_data_dir() == tmp_path
    a = create_run_dir("demo", "abcdef123456")
    b = create_run_dir("demo", "abcdef123456")
    assert a != b
    assert a.parent == tmp_path / "demo" / "runs"
    assert a.name.split("_")[-1].startswith("abcdef")


def test_discover_tools():
    tools = discover_tools()
    assert {t.meta.id for t in tools} == {"crane_capacity", "ground_bearing", "route_hazard"}
    keys = [(t.meta.category.lower(), t.meta.name.lower()) for t in tools]
    assert keys == sorted(keys)
    assert "route_hazard" in tools_by_id()


def test_settings_sections():
    assert load_settings() == {}
    assert load_section("demo.section", _Section).factor == 1.0

    save_settings({"demo": {"section": {"factor": 2.5}}})
    assert load_section("demo.section", _Section).factor == 2.5

    save_settings({"demo": {"section": {"factor": -1}}})
    assert load_section("demo.section", _Section).factor == 1.0

    settings_path().write_text("{not json", encoding="utf-8")
    assert load_settings() == {}


def test_validate_inputs():
    ok, err = validate_inputs(_Section, {"factor": 3})
    assert err is None and ok == {"factor": 3.0}
    bad, err = validate_inputs(_Section, {"factor": 0})
    assert bad == {} and "factor" in err
    raw = {"x": 1}
    assert validate_inputs(None, raw) == (raw, None)


def test_input_hash_is_order_independent():
    h1 = compute_input_hash({"a": 1.0, "b": {"y": 2, "x": [1, 2]}})
    h2 = compute_input_hash({"b": {"x": [1, 2], "y": 2}, "a": 1.0000000000000002})
    assert h1 == h2
    assert len(h1) == 12
    assert compute_input_hash({"a": 1.1}) != h1


def test_compute_step_requires_complete_variables():
    trace = CalcTrace.new(tool_id="demo", tool_version="test", inputs={"radius_m": 10.0})
    assert trace.inputs[0].units == "m"
    with pytest.raises(ValueError):
        compute_step(
            trace,
            id="X1",
            section="Demo",
            title="Incomplete",
            output_symbol="x",
            output_description="x",
            equation_latex="x = a",
            variables=[{"symbol": "a", "value": 1.0}],
            compute_fn=lambda: 1.0,
            units="-",
            rounding_rule={"rule": "decimals", "decimals_or_sigfigs": 2},
            references=[],
        )
    value = compute_step(
        trace,
        id="X2",
        section="Demo",
        title="Complete",
        output_symbol="x",
        output_description="x",
        equation_latex="x = a / 3",
        variables=[{"symbol": "a", "description": "a", "value": 1.0, "units": "-", "source": "user"}],
        compute_fn=lambda: 1.0 / 3.0,
        units="-",
        rounding_rule={"rule": "sigfigs", "decimals_or_sigfigs": 2},
        references=[{"type": "note", "ref": "demo"}],
    )
    assert value == pytest.approx(1.0 / 3.0)
    assert trace.steps[-1].result_rounded.value == pytest.approx(0.33)


def test_input_sources_and_listing():
    defaults = {"radius_m": 20.0, "height_m": 0.0, "crane": {"crane_id": "a"}}
    inputs = {"radius_m": 25.0, "height_m": 0.0, "crane": {"crane_id": "b"}, "extra_t": 1.0}
    tags = input_sources(inputs, defaults, registry_keys=["crane"])
    assert tags == {"radius_m": "user", "height_m": "default", "crane": "registry", "extra_t": "user"}

    trace = CalcTrace.new(tool_id="demo", tool_version="test", inputs=inputs, input_sources=tags)
    listing = {i.id: (i.units, i.source) for i in trace.inputs}
    assert listing["height_m"] == ("m", "default")
    assert listing["crane"] == ("-", "registry")
    assert listing["extra_t"] == ("t", "user")
    assert trace.meta.record_version == "1.0"
    assert trace.meta.input_hash == compute_input_hash(inputs)
