from __future__ import annotations

import math

import pytest
from pydantic import ValidationError

from liftplanner_app.blocks.calc_trace import CalcTrace

from .classification import classify_hazard, reclassify_for_vehicle
from .geo import assign_hazards_to_steps, haversine_m, hazards_near_route, is_near_route, route_bbox
from .models import (
    DirectionStep,
    GeoPoint,
    Hazard,
    HazardSeverity,
    HazardType,
    LoadSpecifications,
    RouteCandidate,
    RouteHazardInputs,
    ScoringConfig,
    VehicleSpecifications,
    worst_severity,
)
from .osm import hazard_from_osm_element, hazards_from_osm, parse_osm_measure
from .scoring import analyze_routes, score_route, score_with_trace

LOAD = LoadSpecifications()
VEHICLE = VehicleSpecifications(total_height_m=4.5)


def _bridge(clearance: float, severity: HazardSeverity = HazardSeverity.CAUTION, **kw) -> Hazard:
    return Hazard(type=HazardType.LOW_BRIDGE, severity=severity, clearance_m=clearance, **kw)


def test_low_bridge_below_vehicle_is_unsafe() -> None:
    res = score_route([_bridge(3.5, HazardSeverity.UNSAFE)], vehicle_height_m=4.5)
    assert res.overall_severity == HazardSeverity.UNSAFE
    assert res.safety_score == 80
    assert res.safety_score < 100


@pytest.mark.parametrize("hazards", [None, []])
def test_no_hazards_is_safe(hazards) -> None:
    res = score_route(hazards, vehicle_height_m=4.5)
    assert res.overall_severity == HazardSeverity.SAFE
    assert res.safety_score == 100
    assert res.hazards == ()


def test_malformed_entries_are_skipped() -> None:
    res = score_route(
        [{"type": "low_bridge", "clearance_m": 3.5}, "junk", None, {"type": "not_a_hazard"}, _bridge(5.0)],
        vehicle_height_m=4.5,
    )
    assert len(res.hazards) == 2
    assert [h.severity for h in res.hazards] == [HazardSeverity.UNSAFE, HazardSeverity.SAFE]
    assert res.overall_severity == HazardSeverity.UNSAFE
    assert res.safety_score == 80


def test_clearance_reclassification() -> None:
    # A detector may have marked these differently; the vehicle height decides.
    res = score_route(
        [
            _bridge(4.7, HazardSeverity.SAFE),
            _bridge(5.0, HazardSeverity.UNSAFE),
            Hazard(type=HazardType.TUNNEL, severity=HazardSeverity.SAFE, clearance_m=4.5),
        ],
        vehicle_height_m=4.5,
    )
    assert [h.severity for h in res.hazards] == [
        HazardSeverity.CAUTION,
        HazardSeverity.SAFE,
        HazardSeverity.CAUTION,
    ]
    assert res.overall_severity == HazardSeverity.CAUTION
    assert res.safety_score == 90
    assert res.counts[HazardSeverity.CAUTION] == 2


def test_non_height_hazards_keep_their_severity() -> None:
    weight = Hazard(type=HazardType.WEIGHT_RESTRICTION, severity=HazardSeverity.UNSAFE, clearance_m=10.0)
    unknown = Hazard(type=HazardType.LOW_BRIDGE, severity=HazardSeverity.UNSAFE)
    nan = _bridge(float("nan"), HazardSeverity.SAFE)
    assert reclassify_for_vehicle(weight, 4.5) is weight
    assert reclassify_for_vehicle(unknown, 4.5) is unknown
    assert reclassify_for_vehicle(nan, 4.5) is nan

    res = score_route([weight, unknown, nan], vehicle_height_m=4.5)
    assert res.overall_severity == HazardSeverity.UNSAFE
    assert res.safety_score == 60


def test_score_is_floored_at_zero() -> None:
    res = score_route([_bridge(1.0)] * 6, vehicle_height_m=4.5)
    assert res.safety_score == 0


def test_custom_penalties_and_buffer() -> None:
    cfg = ScoringConfig(penalties={"safe": 1, "caution": 10, "unsafe": 30}, clearance_buffer_m=0.5)
    res = score_route([_bridge(5.0), _bridge(4.9), _bridge(4.0)], vehicle_height_m=4.5, config=cfg)
    assert [h.severity for h in res.hazards] == [
        HazardSeverity.SAFE,
        HazardSeverity.CAUTION,
        HazardSeverity.UNSAFE,
    ]
    assert res.safety_score == 100 - 1 - 10 - 30


def test_penalty_table_must_cover_every_severity() -> None:
    with pytest.raises(ValidationError):
        ScoringConfig(penalties={"caution": 5, "unsafe": 20})
    with pytest.raises(ValidationError):
        ScoringConfig(penalties={"safe": 0, "caution": 25, "unsafe": 20})
    with pytest.raises(ValidationError):
        ScoringConfig(penalties={"safe": -1, "caution": 5, "unsafe": 20})


def test_worst_severity_order() -> None:
    assert worst_severity([]) == HazardSeverity.SAFE
    assert worst_severity([HazardSeverity.CAUTION, HazardSeverity.SAFE]) == HazardSeverity.CAUTION
    assert worst_severity(list(HazardSeverity)) == HazardSeverity.UNSAFE


def test_classify_weight_and_width() -> None:
    load = LoadSpecifications(weight_t=30.0, width_m=2.5)

    def weight(limit: float) -> HazardSeverity:
        return classify_hazard(Hazard(type=HazardType.WEIGHT_RESTRICTION, weight_limit_t=limit), load, VEHICLE)

    def width(limit: float) -> HazardSeverity:
        return classify_hazard(Hazard(type=HazardType.WIDTH_RESTRICTION, width_limit_m=limit), load, VEHICLE)

    assert weight(25.0) == HazardSeverity.UNSAFE
    assert weight(32.0) == HazardSeverity.CAUTION
    assert weight(40.0) == HazardSeverity.SAFE
    assert width(2.0) == HazardSeverity.UNSAFE
    assert width(2.8) == HazardSeverity.CAUTION
    assert width(3.5) == HazardSeverity.SAFE
    assert classify_hazard(Hazard(type=HazardType.LEVEL_CROSSING), load, VEHICLE) == HazardSeverity.CAUTION


def test_parse_osm_measure() -> None:
    assert parse_osm_measure("4.5") == pytest.approx(4.5)
    assert parse_osm_measure("4,5 m") == pytest.approx(4.5)
    assert parse_osm_measure("7.5 t") == pytest.approx(7.5)
    assert parse_osm_measure("14'6\"") == pytest.approx(14 * 0.3048 + 6 * 0.0254)
    assert parse_osm_measure(3) == pytest.approx(3.0)
    for raw in (None, "default", "none", "below_default", ""):
        assert parse_osm_measure(raw) is None


def test_osm_elements_to_hazards() -> None:
    elements = [
        {"id": 1, "lat": 51.5, "lon": -0.12, "tags": {"maxheight": "3.9", "tunnel": "yes", "name": "Old Tunnel"}},
        {"id": 2, "center": {"lat": 51.6, "lon": -0.11}, "tags": {"maxweight": "18"}},
        {"id": 3, "lat": 51.7, "lon": -0.10, "tags": {"maxwidth": "2.8"}},
        {"id": 4, "lat": 51.8, "lon": -0.09, "tags": {"railway": "level_crossing"}},
        {"id": 5, "lat": 51.9, "lon": -0.08, "tags": {"power": "line"}},
        {"id": 6, "lat": 52.0, "lon": -0.07, "tags": {"maxheight": "default", "highway": "residential"}},
    ]
    hazards = hazards_from_osm(elements, LOAD, VEHICLE)
    assert [h.type for h in hazards] == [
        HazardType.TUNNEL,
        HazardType.WEIGHT_RESTRICTION,
        HazardType.WIDTH_RESTRICTION,
        HazardType.LEVEL_CROSSING,
        HazardType.OVERHEAD_LINES,
    ]
    tunnel = hazards[0]
    assert tunnel.id == "osm-1"
    assert tunnel.name == "Old Tunnel"
    assert tunnel.clearance_m == pytest.approx(3.9)
    assert tunnel.severity == HazardSeverity.UNSAFE
    assert hazards[1].location == GeoPoint(lat=51.6, lng=-0.11)
    assert hazards[1].severity == HazardSeverity.UNSAFE  # 30 t load over 18 t limit
    assert hazards[2].severity == HazardSeverity.CAUTION

    assert hazard_from_osm_element({"id": 7, "tags": {}}, LOAD, VEHICLE) is None


def test_haversine_and_near_route() -> None:
    a = GeoPoint(lat=0.0, lng=0.0)
    b = GeoPoint(lat=0.0, lng=1.0)
    assert haversine_m(a, a) == 0.0
    # one degree of longitude on the equator
    assert haversine_m(a, b) == pytest.approx(111194.9, rel=1e-4)

    # antipodal and near-antipodal pairs stay within half the circumference
    half = math.pi * 6371000.0
    assert haversine_m(a, GeoPoint(lat=0.0, lng=180.0)) == pytest.approx(half)
    for lat in (0.1, 12.3456789, 45.0, 89.9):
        far = haversine_m(GeoPoint(lat=lat, lng=-30.0), GeoPoint(lat=-lat, lng=150.0))
        assert far == pytest.approx(half)
        assert far <= half + 1e-6

    geometry = [a, GeoPoint(lat=0.0, lng=0.001)]
    assert is_near_route(GeoPoint(lat=0.0005, lng=0.0), geometry) is True
    assert is_near_route(GeoPoint(lat=0.01, lng=0.0), geometry) is False

    box = route_bbox(geometry)
    assert box["south"] == pytest.approx(-0.01)
    assert box["east"] == pytest.approx(0.011)
    with pytest.raises(ValueError):
        route_bbox([])


def test_hazard_filtering_and_step_assignment() -> None:
    geometry = [GeoPoint(lat=0.0, lng=0.0), GeoPoint(lat=0.0, lng=0.01)]
    near = _bridge(5.0, id="near", location=GeoPoint(lat=0.0, lng=0.0001))
    far = _bridge(5.0, id="far", location=GeoPoint(lat=0.5, lng=0.0))
    unlocated = _bridge(5.0, id="unlocated")

    kept = hazards_near_route([near, far, unlocated], geometry)
    assert [h.id for h in kept] == ["near", "unlocated"]
    assert len(hazards_near_route([near, far], [])) == 2

    steps = [
        DirectionStep(instruction="Start", location=GeoPoint(lat=0.0, lng=0.0)),
        DirectionStep(instruction="End", location=GeoPoint(lat=0.0, lng=0.01)),
    ]
    assigned = assign_hazards_to_steps(steps, kept)
    assert [h.id for h in assigned[0].hazards] == ["near"]
    assert assigned[1].hazards == ()


def test_analyze_routes_ranks_by_score() -> None:
    routes = [
        RouteCandidate(id="a", hazards=[_bridge(3.5)]),
        RouteCandidate(id="b", name="Clear", hazards=[]),
        RouteCandidate(id="c", hazards=[_bridge(4.6)]),
        RouteCandidate(id="d", hazards=[]),
    ]
    options = analyze_routes(routes, LOAD, VEHICLE)
    assert [o.id for o in options] == ["b", "d", "c", "a"]
    assert [o.safety_score for o in options] == [100, 100, 95, 80]
    assert options[0].name == "Clear"
    assert options[1].name == "d"
    assert options[-1].overall_severity == HazardSeverity.UNSAFE


def test_route_inputs_reject_duplicate_ids() -> None:
    with pytest.raises(ValidationError):
        RouteHazardInputs(routes=[{"id": "x"}, {"id": "x"}])


def test_score_trace_step() -> None:
    trace = CalcTrace.new(tool_id="route_hazard", tool_version="test", inputs={}, input_hash="testhash")
    option = analyze_routes([RouteCandidate(id="a", hazards=[_bridge(3.5), _bridge(4.6)])], LOAD, VEHICLE)[0]
    assert score_with_trace(trace, option, step_id="S1") == 75
    step = trace.steps[0]
    assert step.id == "S1"
    assert step.result_unrounded.value == pytest.approx(75.0)
    assert step.checks[0].pass_fail == "FAIL"
    assert step.warnings
