"""Tests for scenario/mitigation normalization."""

import math

import pytest

from impact_engine.errors import InvalidInputError
from impact_engine.scenario import (
    DEFAULT_IMPACTOR_DENSITY,
    MAX_DENSITY_KGPM3,
    MAX_DIAMETER_M,
    MAX_SPEED_MPS,
    TERRAINS,
    ImpactScenario,
    MitigationStrategy,
    normalize_mitigation,
    normalize_scenario,
    resolve_terrain,
)


def _fields(exc_info):
    return {e.field for e in exc_info.value.errors}


def test_string_values_are_coerced(small_body_scenario):
    raw = {k: str(v) for k, v in small_body_scenario.items()}
    s = normalize_scenario(raw)
    assert s.diameter_m == 20.0
    assert s.approach_speed_mps == 18_500.0
    assert s.terrain is TERRAINS["rock"]


def test_velocity_in_kms_is_converted_to_si():
    s = normalize_scenario({"diameter_m": 50, "velocity_kms": 17.5, "angle_deg": 45, "terrain": "rock",
                            "lat": 0, "lng": 0})
    assert s.approach_speed_mps == pytest.approx(17_500.0)


def test_defaults_are_filled_and_recorded():
    s = normalize_scenario({"diameter_m": 50, "approach_speed_mps": 12_000, "terrain": "sediment",
                            "lat": 0, "lng": 0})
    assert s.density_kgpm3 == DEFAULT_IMPACTOR_DENSITY
    assert s.angle_deg == 45.0
    assert any("density" in a for a in s.assumptions)
    assert any("angle" in a for a in s.assumptions)


def test_unknown_terrain_falls_back_to_rock_with_assumption(small_body_scenario):
    s = normalize_scenario({**small_body_scenario, "terrain": "lava"})
    assert s.terrain.name == "rock"
    assert any("lava" in a for a in s.assumptions)


def test_legacy_terrain_names():
    assert resolve_terrain("crystalline") == (TERRAINS["rock"], None)
    assert resolve_terrain("Sedimentary") == (TERRAINS["sediment"], None)
    assert resolve_terrain("ocean") == (TERRAINS["water"], None)


@pytest.mark.parametrize("field,value", [
    ("diameter_m", 0),
    ("diameter_m", -10),
    ("diameter_m", "nan"),
    ("density_kgpm3", 0),
    ("approach_speed_mps", -1),
    ("approach_speed_mps", float("inf")),
    ("angle_deg", 91),
    ("angle_deg", -5),
    ("lat", 95),
    ("lng", -181),
    ("diameter_m", 1e120),
    ("diameter_m", 2e7),
    ("density_kgpm3", 1e6),
    ("approach_speed_mps", 1e160),
    ("approach_speed_mps", 299_792_458.0),
    ("velocity_kms", 3e5),
    ("water_depth_m", 20_000),
])
def test_out_of_range_field_is_rejected(small_body_scenario, field, value):
    with pytest.raises(InvalidInputError) as exc_info:
        normalize_scenario({**small_body_scenario, field: value})
    assert field in _fields(exc_info)


def test_largest_accepted_body_stays_finite():
    s = normalize_scenario({"diameter_m": MAX_DIAMETER_M, "density_kgpm3": MAX_DENSITY_KGPM3,
                            "approach_speed_mps": MAX_SPEED_MPS * 0.999, "angle_deg": 90, "terrain": "rock",
                            "lat": 0, "lng": 0})
    assert math.isfinite(s.mass_kg)


def test_all_failures_are_reported_together():
    with pytest.raises(InvalidInputError) as exc_info:
        normalize_scenario({"diameter_m": -1, "angle_deg": 120, "lat": 0, "lng": 0})
    assert {"diameter_m", "angle_deg", "approach_speed_mps"} <= _fields(exc_info)
    assert all(d["message"] for d in exc_info.value.details())


def test_non_mapping_is_rejected():
    with pytest.raises(InvalidInputError):
        normalize_scenario(["not", "a", "scenario"])


def test_scenario_instance_is_revalidated():
    bad = ImpactScenario(diameter_m=-3.0, approach_speed_mps=10_000.0, angle_deg=45.0, lat=0.0, lng=0.0)
    with pytest.raises(InvalidInputError):
        normalize_scenario(bad)


def test_scenario_instance_round_trips(small_body_scenario):
    s = normalize_scenario(small_body_scenario)
    assert normalize_scenario(s) == s


def test_mass_is_sphere_volume_times_density():
    s = normalize_scenario({"diameter_m": 2.0, "approach_speed_mps": 1.0, "density_kgpm3": 1000.0,
                            "angle_deg": 90, "terrain": "rock", "lat": 0, "lng": 0})
    assert s.mass_kg == pytest.approx(4.0 / 3.0 * 3.141592653589793 * 1000.0)


def test_mitigation_defaults_and_none():
    assert normalize_mitigation(None) is None
    m = normalize_mitigation({"method": "gravity_tractor", "effectiveness_reduction": 0.5})
    assert m.success_probability == 1.0
    assert m.attenuation == pytest.approx(0.5)


def test_none_method_never_attenuates():
    m = normalize_mitigation({"method": "none", "effectiveness_reduction": 1.0, "success_probability": 1.0})
    assert m.attenuation == 0.0


def test_unknown_mitigation_method_is_invalid():
    with pytest.raises(InvalidInputError) as exc_info:
        normalize_mitigation({"method": "laser_broom"})
    assert "mitigation.method" in _fields(exc_info)


def test_percent_values_are_rejected():
    with pytest.raises(InvalidInputError) as exc_info:
        normalize_mitigation({"method": "kinetic_impactor", "effectiveness_reduction": 40,
                              "success_probability": 85})
    assert {"mitigation.effectiveness_reduction", "mitigation.success_probability"} <= _fields(exc_info)


def test_mitigation_instance_passes_through_validation():
    m = MitigationStrategy("nuclear_device", 0.8, 0.5, lead_time_years=10.0, estimated_cost_usd=2e9)
    assert normalize_mitigation(m) == m
