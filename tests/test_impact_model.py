"""Tests for energy, crater scaling, effects and classification."""

import math

import pytest

from impact_engine.errors import NumericDomainError
from impact_engine.impact_model import (
    DEPTH_RATIO_COMPLEX,
    DEPTH_RATIO_SIMPLE,
    J_PER_TON_TNT,
    V_ESCAPE,
    BlastTierConfig,
    CraterResult,
    ImpactModel,
    classify,
    mmi_band_from_meff,
)
from impact_engine.scenario import normalize_scenario


def _model(base, **overrides):
    return ImpactModel(normalize_scenario({**base, **overrides}))


def test_energy_uses_escape_velocity(small_body_scenario):
    e = _model(small_body_scenario).energy()
    mass = math.pi / 6.0 * 3000.0 * 20.0**3
    assert e.mass_kg == pytest.approx(mass)
    assert e.impact_speed_mps == pytest.approx(math.hypot(18_500.0, V_ESCAPE))
    assert e.energy_J == pytest.approx(0.5 * mass * (18_500.0**2 + V_ESCAPE**2))
    assert e.tnt_tons == pytest.approx(e.energy_J / J_PER_TON_TNT)


def test_energy_is_total_not_normal_component(small_body_scenario):
    steep = _model(small_body_scenario, angle_deg=90).energy()
    shallow = _model(small_body_scenario, angle_deg=10).energy()
    assert steep.energy_J == pytest.approx(shallow.energy_J)
    assert shallow.normal_speed_mps < steep.normal_speed_mps


def test_energy_scales_with_velocity_squared(small_body_scenario):
    energies = [_model(small_body_scenario, approach_speed_mps=v).energy().energy_J
                for v in (5_000, 10_000, 20_000, 40_000)]
    assert energies == sorted(energies)
    assert len(set(energies)) == 4
    v1, v2 = 10_000.0, 20_000.0
    ratio = (v2**2 + V_ESCAPE**2) / (v1**2 + V_ESCAPE**2)
    assert energies[2] / energies[1] == pytest.approx(ratio)


def test_energy_scales_with_diameter_cubed(small_body_scenario):
    e1 = _model(small_body_scenario, diameter_m=100).energy().energy_J
    e2 = _model(small_body_scenario, diameter_m=200).energy().energy_J
    assert e2 / e1 == pytest.approx(8.0)


def test_crater_grows_with_energy(small_body_scenario):
    by_speed = [_model(small_body_scenario, approach_speed_mps=v).crater().diameter_m
                for v in (5_000, 10_000, 20_000, 40_000)]
    by_size = [_model(small_body_scenario, diameter_m=d).crater().diameter_m
               for d in (10, 100, 1_000, 10_000)]
    for series in (by_speed, by_size):
        assert all(a < b for a, b in zip(series, series[1:]))


def test_reference_case_is_complex_and_catastrophic(reference_scenario):
    m = _model(reference_scenario)
    crater = m.crater()
    assert 100_000.0 <= crater.diameter_m <= 200_000.0
    assert crater.morphology == "complex"
    assert crater.regime == "gravity"
    assert crater.radius_m == pytest.approx(crater.diameter_m / 2.0)
    assert crater.depth_m == pytest.approx(crater.diameter_m * DEPTH_RATIO_COMPLEX)
    assert classify(m.energy().tnt_tons, crater.diameter_m) == "catastrophic"


def test_small_body_case(small_body_scenario):
    m = _model(small_body_scenario)
    crater = m.crater()
    assert 10.0 <= crater.radius_m < 1_000.0
    assert crater.morphology == "simple"
    assert crater.depth_m == pytest.approx(crater.diameter_m * DEPTH_RATIO_SIMPLE)
    assert classify(m.energy().tnt_tons, crater.diameter_m) in {"low", "moderate"}


def test_regime_takes_larger_diameter(small_body_scenario):
    m = _model(small_body_scenario)
    Dt, regime = m.transient_diameter_m()
    assert Dt == max(m.gravity_regime_diameter_m(), m.strength_regime_diameter_m())
    expected = "gravity" if m.gravity_regime_diameter_m() >= m.strength_regime_diameter_m() else "strength"
    assert regime == expected


def test_strength_regime_governs_tiny_fast_bodies():
    m = _model({"diameter_m": 0.01, "approach_speed_mps": 70_000, "angle_deg": 90, "terrain": "water",
                "lat": 0, "lng": 0})
    assert m.transient_diameter_m()[1] == "strength"


def test_simple_complex_transition():
    assert ImpactModel._final_from_transient(3_000.0) == (pytest.approx(3_750.0), pytest.approx(750.0), "simple")
    Dfr, dfr, morph = ImpactModel._final_from_transient(4_000.0)
    assert morph == "complex"
    assert Dfr == pytest.approx(5_200.0)
    assert dfr == pytest.approx(5_200.0 / 7.0)


def test_softer_target_gives_bigger_crater(small_body_scenario):
    rock = _model(small_body_scenario, terrain="rock").crater().diameter_m
    sediment = _model(small_body_scenario, terrain="sediment").crater().diameter_m
    assert sediment > rock


def test_grazing_raises_numeric_domain_error(small_body_scenario):
    m = _model(small_body_scenario, angle_deg=0)
    assert m.energy().normal_speed_mps == 0.0
    with pytest.raises(NumericDomainError):
        m.crater()


def test_blast_tiers_are_named_multipliers():
    crater = CraterResult(800.0, 1_000.0, 500.0, 200.0, "simple", "gravity")
    m = _model({"diameter_m": 1, "approach_speed_mps": 1, "angle_deg": 45, "terrain": "rock", "lat": 0, "lng": 0})
    b = m.blast_radii(crater)
    assert b.no_survivors_m == pytest.approx(500.0)
    assert b.heavy_damage_m == pytest.approx(500.0 * 15 * 0.4)
    assert b.moderate_damage_m == pytest.approx(500.0 * 15 * 0.7)
    assert b.light_damage_m == pytest.approx(500.0 * 15)

    wide = ImpactModel(m.s, BlastTierConfig(affected_radius_multiplier=30.0))
    assert wide.blast_radii(crater).light_damage_m == pytest.approx(15_000.0)


def test_seismic_magnitude_is_clamped(small_body_scenario):
    m = _model(small_body_scenario)
    assert m.seismic_magnitude(energy_J=0.0) == 0.0
    assert m.seismic_magnitude(energy_J=1e40) == 10.0
    assert m.seismic_magnitude(energy_J=1e20) == pytest.approx(0.67 * 16 - 5.87)
    assert m.seismic_magnitude(energy_J=1e20) < m.seismic_magnitude(energy_J=1e22)


def test_tsunami_only_for_water(small_body_scenario, ocean_scenario):
    assert _model(small_body_scenario).tsunami_height_m() is None
    ocean = _model(ocean_scenario)
    E = 1e8 * J_PER_TON_TNT
    assert ocean.tsunami_height_m(energy_J=E) == pytest.approx(0.1 * 100.0 * 4.0)


def test_tsunami_shallow_water_and_cap(ocean_scenario):
    assert _model(ocean_scenario, water_depth_m=50).tsunami_height_m() == 0.0
    capped = _model(ocean_scenario, water_depth_m=200).tsunami_height_m(energy_J=1e20 * J_PER_TON_TNT)
    assert capped == pytest.approx(200.0)


def test_tsunami_default_depth(ocean_scenario):
    without = {k: v for k, v in ocean_scenario.items() if k != "water_depth_m"}
    m = _model(without)
    assert m.water_depth_m() == 3682.0
    assert m.tsunami_height_m() > 0.0


def test_environmental_effects_are_bounded_and_monotonic(small_body_scenario, reference_scenario):
    small = _model(small_body_scenario)
    big = _model(reference_scenario)
    env_small = small.environmental_effects(small.crater())
    env_big = big.environmental_effects(big.crater())
    assert env_small.dust_cloud_radius_m >= 1_000.0
    assert env_big.dust_cloud_radius_m > env_small.dust_cloud_radius_m
    assert env_big.temperature_drop_c == 10.0
    assert 0.0 <= env_small.temperature_drop_c < env_big.temperature_drop_c
    assert 1.0 <= env_small.duration_days < env_big.duration_days
    assert env_big.duration_days == 365.0
    tiny = _model(small_body_scenario, diameter_m=1.0)
    assert tiny.environmental_effects(tiny.crater()).duration_days == 1.0


def test_recurrence_interval(reference_scenario):
    m = _model(reference_scenario)
    assert m.global_recurrence_years(energy_J=0.0) is None
    assert m.global_recurrence_years() > m.global_recurrence_years(energy_J=1e18)


@pytest.mark.parametrize("tons,diameter,expected", [
    (500.0, 10.0, "minimal"),
    (2e3, None, "low"),
    (0.0, 150.0, "low"),
    (0.0, 1_500.0, "moderate"),
    (5e6, 0.0, "moderate"),
    (1e8, 0.0, "high"),
    (1.0, 6_000.0, "high"),
    (1e9, 0.0, "severe"),
    (0.0, 100_000.0, "catastrophic"),
    (2e12, 0.0, "catastrophic"),
])
def test_classification_table(tons, diameter, expected):
    assert classify(tons, diameter) == expected


def test_grazing_classification_wins():
    assert classify(1e12, 1e6, grazing=True) == "grazing"


def test_mmi_band():
    assert mmi_band_from_meff(0.5) == "-"
    assert mmi_band_from_meff(9.5) == "XII"
