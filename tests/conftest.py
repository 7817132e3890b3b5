import pytest


@pytest.fixture
def reference_scenario():
    """10 km body at 30 km/s, 60 deg, into rock."""
    return {
        "diameter_m": 10_000.0,
        "approach_speed_mps": 30_000.0,
        "angle_deg": 60.0,
        "terrain": "rock",
        "lat": 21.3,
        "lng": -89.5,
    }


@pytest.fixture
def small_body_scenario():
    """Chelyabinsk-sized body."""
    return {
        "diameter_m": 20.0,
        "approach_speed_mps": 18_500.0,
        "angle_deg": 18.0,
        "terrain": "rock",
        "lat": 54.8,
        "lng": 61.1,
    }


@pytest.fixture
def ocean_scenario():
    return {
        "diameter_m": 500.0,
        "approach_speed_mps": 20_000.0,
        "angle_deg": 45.0,
        "terrain": "water",
        "lat": 30.0,
        "lng": -40.0,
        "water_depth_m": 4000.0,
    }
