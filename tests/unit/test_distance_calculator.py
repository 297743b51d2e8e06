# --------------------------- tests/unit/test_distance_calculator.py ----------------------------
"""Lane mileage estimation from static tables and state centroids."""

from broker_intel.services.distance_calculator import (
    DistanceCalculator,
    default_calculator,
    estimate_lane_miles,
    road_factor,
)


def test_state_table_works_in_both_directions():
    assert estimate_lane_miles("TX", "OK") == 250
    assert estimate_lane_miles("OK", "TX") == 250
    assert estimate_lane_miles("tx", "ok") == 250


def test_city_matrix_wins_over_state_table():
    result = DistanceCalculator().calculate_distance("TX", "TX", "Houston", "Dallas")
    assert result == {"miles": 240, "calculation_method": "distance_matrix"}


def test_centroid_estimate_for_unlisted_pairs():
    result = DistanceCalculator().calculate_distance("WA", "ME")
    assert result["calculation_method"] == "centroid_estimate"
    assert 2500 < result["miles"] < 4000


def test_same_state_without_table_entry_is_unknown():
    assert estimate_lane_miles("OH", "OH") is None
    assert estimate_lane_miles("TX", "ZZ") is None


def test_road_factor_by_trip_length():
    assert road_factor(150) == 1.2
    assert road_factor(300) == 1.25
    assert road_factor(800) == 1.3


def test_lane_cache_lives_on_the_instance():
    calculator = DistanceCalculator()
    calculator.estimate_lane_miles("TX", "LA")
    calculator.estimate_lane_miles("TX", "LA")

    assert calculator.cache_info().hits == 1
    assert DistanceCalculator().cache_info().currsize == 0


def test_module_helper_reuses_the_default_calculator():
    before = default_calculator().cache_info()
    estimate_lane_miles("AR", "TX")
    estimate_lane_miles("AR", "TX")
    after = default_calculator().cache_info()

    assert after.hits >= before.hits + 1
    assert default_calculator() is default_calculator()
