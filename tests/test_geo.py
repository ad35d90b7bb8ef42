import math

import pytest

from fieldtask.app.domain.geo import (
    EARTH_RADIUS_METERS,
    evaluate_location,
    haversine_distance,
)
from fieldtask.app.domain.models import GeoLocation, LocationVerdict

TARGET = GeoLocation(lat=10.7731, lng=106.7020)


def _north_of(location: GeoLocation, meters: float) -> tuple[float, float]:
    """Point ``meters`` due north; along a meridian the great-circle distance is exact."""
    return location.lat + math.degrees(meters / EARTH_RADIUS_METERS), location.lng


def test_identical_points_are_zero_meters_apart() -> None:
    assert haversine_distance(10.7731, 106.7020, 10.7731, 106.7020) == pytest.approx(0.0, abs=1e-9)


def test_one_degree_of_latitude() -> None:
    assert haversine_distance(0.0, 0.0, 1.0, 0.0) == pytest.approx(111_194.93, rel=1e-6)


def test_london_to_paris_matches_reference_distance() -> None:
    distance = haversine_distance(51.5074, -0.1278, 48.8566, 2.3522)
    assert distance == pytest.approx(343_560, rel=0.01)


def test_antipodal_points_are_half_the_circumference_apart() -> None:
    distance = haversine_distance(0.0, 0.0, 0.0, 180.0)
    assert distance == pytest.approx(math.pi * EARTH_RADIUS_METERS)


def test_distance_is_symmetric() -> None:
    a = haversine_distance(10.7731, 106.7020, 10.8031, 106.7100)
    b = haversine_distance(10.8031, 106.7100, 10.7731, 106.7020)
    assert a == pytest.approx(b)


def test_scenario_report_about_100m_north_is_accepted_with_warning() -> None:
    check = evaluate_location(TARGET, 10.7740, 106.7020)

    assert check.accepted
    assert check.distance_meters == pytest.approx(100, abs=1)
    assert check.verdict is LocationVerdict.ACCEPTED_WITH_WARNING
    assert check.warning == "You are 100m away from the task location."


def test_scenario_report_3km_away_is_rejected() -> None:
    check = evaluate_location(TARGET, 10.8031, 106.7100)

    assert not check.accepted
    assert check.verdict is LocationVerdict.REJECTED
    assert 3_300 <= check.distance_meters <= 3_500
    assert check.rejection_reason is not None
    assert "150m" in check.rejection_reason


@pytest.mark.parametrize(
    ("meters", "verdict"),
    [
        (0, LocationVerdict.ACCEPTED),
        (99, LocationVerdict.ACCEPTED),
        (101, LocationVerdict.ACCEPTED_WITH_WARNING),
        (149, LocationVerdict.ACCEPTED_WITH_WARNING),
        (151, LocationVerdict.REJECTED),
        (500, LocationVerdict.REJECTED),
    ],
)
def test_tolerance_bands(meters: float, verdict: LocationVerdict) -> None:
    lat, lng = _north_of(TARGET, meters)
    check = evaluate_location(TARGET, lat, lng)

    assert check.verdict is verdict
    assert check.distance_meters == pytest.approx(meters, abs=0.01)


def test_acceptance_never_becomes_more_permissive_with_distance() -> None:
    rank = {
        LocationVerdict.ACCEPTED: 0,
        LocationVerdict.ACCEPTED_WITH_WARNING: 1,
        LocationVerdict.REJECTED: 2,
    }
    distances = [0, 50, 99, 100, 101, 125, 150, 151, 200, 500, 3_300, 20_000]
    verdicts = [
        evaluate_location(TARGET, *_north_of(TARGET, meters)).verdict for meters in distances
    ]

    ranks = [rank[verdict] for verdict in verdicts]
    assert ranks == sorted(ranks)


def test_custom_radii_are_honored() -> None:
    lat, lng = _north_of(TARGET, 120)

    check = evaluate_location(TARGET, lat, lng, accept_radius=50, warning_radius=100)

    assert check.verdict is LocationVerdict.REJECTED


def test_bypass_reports_zero_but_keeps_measured_distance() -> None:
    check = evaluate_location(TARGET, -10.7731, -73.2980, bypass=True)

    assert check.accepted
    assert check.verdict is LocationVerdict.BYPASSED
    assert check.distance_meters == 0
    assert check.measured_distance_meters == pytest.approx(math.pi * EARTH_RADIUS_METERS, rel=1e-6)


def test_missing_target_skips_verification() -> None:
    check = evaluate_location(None, 0.0, 0.0)

    assert check.accepted
    assert check.verdict is LocationVerdict.SKIPPED
    assert check.measured_distance_meters is None
