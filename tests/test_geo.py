import random
from datetime import datetime, timezone

import pytest

from antipodal.geo import (
    Coordinate,
    antipode,
    format_coordinate,
    haversine_km,
    mean_solar_time,
    random_position,
)


def test_antipode_on_equator_shifts_longitude_only():
    assert antipode(Coordinate(0, 10)) == Coordinate(0, -170)
    assert antipode(Coordinate(0, -10)) == Coordinate(0, 170)
    assert antipode(Coordinate(0, 0)) == Coordinate(0, 180)


def test_antipode_of_los_angeles():
    a = antipode(Coordinate(34.0739, -118.2400))
    assert a.latitude == pytest.approx(-34.0739)
    assert a.longitude == pytest.approx(61.76)


@pytest.mark.parametrize("lat", [-90, -45.5, 0, 12.25, 90])
def test_antipode_negates_latitude(lat):
    assert antipode(Coordinate(lat, 33)).latitude == -lat


@pytest.mark.parametrize(
    ("lat", "lon"),
    [(34.0739, -118.24), (-33.9, 151.2), (89.9, 179.99), (-1.5, -0.001), (45, 90)],
)
def test_antipode_round_trips_off_the_zero_meridian(lat, lon):
    c = Coordinate(lat, lon)
    back = antipode(antipode(c))
    assert back.latitude == pytest.approx(c.latitude)
    assert back.longitude == pytest.approx(c.longitude)


def test_antipode_is_not_an_involution_on_zero_and_180():
    # (lat, 0) -> (-lat, 180) -> (lat, 0)
    assert antipode(Coordinate(20, 0)) == Coordinate(-20, 180)
    assert antipode(Coordinate(-20, 180)) == Coordinate(20, 0)
    # -180 lands on 0 and comes back as +180, not -180
    assert antipode(Coordinate(5, -180)) == Coordinate(-5, 0)
    assert antipode(Coordinate(-5, 0)) == Coordinate(5, 180)


@pytest.mark.parametrize(
    ("lat", "lon"),
    [(-90.0001, 0.0), (90.0001, 0.0), (0.0, -180.0001), (0.0, 180.0001)],
)
def test_coordinate_rejects_out_of_range_values(lat, lon):
    with pytest.raises(ValueError):
        Coordinate(lat, lon)


def test_random_position_stays_in_range():
    rng = random.Random(1234)
    for _ in range(5000):
        c = random_position(rng)
        assert -90 <= c.latitude <= 90
        assert -180 <= c.longitude <= 180


def test_random_position_area_uniform_stays_in_range_and_favours_low_latitudes():
    rng = random.Random(42)
    points = [random_position(rng, area_uniform=True) for _ in range(5000)]
    assert all(-90 <= p.latitude <= 90 for p in points)
    # Area-uniform puts half the mass within 30 degrees of the equator
    near_equator = sum(1 for p in points if abs(p.latitude) <= 30)
    assert 0.45 < near_equator / len(points) < 0.55


def test_random_position_uses_given_rng():
    assert random_position(random.Random(7)) == random_position(random.Random(7))


def test_distance_to_antipode_is_half_the_circumference():
    c = Coordinate(34.0739, -118.24)
    assert haversine_km(c, antipode(c)) == pytest.approx(20015.1, rel=1e-3)


def test_format_coordinate_uses_hemisphere_letters():
    assert format_coordinate(Coordinate(34.0739, -118.24)) == "34.073900°N 118.240000°W"
    assert format_coordinate(Coordinate(-34.0739, 61.76), 2) == "34.07°S 61.76°E"


def test_mean_solar_time_shifts_by_longitude():
    noon = datetime(2025, 6, 21, 12, 0, tzinfo=timezone.utc)
    assert mean_solar_time(Coordinate(0, 90), noon).hour == 18
    assert mean_solar_time(Coordinate(0, -45), noon).hour == 9
