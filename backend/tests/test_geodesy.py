import pytest

from geofleet.utils.geodesy import calculate_distance, calculate_speed

from conftest import coord


def test_distance_to_self_is_zero():
    a = coord(40.7590, -73.9850)
    assert calculate_distance(a, a) == 0.0


def test_distance_is_symmetric():
    a = coord(40.7590, -73.9850)
    b = coord(51.5074, -0.1278)
    assert calculate_distance(a, b) == pytest.approx(calculate_distance(b, a), rel=1e-12)


def test_one_degree_of_longitude_on_equator():
    # R * pi / 180
    assert calculate_distance(coord(0, 0), coord(0, 1)) == pytest.approx(111_194.93, rel=1e-6)


def test_known_city_distance():
    # New York -> London is roughly 5570 km
    d = calculate_distance(coord(40.7128, -74.0060), coord(51.5074, -0.1278))
    assert 5_550_000 < d < 5_590_000


def test_altitude_is_ignored():
    a = coord(10, 10)
    b = a.model_copy(update={"altitude": 120.0})
    assert calculate_distance(a, b) == 0.0


def test_speed_over_positive_interval():
    a = coord(0, 0)
    b = coord(0, 0.001)  # ~111 m
    assert calculate_speed(b, a, 10.0) == pytest.approx(calculate_distance(a, b) / 10.0)


@pytest.mark.parametrize("delta", [0.0, -1.0])
def test_speed_is_zero_for_non_positive_interval(delta):
    assert calculate_speed(coord(0, 0.001), coord(0, 0), delta) == 0.0
