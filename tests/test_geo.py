import pytest

from routing.geo import closest_point_on_segment, haversine_km, interpolate, polyline_length_km

# 1 degree along a meridian with R = 6371 km
KM_PER_DEGREE = 111.19492664


def test_haversine_one_degree_of_latitude():
    assert haversine_km((0.0, 0.0), (0.0, 1.0)) == pytest.approx(KM_PER_DEGREE, rel=1e-6)


def test_haversine_is_symmetric_and_zero_on_same_point():
    a, b = (31.05, -17.82), (28.58, -20.15)
    assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))
    assert haversine_km(a, a) == 0.0


def test_closest_point_is_clamped_to_segment():
    start, end = (0.0, 0.0), (0.0, 1.0)

    point, t = closest_point_on_segment((0.5, 0.25), start, end)
    assert point == pytest.approx((0.0, 0.25))
    assert t == pytest.approx(0.25)

    # before the start / past the end
    point, t = closest_point_on_segment((0.0, -3.0), start, end)
    assert point == start and t == 0.0
    point, t = closest_point_on_segment((0.0, 7.0), start, end)
    assert point == pytest.approx(end) and t == 1.0


def test_zero_length_segment_returns_its_start():
    point, t = closest_point_on_segment((1.0, 1.0), (2.0, 2.0), (2.0, 2.0))
    assert point == (2.0, 2.0)
    assert t == 0.0


def test_polyline_length_and_slices():
    polyline = [(0.0, 0.0), (0.0, 0.5), (0.0, 1.0)]
    assert polyline_length_km(polyline) == pytest.approx(KM_PER_DEGREE, rel=1e-6)
    assert polyline_length_km(polyline, 1) == pytest.approx(KM_PER_DEGREE / 2, rel=1e-6)
    assert polyline_length_km(polyline, 1, 1) == 0.0


def test_interpolate_midpoint():
    assert interpolate((0.0, 0.0), (2.0, 4.0), 0.5) == (1.0, 2.0)
