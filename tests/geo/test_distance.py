from __future__ import annotations

import math

import pytest

from site_attendance.geo.distance import distance_between, haversine_meters
from site_attendance.geo.model import Position


def test_distance_to_self_is_zero():
    p = Position(31.9686, 99.9018)
    assert distance_between(p, p) == 0


def test_distance_is_symmetric():
    a = Position(40.7128, -74.0060)
    b = Position(51.5074, -0.1278)
    assert distance_between(a, b) == pytest.approx(distance_between(b, a))


def test_one_degree_of_longitude_on_the_equator():
    d = haversine_meters(0, 0, 0, 1)
    assert d == pytest.approx(111195, rel=0.01)


def test_antipodal_points_do_not_blow_up():
    d = haversine_meters(0, 0, 0, 180)
    assert d == pytest.approx(math.pi * 6371000, rel=1e-9)


def test_null_island_detection():
    assert Position(0.00001, -0.00002).is_null_island()
    assert not Position(0.001, 0).is_null_island()
