from __future__ import annotations

from conftest import SITE_LAT, SITE_LNG, at_site, sign_in

from site_attendance.companies.model import Site
from site_attendance.geofence.policy import GeofencePolicy


SITE = Site(site_id="s", name="S", lat=SITE_LAT, lng=SITE_LNG)


def test_boundary_is_inclusive_up_to_radius(device):
    ev = device.evaluator

    assert ev.evaluate(at_site(99.9), SITE).within_fence
    assert not ev.evaluate(at_site(100.1), SITE).within_fence


def test_distance_is_reported_in_meters(device):
    result = device.evaluator.evaluate(at_site(42), SITE)
    assert round(result.distance_meters, 3) == 42.0


def test_exit_buffer_widens_only_the_exit_radius():
    policy = GeofencePolicy(radius_m=100, exit_buffer_m=25)
    assert policy.exit_radius_m == 125
    assert GeofencePolicy().exit_radius_m == 100


def test_monitor_ignores_employees_who_are_not_checked_in(device):
    sign_in(device, "bob")
    exits = []
    device.evaluator.on_exit(exits.append)

    device.geolocation.deliver_position(at_site(500))

    assert exits == []


def test_monitor_fires_exit_for_checked_in_employee(device):
    sign_in(device, "bob")
    device.attendance.check_in()
    exits = []
    device.evaluator.on_exit(exits.append)

    device.geolocation.deliver_position(at_site(150))

    assert len(exits) == 1
    assert round(exits[0].distance_meters) == 150
