from __future__ import annotations

from site_attendance.core.enums import AcquisitionMode, GeoErrorCode
from site_attendance.geo.model import Position
from site_attendance.location.geolocation import BrowserGeolocation, GeolocationError
from site_attendance.location.tracker import LocationTracker


def _tracker():
    geo = BrowserGeolocation()
    tracker = LocationTracker(geo)
    return geo, tracker


def test_start_requests_high_accuracy_without_cache():
    geo, tracker = _tracker()
    tracker.start()

    opts = geo.requested_options()
    assert opts.mode == AcquisitionMode.HIGH_ACCURACY
    assert opts.to_browser() == {"enableHighAccuracy": True, "timeout": 5000, "maximumAge": 0}


def test_samples_update_last_known_position_latest_wins():
    geo, tracker = _tracker()
    seen = []
    tracker.on_position(seen.append)
    tracker.start()

    geo.deliver_position(Position(1, 1))
    geo.deliver_position(Position(2, 2))

    assert tracker.last_known_position == Position(2, 2)
    assert seen == [Position(1, 1), Position(2, 2)]


def test_timeout_demotes_to_low_accuracy_and_cancels_previous_watch():
    geo, tracker = _tracker()
    tracker.start()

    geo.deliver_error(GeolocationError(GeoErrorCode.TIMEOUT))

    assert tracker.acquisition_mode == AcquisitionMode.LOW_ACCURACY
    assert geo.active_watch_count == 1
    assert geo.requested_options().to_browser() == {"enableHighAccuracy": False, "timeout": 60000, "maximumAge": None}


def test_position_unavailable_also_demotes():
    geo, tracker = _tracker()
    tracker.start()

    geo.deliver_error(GeolocationError(GeoErrorCode.POSITION_UNAVAILABLE))

    assert tracker.acquisition_mode == AcquisitionMode.LOW_ACCURACY


def test_sample_is_delivered_once_after_demotion():
    geo, tracker = _tracker()
    seen = []
    tracker.on_position(seen.append)
    tracker.start()
    geo.deliver_error(GeolocationError(GeoErrorCode.TIMEOUT))

    geo.deliver_position(Position(3, 3))

    assert seen == [Position(3, 3)]


def test_low_accuracy_failure_offers_override_and_keeps_listening():
    geo, tracker = _tracker()
    tracker.start()
    geo.deliver_error(GeolocationError(GeoErrorCode.TIMEOUT))

    geo.deliver_error(GeolocationError(GeoErrorCode.TIMEOUT))

    state = tracker.state()
    assert state.acquisition_mode == AcquisitionMode.LOW_ACCURACY
    assert state.manual_override_offered
    assert state.auto_retry


def test_permission_denied_stops_and_offers_manual_override():
    geo, tracker = _tracker()
    errors = []
    tracker.on_error(errors.append)
    tracker.start()

    geo.deliver_error(GeolocationError(GeoErrorCode.PERMISSION_DENIED, "denied"))

    state = tracker.state()
    assert not tracker.is_subscribed
    assert geo.active_watch_count == 0
    assert state.manual_override_offered
    assert state.last_error == GeoErrorCode.PERMISSION_DENIED
    assert [e.code for e in errors] == [GeoErrorCode.PERMISSION_DENIED]


def test_mock_location_defaults_to_new_york_and_stops_real_acquisition():
    geo, tracker = _tracker()
    tracker.start()

    pos = tracker.use_mock_location()

    assert (pos.lat, pos.lng) == (40.7128, -74.0060)
    assert tracker.acquisition_mode == AcquisitionMode.MOCK
    assert tracker.last_known_position == pos
    assert geo.active_watch_count == 0


def test_retry_resubscribes_in_high_accuracy():
    geo, tracker = _tracker()
    tracker.start()
    geo.deliver_error(GeolocationError(GeoErrorCode.PERMISSION_DENIED))

    tracker.retry()

    assert tracker.acquisition_mode == AcquisitionMode.HIGH_ACCURACY
    assert tracker.last_error is None
    assert geo.active_watch_count == 1


def test_one_shot_fix_is_served_before_watches():
    geo, tracker = _tracker()
    tracker.request_fix()

    assert geo.requested_options().to_browser()["timeout"] == 10000

    geo.deliver_position(Position(5, 5))

    assert tracker.last_known_position == Position(5, 5)
    assert geo.requested_options() is None
