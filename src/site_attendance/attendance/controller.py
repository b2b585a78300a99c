from __future__ import annotations

from flask import Flask

from ..common.datetime_utils import from_epoch_ms
from ..common.web import api_view, body, reply
from ..container import Container, DeviceSession
from ..core.enums import GeoErrorCode
from ..core.exceptions import ValidationError
from ..geo.model import Position
from ..location.geolocation import GeolocationError
from ..presentation.dashboard import location_view


def _position_from(data: dict) -> Position:
    try:
        lat = float(data["lat"])
        lng = float(data["lng"])
    except (KeyError, TypeError, ValueError):
        raise ValidationError("lat and lng must be numbers")
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        raise ValidationError("Coordinates out of range")

    kwargs = {}
    if data.get("timestamp") is not None:
        kwargs["captured_at"] = from_epoch_ms(int(data["timestamp"]))
    if data.get("accuracy") is not None:
        kwargs["accuracy_m"] = float(data["accuracy"])
    return Position(lat, lng, **kwargs)


def _error_from(data: dict) -> GeolocationError:
    try:
        code = GeoErrorCode(int(data.get("code")))
    except (TypeError, ValueError):
        raise ValidationError("Unknown geolocation error code")
    return GeolocationError(code=code, message=str(data.get("message") or ""))


def _location_payload(dev: DeviceSession) -> dict:
    options = dev.geolocation.requested_options()
    return {
        **location_view(dev.tracker),
        "requested_options": options.to_browser() if options else None,
    }


def register(app: Flask, container: Container) -> None:
    view = api_view(container)

    @app.route("/api/location", methods=["GET"], endpoint="api_location_state")
    @view
    def location_state(dev: DeviceSession):
        return reply(_location_payload(dev))

    @app.route("/api/location", methods=["POST"], endpoint="api_location_deliver")
    @view
    def deliver(dev: DeviceSession):
        """Browser pushes either {"lat", "lng", ...} or {"error": {"code", "message"}}."""
        data = body()
        if data.get("error") is not None:
            dev.geolocation.deliver_error(_error_from(data["error"]))
        else:
            dev.geolocation.deliver_position(_position_from(data))
        return reply(_location_payload(dev))

    @app.route("/api/location/mock", methods=["POST"], endpoint="api_location_mock")
    @view
    def mock(dev: DeviceSession):
        data = body()
        position = _position_from(data) if "lat" in data or "lng" in data else None
        dev.tracker.use_mock_location(position)
        return reply(_location_payload(dev))

    @app.route("/api/location/retry", methods=["POST"], endpoint="api_location_retry")
    @view
    def retry(dev: DeviceSession):
        dev.tracker.retry()
        return reply(_location_payload(dev))

    @app.route("/api/attendance/check-in", methods=["POST"], endpoint="api_check_in")
    @view
    def check_in(dev: DeviceSession):
        result = dev.attendance.check_in()
        return reply(
            {
                "message": f"Checked in at {result.site_name}",
                "site_id": result.site_id,
                "site_name": result.site_name,
                "distance_meters": round(result.distance_meters, 1),
                "check_in_time": result.check_in_time.isoformat(),
            }
        )

    @app.route("/api/attendance/check-out", methods=["POST"], endpoint="api_check_out")
    @view
    def check_out(dev: DeviceSession):
        dev.session.require_employee()
        changed = dev.attendance.check_out()
        return reply({"checked_out": changed, "message": "Checked out" if changed else "You are not checked in"})
