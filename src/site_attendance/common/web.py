from __future__ import annotations

import uuid
from functools import wraps

import structlog
from flask import Flask, g, jsonify, request, session

from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    DomainError,
    IntegrityError,
    LocationUnavailableError,
    OutOfRangeError,
    ValidationError,
    VerificationError,
)
from ..storage.json_store import JsonFileStore

logger = structlog.get_logger(__name__)

# Checked in order, so subclasses must come before their bases.
ERROR_STATUS = (
    (ValidationError, 400),
    (VerificationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (OutOfRangeError, 403),
    (LocationUnavailableError, 409),
    (IntegrityError, 409),
)


def status_for(error: DomainError) -> int:
    for cls, status in ERROR_STATUS:
        if isinstance(error, cls):
            return status
    return 400


def body() -> dict:
    return request.get_json(silent=True) or {}


def install_device_binding(app: Flask, container) -> None:
    """Attach the calling browser's DeviceSession to `g.device` for every API request.

    The Flask session cookie carries a device id and the signed-in username, so a
    restarted process can re-attach a remembered sign-in.
    """

    @app.before_request
    def _bind_device():
        if not request.path.startswith("/api/"):
            return None
        with container.state.lock:
            if isinstance(container.store, JsonFileStore):
                container.store.poll()

            device_id = session.get("device_id")
            if not device_id:
                device_id = uuid.uuid4().hex
                session["device_id"] = device_id
            dev = container.device(device_id)

            username = session.get("username")
            if username and dev.session.current_username is None:
                if dev.session.restore(username):
                    dev.attendance.resume()
                else:
                    session.pop("username", None)
            g.device = dev
        return None


def reply(payload: dict | None = None, status: int = 200):
    dev = g.get("device")
    data = {"success": status < 400}
    data.update(payload or {})
    data["toasts"] = dev.presenter.drain() if dev is not None else []
    return jsonify(data), status


def api_view(container):
    """Run a view under the state lock and turn domain errors into JSON replies."""

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            with container.state.lock:
                try:
                    return view(g.device, *args, **kwargs)
                except DomainError as e:
                    extra = {"message": str(e)}
                    if isinstance(e, OutOfRangeError):
                        extra["distance_meters"] = round(e.distance_meters, 1)
                        extra["site_name"] = e.site_name
                    return reply(extra, status_for(e))
                except Exception:
                    logger.exception("request_failed", endpoint=request.endpoint)
                    return reply({"message": "Internal error"}, 500)

        return wrapper

    return decorator
