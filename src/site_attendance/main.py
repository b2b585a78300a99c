from __future__ import annotations

import importlib
from typing import Optional

import structlog
from dotenv import load_dotenv
from flask import Flask

from .attendance.controller import register as register_attendance
from .common.web import install_device_binding
from .companies.controller import register as register_companies
from .config import get_settings_module
from .container import build_container
from .core.constants import DEVICE_IDLE_SECONDS, MAX_DEVICES
from .logging import install_request_id, setup_logging
from .users.controller import register as register_users

logger = structlog.get_logger(__name__)

_SETTINGS = (
    "SECRET_KEY",
    "DEBUG",
    "DATA_FILE",
    "SEED_DEMO_DATA",
    "VERIFY_BYPASS_CODE",
    "GEOFENCE_RADIUS_M",
    "GEOFENCE_EXIT_BUFFER_M",
    "HISTORY_SAMPLE_SECONDS",
    "DEVICE_IDLE_SECONDS",
    "MAX_DEVICES",
    "LOG_LEVEL",
)


def load_settings(overrides: Optional[dict] = None) -> dict:
    settings_module = get_settings_module()
    module = importlib.import_module(settings_module)
    settings = {name: getattr(module, name, None) for name in _SETTINGS}
    settings["TESTING"] = bool(getattr(module, "TESTING", False))
    settings["SETTINGS_MODULE"] = settings_module
    settings.update(overrides or {})
    return settings


def create_app(overrides: Optional[dict] = None, **container_kwargs) -> Flask:
    """Build the Flask app.

    `overrides` replaces individual settings; `container_kwargs` (e.g. a store or
    scheduler) go straight to `build_container`.
    """
    load_dotenv(override=False)
    settings = load_settings(overrides)
    setup_logging(settings["LOG_LEVEL"])

    app = Flask(__name__)
    app.secret_key = settings["SECRET_KEY"]
    app.config["DEBUG"] = bool(settings["DEBUG"])
    app.config["TESTING"] = settings["TESTING"]

    container = build_container(
        data_file=settings["DATA_FILE"],
        seed_demo_data=bool(settings["SEED_DEMO_DATA"]),
        bypass_code=settings["VERIFY_BYPASS_CODE"],
        radius_m=float(settings["GEOFENCE_RADIUS_M"]),
        exit_buffer_m=float(settings["GEOFENCE_EXIT_BUFFER_M"] or 0),
        sample_seconds=float(settings["HISTORY_SAMPLE_SECONDS"]),
        device_idle_seconds=float(settings["DEVICE_IDLE_SECONDS"] or DEVICE_IDLE_SECONDS),
        max_devices=int(settings["MAX_DEVICES"] or MAX_DEVICES),
        **container_kwargs,
    )
    app.extensions["site_attendance"] = container
    logger.info(
        "app_created",
        settings=settings["SETTINGS_MODULE"],
        data_file=settings["DATA_FILE"],
        radius_m=container.policy.radius_m,
    )

    install_request_id(app)
    install_device_binding(app, container)

    register_users(app, container)
    register_attendance(app, container)
    register_companies(app, container)

    return app
