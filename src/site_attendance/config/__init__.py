import os

_MODULES = {
    "production": "site_attendance.config.production",
    "prod": "site_attendance.config.production",
    "testing": "site_attendance.config.testing",
    "test": "site_attendance.config.testing",
}


def get_settings_module() -> str:
    """Dotted path of the settings module for the current process.

    SITE_ATTENDANCE_SETTINGS names a custom module outright; otherwise APP_ENV
    picks one of the bundled ones, defaulting to development.
    """
    custom = os.getenv("SITE_ATTENDANCE_SETTINGS")
    if custom:
        return custom

    env = os.getenv("APP_ENV", "development").lower()
    return _MODULES.get(env, "site_attendance.config.development")
