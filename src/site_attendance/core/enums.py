from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization and dashboard selection."""

    MANAGER = "manager"
    EMPLOYEE = "employee"


class AttendanceStatus(str, Enum):
    """The two attendance states of an employee, as persisted."""

    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"


class AcquisitionMode(str, Enum):
    HIGH_ACCURACY = "high"
    LOW_ACCURACY = "low"
    MOCK = "mock"


class GeoErrorCode(int, Enum):
    """Browser geolocation error codes (PositionError.code)."""

    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


class LoginOutcome(str, Enum):
    SUCCESS = "success"
    VERIFICATION_REQUIRED = "verification_required"
    AWAITING_LOCATION = "awaiting_location"
