from __future__ import annotations


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action or belongs elsewhere."""


class VerificationError(DomainError):
    """Raised when a verification code does not match."""


class IntegrityError(DomainError):
    """Raised when a referenced company or site no longer exists."""


class LocationUnavailableError(DomainError):
    """Raised when a command needs a position and none is known yet."""


class OutOfRangeError(DomainError):
    """Raised when a position is outside the geofence of the assigned site."""

    def __init__(self, message: str, *, distance_meters: float, site_name: str):
        super().__init__(message)
        self.distance_meters = distance_meters
        self.site_name = site_name
