from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from ..core.constants import (
    HIGH_ACCURACY_TIMEOUT_MS,
    LOGIN_FIX_TIMEOUT_MS,
    LOW_ACCURACY_TIMEOUT_MS,
    MOCK_LATITUDE,
    MOCK_LONGITUDE,
)
from ..core.enums import AcquisitionMode, GeoErrorCode
from ..geo.model import Position
from .geolocation import AcquisitionOptions, GeolocationError, GeolocationProvider

logger = structlog.get_logger(__name__)

PositionListener = Callable[[Position], None]
ErrorListener = Callable[[GeolocationError], None]

_DEMOTE_ON = {GeoErrorCode.TIMEOUT, GeoErrorCode.POSITION_UNAVAILABLE}


@dataclass(frozen=True)
class TrackerState:
    last_known_position: Optional[Position]
    acquisition_mode: AcquisitionMode
    last_error: Optional[GeoErrorCode]
    auto_retry: bool
    manual_override_offered: bool


class LocationTracker:
    """Keeps the latest device position and drives acquisition.

    Acquisition is a small state machine over one owned subscription:
    HIGH_ACCURACY -> LOW_ACCURACY on timeout/unavailable, and any state ->
    MOCK on manual override. Permission denied stops the subscription and
    offers the mock escape hatch instead of retrying.
    """

    def __init__(
        self,
        geolocation: GeolocationProvider,
        *,
        high_timeout_ms: int = HIGH_ACCURACY_TIMEOUT_MS,
        low_timeout_ms: int = LOW_ACCURACY_TIMEOUT_MS,
        fix_timeout_ms: int = LOGIN_FIX_TIMEOUT_MS,
    ):
        self._geo = geolocation
        self._high = AcquisitionOptions(AcquisitionMode.HIGH_ACCURACY, high_timeout_ms, 0)
        self._low = AcquisitionOptions(AcquisitionMode.LOW_ACCURACY, low_timeout_ms, float("inf"))
        self._fix = AcquisitionOptions(AcquisitionMode.HIGH_ACCURACY, fix_timeout_ms, 0)

        self._handle: Optional[int] = None
        self._position: Optional[Position] = None
        self._mode = AcquisitionMode.HIGH_ACCURACY
        self._last_error: Optional[GeoErrorCode] = None
        self._manual_override_offered = False

        self._position_listeners: list[PositionListener] = []
        self._error_listeners: list[ErrorListener] = []

    # ---- queries ----

    @property
    def last_known_position(self) -> Optional[Position]:
        return self._position

    @property
    def acquisition_mode(self) -> AcquisitionMode:
        return self._mode

    @property
    def last_error(self) -> Optional[GeoErrorCode]:
        return self._last_error

    @property
    def is_subscribed(self) -> bool:
        return self._handle is not None

    def state(self) -> TrackerState:
        return TrackerState(
            last_known_position=self._position,
            acquisition_mode=self._mode,
            last_error=self._last_error,
            auto_retry=self.is_subscribed,
            manual_override_offered=self._manual_override_offered,
        )

    # ---- listeners ----

    def on_position(self, listener: PositionListener) -> None:
        self._position_listeners.append(listener)

    def on_error(self, listener: ErrorListener) -> None:
        self._error_listeners.append(listener)

    # ---- acquisition ----

    def start(self) -> None:
        """(Re)start acquisition in high-accuracy mode."""
        self._subscribe(self._high)
        self._manual_override_offered = False
        logger.info("acquisition_started", mode=self._mode.value)

    def retry(self) -> None:
        self._last_error = None
        self.start()

    def stop(self) -> None:
        if self._handle is not None:
            self._geo.cancel(self._handle)
            self._handle = None

    def request_fix(self) -> None:
        """One-shot high-accuracy read, used while a login waits for GPS."""
        self._geo.get_current_position(self._accept, self._on_fix_error, self._fix)

    def use_mock_location(self, position: Optional[Position] = None) -> Position:
        """Manual override: inject a literal position and stop real acquisition."""
        self.stop()
        self._mode = AcquisitionMode.MOCK
        self._manual_override_offered = False
        position = position or Position(MOCK_LATITUDE, MOCK_LONGITUDE)
        logger.info("manual_position", lat=position.lat, lng=position.lng)
        self._accept(position)
        return position

    def _subscribe(self, options: AcquisitionOptions) -> None:
        # Release the previous subscription first so samples are never delivered twice.
        self.stop()
        self._mode = options.mode
        self._handle = self._geo.subscribe(self._accept, self._on_watch_error, options)

    def _accept(self, position: Position) -> None:
        self._position = position
        self._last_error = None
        for listener in list(self._position_listeners):
            listener(position)

    def _on_watch_error(self, error: GeolocationError) -> None:
        self._last_error = error.code

        if error.code == GeoErrorCode.PERMISSION_DENIED:
            self.stop()
            self._manual_override_offered = True
            logger.warning("acquisition_denied")
        elif self._mode == AcquisitionMode.HIGH_ACCURACY and error.code in _DEMOTE_ON:
            self._subscribe(self._low)
            logger.info("acquisition_demoted", reason=error.code.name)
        else:
            # Low accuracy failed as well: keep listening, offer retry and mock.
            self._manual_override_offered = True
            logger.warning("acquisition_failed", mode=self._mode.value, reason=error.code.name)

        self._notify_error(error)

    def _on_fix_error(self, error: GeolocationError) -> None:
        self._last_error = error.code
        self._notify_error(error)

    def _notify_error(self, error: GeolocationError) -> None:
        for listener in list(self._error_listeners):
            listener(error)
