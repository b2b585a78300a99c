from __future__ import annotations

import itertools
import math
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

import structlog

from ..core.enums import AcquisitionMode, GeoErrorCode
from ..geo.model import Position

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class AcquisitionOptions:
    """Mirror of the browser's PositionOptions."""

    mode: AcquisitionMode
    timeout_ms: int
    maximum_age_ms: float = 0

    @property
    def high_accuracy(self) -> bool:
        return self.mode == AcquisitionMode.HIGH_ACCURACY

    def to_browser(self) -> dict:
        return {
            "enableHighAccuracy": self.high_accuracy,
            "timeout": self.timeout_ms,
            # JSON has no Infinity; null means "accept any cached fix".
            "maximumAge": None if math.isinf(self.maximum_age_ms) else self.maximum_age_ms,
        }


@dataclass(frozen=True)
class GeolocationError:
    code: GeoErrorCode
    message: str = ""


PositionCallback = Callable[[Position], None]
ErrorCallback = Callable[[GeolocationError], None]


class GeolocationProvider(Protocol):
    """Geolocation capability consumed by the location tracker.

    The tracker depends on this interface, not on a concrete source.
    """

    def subscribe(self, on_position: PositionCallback, on_error: ErrorCallback, options: AcquisitionOptions) -> int:
        raise NotImplementedError

    def cancel(self, handle: int) -> None:
        raise NotImplementedError

    def get_current_position(
        self, on_position: PositionCallback, on_error: ErrorCallback, options: AcquisitionOptions
    ) -> None:
        raise NotImplementedError


@dataclass
class _Watch:
    on_position: PositionCallback
    on_error: ErrorCallback
    options: AcquisitionOptions


class BrowserGeolocation(GeolocationProvider):
    """Geolocation fed by samples the browser pushes over HTTP.

    The browser runs `watchPosition` with whatever `requested_options()` says and
    posts every fix or error back; `deliver_*` fans them out to the active
    watches and to pending one-shot requests.
    """

    def __init__(self):
        self._handles = itertools.count(1)
        self._watches: dict[int, _Watch] = {}
        self._one_shots: list[_Watch] = []

    def subscribe(self, on_position: PositionCallback, on_error: ErrorCallback, options: AcquisitionOptions) -> int:
        handle = next(self._handles)
        self._watches[handle] = _Watch(on_position, on_error, options)
        return handle

    def cancel(self, handle: int) -> None:
        self._watches.pop(handle, None)

    def get_current_position(
        self, on_position: PositionCallback, on_error: ErrorCallback, options: AcquisitionOptions
    ) -> None:
        self._one_shots.append(_Watch(on_position, on_error, options))

    def requested_options(self) -> Optional[AcquisitionOptions]:
        """Options the browser should acquire with (one-shot requests first)."""
        if self._one_shots:
            return self._one_shots[0].options
        if self._watches:
            return self._watches[max(self._watches)].options
        return None

    @property
    def active_watch_count(self) -> int:
        return len(self._watches)

    def deliver_position(self, position: Position) -> None:
        one_shots, self._one_shots = self._one_shots, []
        for req in one_shots:
            req.on_position(position)
        # A callback may cancel or replace watches; iterate over a snapshot.
        for handle, watch in list(self._watches.items()):
            if handle in self._watches:
                watch.on_position(position)

    def deliver_error(self, error: GeolocationError) -> None:
        logger.info("geolocation_error", code=error.code.name, message=error.message)
        one_shots, self._one_shots = self._one_shots, []
        for req in one_shots:
            req.on_error(error)
        for handle, watch in list(self._watches.items()):
            if handle in self._watches:
                watch.on_error(error)
