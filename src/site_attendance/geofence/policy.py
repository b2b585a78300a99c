from __future__ import annotations

from dataclasses import dataclass

from ..core.constants import DEFAULT_EXIT_BUFFER_METERS, MAX_DISTANCE_METERS


@dataclass(frozen=True)
class GeofencePolicy:
    """Radius for login/check-in gating plus an additive tolerance for auto-checkout.

    The default buffer is 0, so one threshold (100 m) governs entry and exit.
    """

    radius_m: float = MAX_DISTANCE_METERS
    exit_buffer_m: float = DEFAULT_EXIT_BUFFER_METERS

    @property
    def exit_radius_m(self) -> float:
        return self.radius_m + self.exit_buffer_m
