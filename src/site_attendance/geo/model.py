from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..common.datetime_utils import now_utc
from ..core.constants import NULL_ISLAND_EPSILON


@dataclass(frozen=True)
class Position:
    """A latitude/longitude snapshot (degrees) and the moment it was captured."""

    lat: float
    lng: float
    captured_at: datetime = field(default_factory=now_utc, compare=False)
    accuracy_m: Optional[float] = field(default=None, compare=False)

    def is_null_island(self) -> bool:
        """(0, 0) fixes are what broken receivers report; never place a site there."""
        return abs(self.lat) < NULL_ISLAND_EPSILON and abs(self.lng) < NULL_ISLAND_EPSILON

    def describe(self, digits: int = 6) -> str:
        return f"{self.lat:.{digits}f}, {self.lng:.{digits}f}"
