from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CheckInResult:
    site_id: str
    site_name: str
    distance_meters: float
    check_in_time: datetime
