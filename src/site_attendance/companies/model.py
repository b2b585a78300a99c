from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..core.constants import COMPANY_LOG_LIMIT
from ..geo.model import Position


@dataclass
class Site:
    """A company-owned work location; the geofence is centred on (lat, lng)."""

    site_id: str
    name: str
    lat: float
    lng: float

    @property
    def position(self) -> Position:
        return Position(self.lat, self.lng)

    def relocate(self, position: Position) -> None:
        self.lat = position.lat
        self.lng = position.lng


@dataclass
class EmployeeSummary:
    """Denormalized roster entry kept on the company."""

    username: str
    contact: Optional[str]
    assigned_site_id: Optional[str]


@dataclass(frozen=True)
class LogEntry:
    username: str
    action: str
    time: datetime
    # Original text of a locale-formatted time this entry was migrated from.
    legacy_time: Optional[str] = None


@dataclass
class Company:
    company_id: str
    name: str
    sites: list[Site] = field(default_factory=list)
    employees: list[EmployeeSummary] = field(default_factory=list)
    logs: list[LogEntry] = field(default_factory=list)

    def find_site(self, site_id: Optional[str]) -> Optional[Site]:
        if not site_id:
            return None
        return next((s for s in self.sites if s.site_id == site_id), None)

    def find_employee(self, username: str) -> Optional[EmployeeSummary]:
        return next((e for e in self.employees if e.username == username), None)

    def add_log(self, entry: LogEntry, *, limit: int = COMPANY_LOG_LIMIT) -> None:
        """Newest first; the oldest entries fall off the end."""
        self.logs.insert(0, entry)
        del self.logs[limit:]
