from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Union

from ..core.constants import HISTORY_LIMIT
from ..core.enums import AttendanceStatus, Role


@dataclass(frozen=True)
class HistoryPoint:
    """One sampled position of a checked-in employee."""

    lat: float
    lng: float
    time: datetime
    site_id: Optional[str]
    legacy_time: Optional[str] = None


@dataclass
class BaseUser:
    """Fields shared by every account.

    Note: Plain data only; persistence lives in the storage layer.
    """

    username: str
    company_id: Optional[str]
    verified: bool = True
    verify_code: Optional[str] = None
    passcode_hash: Optional[str] = None
    history: list[HistoryPoint] = field(default_factory=list)

    @property
    def role(self) -> Role:
        raise NotImplementedError

    @property
    def has_passcode(self) -> bool:
        return bool(self.passcode_hash)

    def append_history(self, point: HistoryPoint, *, limit: int = HISTORY_LIMIT) -> None:
        self.history.append(point)
        if len(self.history) > limit:
            del self.history[: len(self.history) - limit]


@dataclass
class ManagerRecord(BaseUser):
    @property
    def role(self) -> Role:
        return Role.MANAGER


@dataclass
class EmployeeRecord(BaseUser):
    email: Optional[str] = None
    phone: Optional[str] = None
    assigned_site_id: Optional[str] = None
    status: AttendanceStatus = AttendanceStatus.CHECKED_OUT
    check_in_time: Optional[datetime] = None
    last_ping: Optional[datetime] = None

    @property
    def role(self) -> Role:
        return Role.EMPLOYEE

    @property
    def is_checked_in(self) -> bool:
        return self.status == AttendanceStatus.CHECKED_IN

    @property
    def contact(self) -> Optional[str]:
        return self.email or self.phone

    def mark_checked_in(self, at: datetime) -> None:
        self.status = AttendanceStatus.CHECKED_IN
        self.check_in_time = at
        self.last_ping = at

    def mark_checked_out(self) -> None:
        self.status = AttendanceStatus.CHECKED_OUT
        self.check_in_time = None


UserRecord = Union[ManagerRecord, EmployeeRecord]
