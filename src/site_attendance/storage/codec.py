"""JSON layout of the persisted state.

{
  "companies": {id: {name, sites: [{id, name, lat, lng}],
                     employees: [{username, contact, assignedSiteId}],
                     logs: [{username, action, time}]}},
  "users": {lowercase_username: {role, companyId, verified, ...}}
}
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import from_epoch_ms, to_epoch_ms
from ..companies.model import Company, EmployeeSummary, LogEntry, Site
from ..core.enums import AttendanceStatus, Role
from ..users.model import EmployeeRecord, HistoryPoint, ManagerRecord, UserRecord


def _iso(value: datetime) -> str:
    return value.isoformat()


def _parse_iso(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _ms_or_none(value: Optional[datetime]) -> Optional[int]:
    return to_epoch_ms(value) if value else None


def _dt_or_none(value: Any) -> Optional[datetime]:
    return from_epoch_ms(int(value)) if value is not None else None


def _with_legacy(out: dict, item) -> dict:
    if item.legacy_time:
        out["legacyTime"] = item.legacy_time
    return out


# ---- companies ----

def company_to_dict(company: Company) -> dict:
    return {
        "name": company.name,
        "sites": [{"id": s.site_id, "name": s.name, "lat": s.lat, "lng": s.lng} for s in company.sites],
        "employees": [
            {"username": e.username, "contact": e.contact, "assignedSiteId": e.assigned_site_id}
            for e in company.employees
        ],
        "logs": [
            _with_legacy({"username": l.username, "action": l.action, "time": _iso(l.time)}, l) for l in company.logs
        ],
    }


def company_from_dict(company_id: str, raw: dict) -> Company:
    return Company(
        company_id=company_id,
        name=raw.get("name") or company_id,
        sites=[
            Site(site_id=str(s["id"]), name=s["name"], lat=float(s["lat"]), lng=float(s["lng"]))
            for s in raw.get("sites") or []
        ],
        employees=[
            EmployeeSummary(
                username=e["username"],
                contact=e.get("contact"),
                assigned_site_id=e.get("assignedSiteId"),
            )
            for e in raw.get("employees") or []
        ],
        logs=[
            LogEntry(
                username=l["username"], action=l["action"], time=_parse_iso(l["time"]), legacy_time=l.get("legacyTime")
            )
            for l in raw.get("logs") or []
        ],
    )


# ---- users ----

def _history_to_list(history: list[HistoryPoint]) -> list[dict]:
    return [_with_legacy({"lat": p.lat, "lng": p.lng, "time": _iso(p.time), "siteId": p.site_id}, p) for p in history]


def _history_from_list(raw: list[dict]) -> list[HistoryPoint]:
    return [
        HistoryPoint(
            lat=float(p["lat"]),
            lng=float(p["lng"]),
            time=_parse_iso(p["time"]),
            site_id=p.get("siteId"),
            legacy_time=p.get("legacyTime"),
        )
        for p in raw or []
    ]


def user_to_dict(user: UserRecord) -> dict:
    out: dict[str, Any] = {
        "role": user.role.value,
        "companyId": user.company_id,
        "verified": user.verified,
        "verifyCode": user.verify_code,
        "passcodeHash": user.passcode_hash,
        "history": _history_to_list(user.history),
    }
    if isinstance(user, EmployeeRecord):
        out.update(
            {
                "email": user.email,
                "phone": user.phone,
                "assignedSiteId": user.assigned_site_id,
                "status": user.status.value,
                "checkInTime": _ms_or_none(user.check_in_time),
                "lastPing": _ms_or_none(user.last_ping),
            }
        )
    return out


def user_from_dict(username: str, raw: dict) -> UserRecord:
    common = dict(
        username=username,
        company_id=raw.get("companyId"),
        verified=bool(raw.get("verified", True)),
        verify_code=raw.get("verifyCode"),
        passcode_hash=raw.get("passcodeHash"),
        history=_history_from_list(raw.get("history") or []),
    )
    if raw.get("role") == Role.MANAGER.value:
        return ManagerRecord(**common)

    status = AttendanceStatus(raw.get("status") or AttendanceStatus.CHECKED_OUT.value)
    check_in_time = _dt_or_none(raw.get("checkInTime"))
    if status == AttendanceStatus.CHECKED_OUT:
        check_in_time = None
    return EmployeeRecord(
        **common,
        email=raw.get("email"),
        phone=raw.get("phone"),
        assigned_site_id=raw.get("assignedSiteId"),
        status=status,
        check_in_time=check_in_time,
        last_ping=_dt_or_none(raw.get("lastPing")),
    )


# ---- whole state ----

def state_to_dict(companies: dict[str, Company], users: dict[str, UserRecord]) -> dict:
    return {
        "companies": {cid: company_to_dict(c) for cid, c in companies.items()},
        "users": {name: user_to_dict(u) for name, u in users.items()},
    }


def state_from_dict(blob: dict) -> tuple[dict[str, Company], dict[str, UserRecord]]:
    companies = {cid: company_from_dict(cid, raw) for cid, raw in (blob.get("companies") or {}).items()}
    users = {name: user_from_dict(name, raw) for name, raw in (blob.get("users") or {}).items()}
    return companies, users
