from __future__ import annotations

import copy
from datetime import datetime, timezone
from typing import Optional

import structlog
from werkzeug.security import generate_password_hash

from ..common.datetime_utils import from_epoch_ms, now_utc

logger = structlog.get_logger(__name__)


def migrate(blob: dict) -> tuple[dict, bool]:
    """Normalize a loaded blob in place of legacy layouts.

    - usernames become lowercase keys
    - records without a `verified` flag predate verification and count as verified
    - plain-text `passcode` values are replaced by a hash
    - companies get their `name`/`sites`/`employees`/`logs` containers
    - roster usernames are lowercased; log and history times become ISO-8601
    - a checked-in employee without `checkInTime` takes it from `lastPing`, or is checked out

    Returns the migrated copy and whether anything changed.
    """

    blob = copy.deepcopy(blob or {})
    changed = False

    users_in = blob.get("users") or {}
    users_out: dict[str, dict] = {}
    for key, record in users_in.items():
        lower = key.lower()
        if lower != key:
            changed = True
        record = dict(record or {})
        if "verified" not in record:
            record["verified"] = True
            changed = True
        legacy_passcode = record.pop("passcode", None)
        if legacy_passcode:
            record["passcodeHash"] = generate_password_hash(str(legacy_passcode))
            changed = True
        elif legacy_passcode is not None:
            changed = True
        for point in record.get("history") or []:
            changed = _coerce_time(point) or changed
        if record.get("status") == "checked-in" and record.get("checkInTime") is None:
            # A checked-in record always carries its check-in time.
            if record.get("lastPing") is not None:
                record["checkInTime"] = record["lastPing"]
            else:
                record["status"] = "checked-out"
            logger.warning("check_in_time_missing", username=lower, status=record["status"])
            changed = True
        users_out[lower] = record
    if "users" not in blob:
        changed = True
    blob["users"] = users_out

    companies = blob.get("companies")
    if companies is None:
        companies = blob["companies"] = {}
        changed = True
    for company_id, company in companies.items():
        if not company.get("name"):
            company["name"] = company_id
            changed = True
        for key in ("sites", "employees", "logs"):
            if company.get(key) is None:
                company[key] = []
                changed = True
        for entry in company["employees"]:
            if entry.get("username") and entry["username"] != entry["username"].lower():
                entry["username"] = entry["username"].lower()
                changed = True
        for entry in company["logs"]:
            changed = _coerce_time(entry) or changed

    if changed:
        logger.info("state_migrated", users=len(users_out), companies=len(companies))
    return blob, changed


# Browser `toLocaleString()` / `toLocaleTimeString()` output in the en-US locale.
_LOCALE_FORMATS = ("%m/%d/%Y, %I:%M:%S %p", "%m/%d/%Y, %H:%M:%S")
_LOCALE_TIME_FORMATS = ("%I:%M:%S %p", "%H:%M:%S")


def _coerce_time(entry: dict) -> bool:
    """Rewrite `entry["time"]` as ISO-8601; returns whether the entry changed.

    Non-ISO text is kept verbatim under `legacyTime`.
    """
    value = entry.get("time")
    iso = _iso_time(value)
    if iso == value:
        return False
    entry["time"] = iso
    if isinstance(value, str) and value:
        entry.setdefault("legacyTime", value)
    return True


def _iso_time(value) -> str:
    """Coerce a stored timestamp (ISO text, epoch ms or en-US locale text) to ISO-8601."""
    if isinstance(value, (int, float)):
        return from_epoch_ms(int(value)).isoformat()
    if isinstance(value, str):
        try:
            datetime.fromisoformat(value)
            return value
        except ValueError:
            pass
        parsed = _parse_locale(value)
        if parsed is not None:
            return parsed.isoformat()
    logger.warning("log_time_unparseable", value=value)
    return now_utc().isoformat()


def _parse_locale(value: str) -> Optional[datetime]:
    # Recent browsers put a narrow no-break space before AM/PM; split() folds it.
    text = " ".join(value.split())
    for fmt in _LOCALE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=timezone.utc)
        except ValueError:
            continue
    # Time-only text is pinned to the day of the migration.
    today = now_utc()
    for fmt in _LOCALE_TIME_FORMATS:
        try:
            clock = datetime.strptime(text, fmt)
        except ValueError:
            continue
        return today.replace(hour=clock.hour, minute=clock.minute, second=clock.second, microsecond=0)
    return None
