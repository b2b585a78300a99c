from __future__ import annotations

from typing import Optional

from ..companies.service import DirectoryService
from ..core.exceptions import IntegrityError
from ..geofence.evaluator import GeofenceEvaluator
from ..location.tracker import LocationTracker
from ..users.model import EmployeeRecord, ManagerRecord
from ..users.session import SessionStore
from .presenter import QueuedPresenter


def _fmt_time(value) -> Optional[str]:
    return value.isoformat() if value else None


def location_view(tracker: LocationTracker) -> dict:
    st = tracker.state()
    pos = st.last_known_position
    return {
        "position": {"lat": pos.lat, "lng": pos.lng, "captured_at": _fmt_time(pos.captured_at)} if pos else None,
        "coords": pos.describe() if pos else None,
        "mode": st.acquisition_mode.value,
        "error": st.last_error.name if st.last_error else None,
        "auto_retry": st.auto_retry,
        "offer_mock": st.manual_override_offered,
    }


def build_dashboard(
    session: SessionStore,
    directory: DirectoryService,
    tracker: LocationTracker,
    presenter: QueuedPresenter,
    evaluator: GeofenceEvaluator,
) -> dict:
    """Role-specific read model for the single-page dashboard."""
    user = session.current_user()
    out: dict = {"location": location_view(tracker), "user": None}
    if user is None:
        return out

    out["user"] = {"username": user.username, "role": user.role.value, "company_id": user.company_id}

    if isinstance(user, ManagerRecord):
        out["sites"] = [
            {"id": s.site_id, "name": s.name, "lat": s.lat, "lng": s.lng} for s in directory.sites()
        ]
        out["team_status"] = [
            {
                "site_id": team.site.site_id,
                "site_name": team.site.name,
                "members": [
                    {
                        "username": m.username,
                        "checked_in": m.checked_in,
                        "label": "Active on site" if m.checked_in else "Not at site",
                    }
                    for m in team.members
                ],
            }
            for team in directory.team_status()
        ]
        out["roster"] = [
            {"username": m.username, "contact": m.contact, "site_id": m.site_id, "site_name": m.site_name}
            for m in directory.roster()
        ]
        out["logs"] = [
            {"username": l.username, "action": l.action, "time": _fmt_time(l.time), "legacy_time": l.legacy_time}
            for l in directory.logs()
        ]
    elif isinstance(user, EmployeeRecord):
        out["attendance"] = {
            "status": user.status.value,
            "checked_in": user.is_checked_in,
            "check_in_time": _fmt_time(user.check_in_time),
            "assigned_site_id": user.assigned_site_id,
            "clock": presenter.clock_text,
            "re_check_required": presenter.clock_overdue,
        }
        out["site"] = _site_view(user, tracker, evaluator)
    return out


def _site_view(employee: EmployeeRecord, tracker: LocationTracker, evaluator: GeofenceEvaluator) -> Optional[dict]:
    try:
        site = evaluator.assigned_site(employee)
    except IntegrityError:
        return None
    view = {"id": site.site_id, "name": site.name, "lat": site.lat, "lng": site.lng, "distance_meters": None}
    position = tracker.last_known_position
    if position is not None:
        result = evaluator.evaluate(position, site)
        view["distance_meters"] = round(result.distance_meters, 1)
        view["within_fence"] = result.within_fence
    return view
