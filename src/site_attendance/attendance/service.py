from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable, Optional

import structlog

from ..common.datetime_utils import format_elapsed, now_utc
from ..companies.model import Company, LogEntry
from ..companies.repository import CompanyRepository
from ..core.constants import (
    CLOCK_TICK_SECONDS,
    DEFAULT_CHECKOUT_REASON,
    GEOFENCE_EXIT_REASON,
    HISTORY_SAMPLE_SECONDS,
    RE_CHECK_AFTER_HOURS,
)
from ..core.exceptions import ValidationError
from ..geofence.evaluator import FenceResult, GeofenceEvaluator
from ..location.tracker import LocationTracker
from ..presentation.presenter import Presenter
from ..storage.state import AppState
from ..users.model import EmployeeRecord, HistoryPoint
from ..users.session import SessionStore
from .model import CheckInResult
from .timers import RecurringSlot, Scheduler

logger = structlog.get_logger(__name__)


class AttendanceService:
    """Check-in/check-out state machine for the employee signed in on a device.

    CheckedOut -> CheckedIn only through `check_in` (position known, assigned
    site exists, inside the fence). CheckedIn -> CheckedOut through `check_out`,
    either on request or forced by a geofence exit. While checked in the device
    owns two recurring timers: the history sampler and the shift clock.
    """

    def __init__(
        self,
        state: AppState,
        session: SessionStore,
        companies: CompanyRepository,
        tracker: LocationTracker,
        evaluator: GeofenceEvaluator,
        presenter: Presenter,
        scheduler: Scheduler,
        *,
        sample_seconds: float = HISTORY_SAMPLE_SECONDS,
        clock: Callable[[], datetime] = now_utc,
    ):
        self._state = state
        self._session = session
        self._companies = companies
        self._tracker = tracker
        self._evaluator = evaluator
        self._presenter = presenter
        self._sample_seconds = float(sample_seconds)
        self._clock = clock

        self._sampler = RecurringSlot(scheduler, "history")
        self._shift_clock = RecurringSlot(scheduler, "shift-clock")

    @property
    def sampling(self) -> bool:
        return self._sampler.active

    @property
    def clock_running(self) -> bool:
        return self._shift_clock.active

    # ---- transitions ----

    def check_in(self, *, now: Optional[datetime] = None) -> CheckInResult:
        now = now or self._clock()
        employee = self._session.require_employee()
        if employee.is_checked_in:
            raise ValidationError("You are already checked in")

        fence = self._evaluator.require_within(employee, action="check in")
        site = fence.site

        employee.mark_checked_in(now)
        self._append_history(employee, site.site_id, now)
        self._add_log(employee, f"Check-In @ {site.name}", now)
        self._state.commit()

        self._start_timers()
        self._presenter.refresh()
        logger.info("checked_in", username=employee.username, site=site.site_id, distance_m=round(fence.distance_meters, 1))

        return CheckInResult(
            site_id=site.site_id,
            site_name=site.name,
            distance_meters=fence.distance_meters,
            check_in_time=now,
        )

    def check_out(self, reason: str = DEFAULT_CHECKOUT_REASON, *, now: Optional[datetime] = None) -> bool:
        """Returns False (and changes nothing) when there is nobody to check out."""
        now = now or self._clock()
        employee = self._session.current_employee()
        if employee is None or not employee.is_checked_in:
            return False

        employee.mark_checked_out()
        self.stop_timers()
        self._add_log(employee, reason or DEFAULT_CHECKOUT_REASON, now)
        self._state.commit()

        self._presenter.refresh()
        logger.info("checked_out", username=employee.username, reason=reason)
        return True

    def handle_geofence_exit(self, result: FenceResult) -> None:
        self._presenter.notify(
            f"You have left the {result.site.name} boundary ({round(result.distance_meters)}m). "
            "Your shift has been paused (automatic check-out).",
            "warning",
        )
        self.check_out(GEOFENCE_EXIT_REASON)

    # ---- history ----

    def record_history_point(self, site_id: Optional[str] = None, *, now: Optional[datetime] = None) -> bool:
        employee = self._session.current_employee()
        if employee is None or self._tracker.last_known_position is None:
            return False

        self._append_history(employee, site_id or employee.assigned_site_id, now or self._clock())
        self._state.commit()
        return True

    def _append_history(self, employee: EmployeeRecord, site_id: Optional[str], now: datetime) -> None:
        position = self._tracker.last_known_position
        if position is None:
            return
        employee.append_history(HistoryPoint(lat=position.lat, lng=position.lng, time=now, site_id=site_id))

    def _sample(self) -> None:
        employee = self._session.current_employee()
        if employee is None or not employee.is_checked_in:
            # The record changed under us (removed, checked out elsewhere).
            self.stop_timers()
            return
        self.record_history_point(employee.assigned_site_id)

    # ---- timers ----

    def resume(self) -> None:
        """Restart the session-owned timers for an employee who is still checked in."""
        employee = self._session.current_employee()
        if employee is not None and employee.is_checked_in:
            self._start_timers()

    def _start_timers(self) -> None:
        self._sampler.start(self._sample_seconds, self._sample)
        self._shift_clock.start(CLOCK_TICK_SECONDS, self.tick_clock)
        self.tick_clock()

    def stop_timers(self) -> None:
        self._sampler.stop()
        self._shift_clock.stop()
        self._presenter.show_clock(None)

    def tick_clock(self) -> None:
        employee = self._session.current_employee()
        if employee is None or employee.check_in_time is None:
            self._shift_clock.stop()
            self._presenter.show_clock(None)
            return
        elapsed = self._clock() - employee.check_in_time
        self._presenter.show_clock(format_elapsed(elapsed), overdue=elapsed >= timedelta(hours=RE_CHECK_AFTER_HOURS))

    # ---- logs ----

    def _add_log(self, employee: EmployeeRecord, action: str, now: datetime) -> None:
        company: Optional[Company] = self._companies.get(employee.company_id)
        if company is None:
            logger.warning("log_skipped_missing_company", username=employee.username, company=employee.company_id)
            return
        company.add_log(LogEntry(username=employee.username, action=action, time=now))
