from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from ..companies.model import Site
from ..companies.repository import CompanyRepository
from ..core.exceptions import IntegrityError, LocationUnavailableError, OutOfRangeError
from ..geo.distance import distance_between
from ..geo.model import Position
from ..location.tracker import LocationTracker
from ..users.model import EmployeeRecord
from ..users.session import SessionStore
from .policy import GeofencePolicy

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class FenceResult:
    site: Site
    position: Position
    distance_meters: float
    within_fence: bool


ExitListener = Callable[[FenceResult], None]


class GeofenceEvaluator:
    """Decides containment for gating and watches for exits while checked in."""

    def __init__(
        self,
        session: SessionStore,
        tracker: LocationTracker,
        companies: CompanyRepository,
        *,
        policy: Optional[GeofencePolicy] = None,
    ):
        self._session = session
        self._tracker = tracker
        self._companies = companies
        self._policy = policy or GeofencePolicy()
        self._exit_listeners: list[ExitListener] = []

    @property
    def policy(self) -> GeofencePolicy:
        return self._policy

    def evaluate(self, position: Position, site: Site, *, radius_m: Optional[float] = None) -> FenceResult:
        radius = self._policy.radius_m if radius_m is None else radius_m
        distance = distance_between(position, site.position)
        return FenceResult(site=site, position=position, distance_meters=distance, within_fence=distance <= radius)

    def assigned_site(self, employee: EmployeeRecord) -> Site:
        company = self._companies.get(employee.company_id)
        if company is None:
            raise IntegrityError("Company record not found. Contact your manager.")
        site = company.find_site(employee.assigned_site_id)
        if site is None:
            raise IntegrityError("Your assigned worksite was deleted or not found. Contact your manager.")
        return site

    def require_within(self, employee: EmployeeRecord, *, action: str = "check in") -> FenceResult:
        """Gate used by login and check-in: same formula, same radius."""
        position = self._tracker.last_known_position
        if position is None:
            raise LocationUnavailableError("GPS not available yet. Allow location access and wait a moment.")

        result = self.evaluate(position, self.assigned_site(employee))
        if not result.within_fence:
            raise OutOfRangeError(
                f"You are {round(result.distance_meters)}m away from {result.site.name}. "
                f"You must be within {round(self._policy.radius_m)}m to {action}.",
                distance_meters=result.distance_meters,
                site_name=result.site.name,
            )
        return result

    # ---- monitoring ----

    def on_exit(self, listener: ExitListener) -> None:
        self._exit_listeners.append(listener)

    def monitor(self, position: Position) -> Optional[FenceResult]:
        """Evaluate a fresh sample for the signed-in employee.

        Fires exit listeners on the first sample outside the exit radius; there
        is no debounce.
        """
        employee = self._session.current_employee()
        if employee is None or not employee.is_checked_in:
            return None

        company = self._companies.get(employee.company_id)
        site = company.find_site(employee.assigned_site_id) if company else None
        if site is None:
            return None

        result = self.evaluate(position, site, radius_m=self._policy.exit_radius_m)
        if result.within_fence:
            return result

        logger.info(
            "geofence_exit",
            username=employee.username,
            site=site.site_id,
            distance_m=round(result.distance_meters, 1),
        )
        for listener in list(self._exit_listeners):
            listener(result)
        return result
