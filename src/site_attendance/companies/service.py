from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, Optional

import structlog
from werkzeug.security import generate_password_hash

from ..common.validators import is_email, normalize_username, optional_text, require_non_empty
from ..core.exceptions import (
    AuthorizationError,
    IntegrityError,
    LocationUnavailableError,
    ValidationError,
)
from ..geo.model import Position
from ..location.tracker import LocationTracker
from ..presentation.presenter import Presenter
from ..storage.state import AppState
from ..users.model import EmployeeRecord, HistoryPoint, ManagerRecord
from ..users.repository import UserRepository
from ..users.session import SessionStore
from .model import Company, EmployeeSummary, LogEntry, Site
from .repository import CompanyRepository

logger = structlog.get_logger(__name__)


def generate_company_id(name: str, *, taken: Callable[[str], bool] = lambda _: False) -> str:
    """First four characters of the name plus a 4-digit suffix, uppercased (e.g. ACME1234)."""
    prefix = name.strip()[:4]
    while True:
        candidate = f"{prefix}{random.randint(1000, 9999)}".upper()
        if not taken(candidate):
            return candidate


@dataclass(frozen=True)
class TeamMember:
    username: str
    contact: Optional[str]
    site_id: Optional[str]
    site_name: str
    checked_in: bool


@dataclass(frozen=True)
class SiteTeam:
    site: Site
    members: list[TeamMember]


class DirectoryService:
    """Use case: a manager maintains the company's sites and roster."""

    def __init__(
        self,
        state: AppState,
        session: SessionStore,
        users: UserRepository,
        companies: CompanyRepository,
        tracker: LocationTracker,
        presenter: Presenter,
        *,
        id_clock: Callable[[], float] = time.time,
    ):
        self._state = state
        self._session = session
        self._users = users
        self._companies = companies
        self._tracker = tracker
        self._presenter = presenter
        self._id_clock = id_clock

    def _manager_company(self) -> tuple[ManagerRecord, Company]:
        manager = self._session.require_manager()
        company = self._companies.get(manager.company_id)
        if company is None:
            raise IntegrityError("Company record not found")
        return manager, company

    def _usable_position(self) -> Position:
        position = self._tracker.last_known_position
        if position is None:
            raise LocationUnavailableError("Waiting for GPS signal...")
        if position.is_null_island():
            raise ValidationError("GPS error: your location is reading as (0,0). Please wait for a better signal.")
        return position

    # ---- sites ----

    def create_site(self, name: str) -> Site:
        name = require_non_empty(name, "Site name")
        _, company = self._manager_company()
        position = self._usable_position()

        site_id = f"site_{int(self._id_clock() * 1000)}"
        while company.find_site(site_id):
            site_id = f"{site_id}_1"

        site = Site(site_id=site_id, name=name, lat=position.lat, lng=position.lng)
        company.sites.append(site)
        self._state.commit()

        self._presenter.notify(f'Site "{name}" created', "success")
        self._presenter.refresh()
        logger.info("site_created", company=company.company_id, site=site_id, lat=site.lat, lng=site.lng)
        return site

    def update_site_location(self, site_id: str) -> Site:
        _, company = self._manager_company()
        position = self._usable_position()
        site = company.find_site(site_id)
        if site is None:
            raise ValidationError("Site not found")

        site.relocate(position)
        self._state.commit()

        self._presenter.notify(f'Location for "{site.name}" updated', "success")
        self._presenter.refresh()
        logger.info("site_relocated", company=company.company_id, site=site_id, lat=site.lat, lng=site.lng)
        return site

    # ---- roster ----

    def register_employee(
        self,
        *,
        username: str,
        contact: str,
        site_id: str,
        passcode: Optional[str] = None,
    ) -> EmployeeRecord:
        """Create, link or re-assign an employee to one of this company's sites."""
        username = normalize_username(username)
        contact = require_non_empty(contact, "Contact")
        site_id = require_non_empty(site_id, "Worksite")
        _, company = self._manager_company()
        if company.find_site(site_id) is None:
            raise ValidationError("Unknown worksite")

        email = contact if is_email(contact) else None
        phone = None if is_email(contact) else contact
        user = self._users.get(username)

        if user is None:
            passcode = optional_text(passcode)
            user = EmployeeRecord(
                username=username,
                company_id=company.company_id,
                verified=True,
                passcode_hash=generate_password_hash(passcode) if passcode else None,
                email=email,
                phone=phone,
                assigned_site_id=site_id,
            )
            self._users.add(user)
            message = f"Employee {username} linked successfully"
        elif not isinstance(user, EmployeeRecord):
            raise AuthorizationError(f'User "{username}" is a manager account')
        elif user.company_id is None:
            user.company_id = company.company_id
            user.assigned_site_id = site_id
            user.email = email
            user.phone = phone
            message = f"Employee {username} linked successfully"
        elif user.company_id != company.company_id:
            raise AuthorizationError(f'User "{username}" belongs to another company')
        else:
            user.assigned_site_id = site_id
            message = f"Updated site for {username}"

        summary = company.find_employee(username)
        if summary is None:
            company.employees.append(EmployeeSummary(username=username, contact=contact, assigned_site_id=site_id))
        else:
            summary.assigned_site_id = site_id

        self._state.commit()
        self._presenter.notify(message, "success")
        self._presenter.refresh()
        logger.info("employee_registered", company=company.company_id, username=username, site=site_id)
        return user

    def remove_employee(self, username: str) -> None:
        """Drop the roster entry and the global account in one commit."""
        username = normalize_username(username)
        _, company = self._manager_company()
        user = self._users.get(username)
        if user is not None and user.company_id not in (None, company.company_id):
            raise AuthorizationError(f'User "{username}" belongs to another company')
        if isinstance(user, ManagerRecord):
            raise AuthorizationError("Manager accounts cannot be removed from the team")
        if user is None and company.find_employee(username) is None:
            raise ValidationError(f"No employee named {username}")

        company.employees = [e for e in company.employees if e.username != username]
        self._users.delete(username)
        self._state.commit()

        self._presenter.notify("Employee removed", "success")
        self._presenter.refresh()
        logger.info("employee_removed", company=company.company_id, username=username)

    # ---- queries ----

    def sites(self) -> list[Site]:
        return list(self._manager_company()[1].sites)

    def roster(self) -> list[TeamMember]:
        _, company = self._manager_company()
        return [self._member(company, e) for e in company.employees]

    def team_status(self) -> list[SiteTeam]:
        """Employees grouped by site, with their live check-in state; empty sites omitted."""
        _, company = self._manager_company()
        teams: list[SiteTeam] = []
        for site in company.sites:
            members = [self._member(company, e) for e in company.employees if e.assigned_site_id == site.site_id]
            if members:
                teams.append(SiteTeam(site=site, members=members))
        return teams

    def logs(self) -> list[LogEntry]:
        return list(self._manager_company()[1].logs)

    def employee_history(self, username: str) -> list[HistoryPoint]:
        """Newest first."""
        username = normalize_username(username)
        _, company = self._manager_company()
        user = self._users.get(username)
        if user is None or user.company_id != company.company_id:
            raise ValidationError(f"No employee named {username}")
        return list(reversed(user.history))

    def _member(self, company: Company, summary: EmployeeSummary) -> TeamMember:
        user = self._users.get(summary.username)
        site = company.find_site(summary.assigned_site_id)
        return TeamMember(
            username=summary.username,
            contact=summary.contact,
            site_id=summary.assigned_site_id,
            site_name=site.name if site else "Unknown Site",
            checked_in=isinstance(user, EmployeeRecord) and user.is_checked_in,
        )
