from __future__ import annotations

import secrets
from dataclasses import dataclass
from typing import Callable, Optional

import structlog
from werkzeug.security import check_password_hash, generate_password_hash

from ..attendance.service import AttendanceService
from ..common.validators import normalize_company_id, normalize_username, optional_text, require_non_empty
from ..companies.model import Company
from ..companies.repository import CompanyRepository
from ..companies.service import generate_company_id
from ..core.enums import LoginOutcome, Role
from ..core.exceptions import AuthenticationError, AuthorizationError, ValidationError, VerificationError
from ..geofence.evaluator import GeofenceEvaluator
from ..location.tracker import LocationTracker
from ..presentation.presenter import Presenter
from ..storage.state import AppState
from .model import EmployeeRecord, ManagerRecord, UserRecord
from .repository import UserRepository
from .session import SessionStore

logger = structlog.get_logger(__name__)


def new_verify_code() -> str:
    return str(1000 + secrets.randbelow(9000))


@dataclass(frozen=True)
class LoginResult:
    outcome: LoginOutcome
    username: str
    role: Role
    company_id: Optional[str]
    message: str = ""


@dataclass(frozen=True)
class Registration:
    username: str
    company_id: Optional[str]
    verify_code: str


class AuthService:
    """Use cases: registration, verification, login and logout on one device."""

    def __init__(
        self,
        state: AppState,
        session: SessionStore,
        users: UserRepository,
        companies: CompanyRepository,
        tracker: LocationTracker,
        evaluator: GeofenceEvaluator,
        attendance: AttendanceService,
        presenter: Presenter,
        *,
        bypass_code: Optional[str] = None,
        code_factory: Callable[[], str] = new_verify_code,
    ):
        self._state = state
        self._session = session
        self._users = users
        self._companies = companies
        self._tracker = tracker
        self._evaluator = evaluator
        self._attendance = attendance
        self._presenter = presenter
        self._bypass_code = bypass_code
        self._code_factory = code_factory
        self._awaiting_fix = False

    # ---- registration ----

    def register_company(self, *, company_name: str, manager_username: str, passcode: Optional[str] = None) -> Registration:
        company_name = require_non_empty(company_name, "Company name")
        username = normalize_username(manager_username)
        if self._users.get(username):
            raise AuthorizationError("Username already taken. Choose another manager username.")

        company_id = generate_company_id(company_name, taken=self._companies.exists)
        code = self._code_factory()
        self._companies.add(Company(company_id=company_id, name=company_name))
        self._users.add(
            ManagerRecord(
                username=username,
                company_id=company_id,
                verified=False,
                verify_code=code,
                passcode_hash=_hash_optional(passcode),
            )
        )
        self._state.commit()

        self._send_code(username, username, code)
        logger.info("company_registered", company=company_id, manager=username)
        return Registration(username=username, company_id=company_id, verify_code=code)

    def register_employee_self(
        self,
        *,
        username: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        passcode: Optional[str] = None,
    ) -> Registration:
        username = normalize_username(username)
        email = optional_text(email)
        phone = optional_text(phone)
        if not email and not phone:
            raise ValidationError("Please provide either an email or a phone number")
        if self._users.get(username):
            raise AuthorizationError("Username already taken")

        code = self._code_factory()
        self._users.add(
            EmployeeRecord(
                username=username,
                company_id=None,
                verified=False,
                verify_code=code,
                passcode_hash=_hash_optional(passcode),
                email=email,
                phone=phone,
            )
        )
        self._state.commit()

        self._send_code(username, email or phone, code)
        logger.info("employee_self_registered", username=username)
        return Registration(username=username, company_id=None, verify_code=code)

    def _send_code(self, username: str, contact: str, code: str) -> None:
        # Delivery is simulated: the code is shown to whoever registered.
        logger.info("verification_code_issued", username=username, contact=contact)
        self._presenter.notify(f"SIMULATION: verification code sent to {contact}. Code: {code}", "info")

    # ---- verification ----

    def verify_account(self, code: str) -> LoginResult:
        username = self._session.pending_username
        if not username:
            raise ValidationError("There is no account waiting for verification. Please log in.")
        user = self._users.get(username)
        if user is None:
            self._session.clear_pending()
            raise AuthenticationError("User not found. Please register first.")

        code = (code or "").strip()
        if not code or (code != user.verify_code and code != self._bypass_code):
            raise VerificationError("Invalid code. Please try again.")

        user.verified = True
        user.verify_code = None
        if isinstance(user, ManagerRecord) and user.company_id and not self._companies.exists(user.company_id):
            self._companies.add(Company(company_id=user.company_id, name=user.company_id))
        self._state.commit()
        self._session.clear_pending()
        self._presenter.notify("Account verified successfully", "success")
        logger.info("account_verified", username=username)

        return self._complete_login(user)

    # ---- login / logout ----

    def login(self, *, username: str, company_id: Optional[str] = None, passcode: Optional[str] = None) -> LoginResult:
        username = normalize_username(username)
        user = self._users.get(username)
        if user is None:
            raise AuthenticationError("User not found. Please register first.")

        company_id = normalize_company_id(company_id)
        if not company_id:
            if not user.company_id:
                raise AuthorizationError(
                    "You do not have a Company ID yet. Ask your manager to link your account."
                )
            company_id = user.company_id

        if user.company_id and user.company_id != company_id:
            raise AuthorizationError(f"Incorrect Company ID. This user belongs to company {user.company_id}.")

        if user.has_passcode:
            passcode = (passcode or "").strip()
            if not passcode:
                raise AuthenticationError("This account is protected. Enter your passcode to log in.")
            if not _passcode_matches(user, passcode):
                raise AuthenticationError("Invalid passcode")

        if not user.verified:
            self._session.set_pending(username)
            return LoginResult(
                outcome=LoginOutcome.VERIFICATION_REQUIRED,
                username=username,
                role=user.role,
                company_id=user.company_id,
                message="Enter the verification code to finish signing in",
            )

        return self._complete_login(user)

    def _complete_login(self, user: UserRecord) -> LoginResult:
        if not user.company_id:
            raise AuthorizationError(
                f"You are not linked to a company yet. Ask your manager to register username \"{user.username}\"."
            )

        if isinstance(user, EmployeeRecord):
            if self._tracker.last_known_position is None:
                # Deferred, not denied: the next fix lets the user try again.
                self._tracker.request_fix()
                self._awaiting_fix = True
                logger.info("login_awaiting_location", username=user.username)
                return LoginResult(
                    outcome=LoginOutcome.AWAITING_LOCATION,
                    username=user.username,
                    role=user.role,
                    company_id=user.company_id,
                    message="Detecting location. Allow GPS access, then log in again.",
                )
            self._evaluator.require_within(user, action="log in")

        self._session.sign_in(user.username)
        self._attendance.resume()
        self._presenter.refresh()
        logger.info("logged_in", username=user.username, role=user.role.value)
        return LoginResult(
            outcome=LoginOutcome.SUCCESS,
            username=user.username,
            role=user.role,
            company_id=user.company_id,
        )

    def fix_arrived(self) -> None:
        """Tell a user whose login waited for GPS that they can log in now (once)."""
        if not self._awaiting_fix:
            return
        self._awaiting_fix = False
        self._presenter.notify("GPS linked. Click Login again.", "success")

    def logout(self) -> None:
        """End the device session; an employee stays checked in."""
        username = self._session.current_username
        self._awaiting_fix = False
        self._attendance.stop_timers()
        self._session.sign_out()
        self._session.clear_pending()
        self._presenter.refresh()
        if username:
            logger.info("logged_out", username=username)


def _hash_optional(passcode: Optional[str]) -> Optional[str]:
    passcode = optional_text(passcode)
    return generate_password_hash(passcode) if passcode else None


def _passcode_matches(user: UserRecord, passcode: str) -> bool:
    try:
        return check_password_hash(user.passcode_hash or "", passcode)
    except ValueError:
        # e.g. a corrupted or unknown hash format
        return False
