from __future__ import annotations

from typing import Optional

from ..core.exceptions import AuthenticationError, AuthorizationError
from .model import EmployeeRecord, ManagerRecord, UserRecord
from .repository import UserRepository


class SessionStore:
    """Who is signed in on this device, and who is waiting for verification.

    Only usernames are held; records are always looked up live so an external
    state replacement is picked up immediately.
    """

    def __init__(self, users: UserRepository):
        self._users = users
        self._current: Optional[str] = None
        self._pending: Optional[str] = None

    @property
    def current_username(self) -> Optional[str]:
        return self._current

    @property
    def pending_username(self) -> Optional[str]:
        return self._pending

    def current_user(self) -> Optional[UserRecord]:
        if self._current is None:
            return None
        return self._users.get(self._current)

    def current_employee(self) -> Optional[EmployeeRecord]:
        user = self.current_user()
        return user if isinstance(user, EmployeeRecord) else None

    def sign_in(self, username: str) -> None:
        self._current = username
        self._pending = None

    def sign_out(self) -> None:
        self._current = None

    def set_pending(self, username: str) -> None:
        self._pending = username

    def clear_pending(self) -> None:
        self._pending = None

    def restore(self, username: Optional[str]) -> bool:
        """Re-attach a remembered session if the account still exists."""
        if username and self._users.get(username):
            self._current = username
            return True
        self._current = None
        return False

    def require_user(self) -> UserRecord:
        user = self.current_user()
        if user is None:
            raise AuthenticationError("Please log in first")
        return user

    def require_manager(self) -> ManagerRecord:
        user = self.require_user()
        if not isinstance(user, ManagerRecord):
            raise AuthorizationError("Only managers can do this")
        return user

    def require_employee(self) -> EmployeeRecord:
        user = self.require_user()
        if not isinstance(user, EmployeeRecord):
            raise AuthorizationError("Only employees can do this")
        return user
