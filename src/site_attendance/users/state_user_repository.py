from __future__ import annotations

from typing import Optional

from ..storage.state import AppState
from .model import UserRecord
from .repository import UserRepository


class StateUserRepository(UserRepository):
    def __init__(self, state: AppState):
        self._state = state

    def get(self, username: str) -> Optional[UserRecord]:
        return self._state.users.get(username.lower())

    def add(self, user: UserRecord) -> None:
        self._state.users[user.username.lower()] = user

    def delete(self, username: str) -> bool:
        return self._state.users.pop(username.lower(), None) is not None
