from __future__ import annotations

from typing import Optional, Protocol

from .model import UserRecord


class UserRepository(Protocol):
    """Repository interface for user records, keyed by lowercase username.

    Services depend on this interface, not on the concrete state layout.
    """

    def get(self, username: str) -> Optional[UserRecord]:
        raise NotImplementedError

    def add(self, user: UserRecord) -> None:
        raise NotImplementedError

    def delete(self, username: str) -> bool:
        raise NotImplementedError
