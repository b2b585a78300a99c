from __future__ import annotations

import threading
from typing import Callable, Optional

import structlog
from werkzeug.security import generate_password_hash

from ..companies.model import Company, Site
from ..users.model import ManagerRecord, UserRecord
from .codec import state_from_dict, state_to_dict
from .migrations import migrate
from .store import KeyValueStore

logger = structlog.get_logger(__name__)

Listener = Callable[[], None]


class AppState:
    """The whole application state, shared by every device session.

    All mutations go through `commit()`, which persists the blob and then
    notifies commit listeners. A change written by another context replaces the
    in-memory state wholesale (last write wins, no merge) and notifies the
    replace listeners. `lock` serializes every command, timer tick and position
    delivery so each runs to completion before the next.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store
        self.lock = threading.RLock()
        self.companies: dict[str, Company] = {}
        self.users: dict[str, UserRecord] = {}
        self._commit_listeners: list[Listener] = []
        self._replace_listeners: list[Listener] = []
        self._unsubscribe_store = store.subscribe(self._on_external_change)

    # ---- lifecycle ----

    def load(self, *, seed: Optional[dict] = None) -> None:
        """Load from the store, falling back to `seed` (or empty) for a fresh store."""
        blob = self._store.load()
        fresh = blob is None
        blob, changed = migrate(blob if blob is not None else (seed or {}))
        with self.lock:
            self.companies, self.users = state_from_dict(blob)
        if fresh or changed:
            self._store.save(self.to_dict())
        logger.info("state_loaded", companies=len(self.companies), users=len(self.users), fresh=fresh)

    def close(self) -> None:
        self._unsubscribe_store()

    def to_dict(self) -> dict:
        return state_to_dict(self.companies, self.users)

    # ---- mutation gateway ----

    def commit(self) -> None:
        with self.lock:
            self._store.save(self.to_dict())
            for listener in list(self._commit_listeners):
                listener()

    def replace(self, blob: dict) -> None:
        """Full-state replacement; never a merge."""
        blob, _ = migrate(blob)
        with self.lock:
            self.companies, self.users = state_from_dict(blob)
            logger.info("external_state_replaced", companies=len(self.companies), users=len(self.users))
            for listener in list(self._replace_listeners):
                listener()

    def _on_external_change(self, blob: dict) -> None:
        self.replace(blob)

    # ---- listeners ----

    def on_commit(self, listener: Listener) -> Callable[[], None]:
        self._commit_listeners.append(listener)
        return lambda: self._commit_listeners.remove(listener)

    def on_replace(self, listener: Listener) -> Callable[[], None]:
        self._replace_listeners.append(listener)
        return lambda: self._replace_listeners.remove(listener)


def demo_seed() -> dict:
    """Demo company with one site and a verified manager (passcode 123)."""
    company = Company(
        company_id="DEMO",
        name="Demo Company",
        sites=[Site(site_id="site_1", name="Main HQ", lat=31.9686, lng=99.9018)],
    )
    manager = ManagerRecord(
        username="manager",
        company_id="DEMO",
        verified=True,
        passcode_hash=generate_password_hash("123"),
    )
    return state_to_dict({company.company_id: company}, {manager.username: manager})
