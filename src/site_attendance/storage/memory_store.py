from __future__ import annotations

import copy
from typing import Callable, Optional

from .store import ChangeListener, KeyValueStore


class InMemoryStore(KeyValueStore):
    def __init__(self, blob: Optional[dict] = None):
        self._blob = copy.deepcopy(blob) if blob is not None else None
        self._listeners: list[ChangeListener] = []
        self.save_count = 0

    def load(self) -> Optional[dict]:
        return copy.deepcopy(self._blob) if self._blob is not None else None

    def save(self, blob: dict) -> None:
        self._blob = copy.deepcopy(blob)
        self.save_count += 1

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def write_external(self, blob: dict) -> None:
        """Simulate another context overwriting the blob."""
        self._blob = copy.deepcopy(blob)
        for listener in list(self._listeners):
            listener(copy.deepcopy(blob))
