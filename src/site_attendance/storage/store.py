from __future__ import annotations

from typing import Callable, Optional, Protocol

ChangeListener = Callable[[dict], None]


class KeyValueStore(Protocol):
    """Persistence collaborator holding the whole application state as one JSON blob.

    `subscribe` registers a listener fired with the new blob when another
    execution context (tab, process) modifies it. Writes made through `save`
    on this instance never notify.
    """

    def load(self) -> Optional[dict]:
        raise NotImplementedError

    def save(self, blob: dict) -> None:
        raise NotImplementedError

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        raise NotImplementedError
