from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


class Presenter(Protocol):
    """What the core asks of the UI: re-render, transient notices, the shift clock.

    The core never reads UI state back.
    """

    def refresh(self) -> None:
        raise NotImplementedError

    def notify(self, message: str, level: str = "info") -> None:
        raise NotImplementedError

    def show_clock(self, text: Optional[str], *, overdue: bool = False) -> None:
        raise NotImplementedError


@dataclass(frozen=True)
class Notice:
    message: str
    level: str


class QueuedPresenter(Presenter):
    """Buffers notices until the HTTP layer drains them into a response.

    Levels follow the flash categories: success, info, warning, danger.
    """

    def __init__(self):
        self._notices: list[Notice] = []
        self.refresh_requested = False
        self.clock_text: Optional[str] = None
        self.clock_overdue = False

    def refresh(self) -> None:
        self.refresh_requested = True

    def notify(self, message: str, level: str = "info") -> None:
        self._notices.append(Notice(message=message, level=level))

    def show_clock(self, text: Optional[str], *, overdue: bool = False) -> None:
        self.clock_text = text
        self.clock_overdue = overdue

    def drain(self) -> list[dict]:
        notices, self._notices = self._notices, []
        self.refresh_requested = False
        return [{"message": n.message, "level": n.level} for n in notices]
