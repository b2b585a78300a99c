from __future__ import annotations

import threading
from typing import Callable, Optional, Protocol

import structlog

logger = structlog.get_logger(__name__)

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None:
        raise NotImplementedError


class Scheduler(Protocol):
    def every(self, interval_seconds: float, callback: Callback) -> TimerHandle:
        raise NotImplementedError


class _ThreadTimer(TimerHandle):
    def __init__(self, interval: float, callback: Callback, lock: threading.RLock):
        self._interval = interval
        self._callback = callback
        self._lock = lock
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            with self._lock:
                if self._stopped.is_set():
                    return
                try:
                    self._callback()
                except Exception:
                    logger.exception("timer_callback_failed")

    def cancel(self) -> None:
        self._stopped.set()


class ThreadingScheduler(Scheduler):
    """Recurring timers on daemon threads.

    Every tick runs under the shared state lock, so ticks never interleave with
    requests or position deliveries.
    """

    def __init__(self, lock: threading.RLock):
        self._lock = lock

    def every(self, interval_seconds: float, callback: Callback) -> TimerHandle:
        return _ThreadTimer(float(interval_seconds), callback, self._lock)


class RecurringSlot:
    """A singly-owned recurring timer: starting again releases the previous one."""

    def __init__(self, scheduler: Scheduler, name: str):
        self._scheduler = scheduler
        self._name = name
        self._handle: Optional[TimerHandle] = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    def start(self, interval_seconds: float, callback: Callback) -> None:
        self.stop()
        self._handle = self._scheduler.every(interval_seconds, callback)
        logger.debug("timer_started", timer=self._name, interval_s=interval_seconds)

    def stop(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
