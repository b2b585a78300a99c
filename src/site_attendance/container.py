from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Callable, Optional

import structlog

from .attendance.service import AttendanceService
from .attendance.timers import Scheduler, ThreadingScheduler
from .companies.service import DirectoryService
from .companies.state_company_repository import StateCompanyRepository
from .core.constants import DEVICE_IDLE_SECONDS, HISTORY_SAMPLE_SECONDS, MAX_DEVICES, MAX_DISTANCE_METERS
from .core.enums import GeoErrorCode
from .geofence.evaluator import GeofenceEvaluator
from .geofence.policy import GeofencePolicy
from .location.geolocation import BrowserGeolocation, GeolocationError
from .location.tracker import LocationTracker
from .presentation.presenter import QueuedPresenter
from .storage.json_store import JsonFileStore
from .storage.memory_store import InMemoryStore
from .storage.state import AppState, demo_seed
from .storage.store import KeyValueStore
from .users.service import AuthService
from .users.session import SessionStore
from .users.state_user_repository import StateUserRepository

logger = structlog.get_logger(__name__)


@dataclass
class DeviceSession:
    """Everything one browser owns: its position feed, sign-in and timers."""

    device_id: str
    geolocation: BrowserGeolocation
    tracker: LocationTracker
    session: SessionStore
    presenter: QueuedPresenter
    evaluator: GeofenceEvaluator
    attendance: AttendanceService
    auth_service: AuthService
    directory_service: DirectoryService
    _unsubscribers: list[Callable[[], None]] = field(default_factory=list)

    def teardown(self) -> None:
        self.attendance.stop_timers()
        self.tracker.stop()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()


@dataclass(frozen=True)
class Container:
    state: AppState
    store: KeyValueStore
    scheduler: Scheduler
    policy: GeofencePolicy

    users_repo: StateUserRepository
    companies_repo: StateCompanyRepository

    bypass_code: Optional[str]
    sample_seconds: float
    device_idle_seconds: float = DEVICE_IDLE_SECONDS
    max_devices: int = MAX_DEVICES
    clock: Callable[[], float] = time.monotonic
    # Least recently seen first.
    devices: OrderedDict[str, DeviceSession] = field(default_factory=OrderedDict)
    _last_seen: dict[str, float] = field(default_factory=dict)

    def device(self, device_id: str) -> DeviceSession:
        """Look up a device session, creating (and starting acquisition for) a new one.

        Devices idle for longer than `device_idle_seconds` are torn down first, and
        the least recently seen ones go when the registry exceeds `max_devices`.
        """
        with self.state.lock:
            now = self.clock()
            self.evict_idle(now)
            dev = self.devices.get(device_id)
            if dev is None:
                dev = build_device(self, device_id)
                self.devices[device_id] = dev
            self.devices.move_to_end(device_id)
            self._last_seen[device_id] = now
            while len(self.devices) > self.max_devices:
                oldest = next(iter(self.devices))
                logger.info("device_evicted", device=oldest, reason="capacity")
                self.drop_device(oldest)
            return dev

    def evict_idle(self, now: Optional[float] = None) -> int:
        now = self.clock() if now is None else now
        with self.state.lock:
            stale = [d for d, seen in self._last_seen.items() if now - seen > self.device_idle_seconds]
            for device_id in stale:
                logger.info("device_evicted", device=device_id, reason="idle")
                self.drop_device(device_id)
            return len(stale)

    def drop_device(self, device_id: str) -> None:
        with self.state.lock:
            self._last_seen.pop(device_id, None)
            dev = self.devices.pop(device_id, None)
            if dev is not None:
                dev.teardown()
                logger.info("device_detached", device=device_id)

    def close(self) -> None:
        with self.state.lock:
            for device_id in list(self.devices):
                self.drop_device(device_id)
        self.state.close()


def build_device(container: Container, device_id: str) -> DeviceSession:
    state = container.state
    geolocation = BrowserGeolocation()
    tracker = LocationTracker(geolocation)
    session = SessionStore(container.users_repo)
    presenter = QueuedPresenter()
    evaluator = GeofenceEvaluator(session, tracker, container.companies_repo, policy=container.policy)
    attendance = AttendanceService(
        state,
        session,
        container.companies_repo,
        tracker,
        evaluator,
        presenter,
        container.scheduler,
        sample_seconds=container.sample_seconds,
    )
    auth_service = AuthService(
        state,
        session,
        container.users_repo,
        container.companies_repo,
        tracker,
        evaluator,
        attendance,
        presenter,
        bypass_code=container.bypass_code,
    )
    directory_service = DirectoryService(
        state,
        session,
        container.users_repo,
        container.companies_repo,
        tracker,
        presenter,
    )

    def on_position(position) -> None:
        presenter.refresh()
        auth_service.fix_arrived()
        evaluator.monitor(position)

    def on_geo_error(error: GeolocationError) -> None:
        if error.code == GeoErrorCode.PERMISSION_DENIED:
            presenter.notify("Location access denied. Enable GPS or use a mock location to continue.", "danger")
        presenter.refresh()

    def on_external_replace() -> None:
        presenter.notify("Database updated from another context", "info")
        presenter.refresh()

    tracker.on_position(on_position)
    tracker.on_error(on_geo_error)
    evaluator.on_exit(attendance.handle_geofence_exit)

    dev = DeviceSession(
        device_id=device_id,
        geolocation=geolocation,
        tracker=tracker,
        session=session,
        presenter=presenter,
        evaluator=evaluator,
        attendance=attendance,
        auth_service=auth_service,
        directory_service=directory_service,
    )
    dev._unsubscribers.append(state.on_commit(presenter.refresh))
    dev._unsubscribers.append(state.on_replace(on_external_replace))

    tracker.start()
    logger.info("device_attached", device=device_id)
    return dev


def build_container(
    *,
    data_file: Optional[str] = None,
    store: Optional[KeyValueStore] = None,
    seed_demo_data: bool = False,
    bypass_code: Optional[str] = None,
    radius_m: float = MAX_DISTANCE_METERS,
    exit_buffer_m: float = 0.0,
    sample_seconds: float = HISTORY_SAMPLE_SECONDS,
    device_idle_seconds: float = DEVICE_IDLE_SECONDS,
    max_devices: int = MAX_DEVICES,
    scheduler: Optional[Scheduler] = None,
    device_clock: Optional[Callable[[], float]] = None,
) -> Container:
    if store is None:
        store = JsonFileStore(data_file) if data_file else InMemoryStore()

    state = AppState(store)
    state.load(seed=demo_seed() if seed_demo_data else None)

    return Container(
        state=state,
        store=store,
        scheduler=scheduler or ThreadingScheduler(state.lock),
        policy=GeofencePolicy(radius_m=float(radius_m), exit_buffer_m=float(exit_buffer_m)),
        users_repo=StateUserRepository(state),
        companies_repo=StateCompanyRepository(state),
        bypass_code=bypass_code,
        sample_seconds=float(sample_seconds),
        device_idle_seconds=float(device_idle_seconds),
        max_devices=int(max_devices),
        clock=device_clock or time.monotonic,
    )
