from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

import pytest

from site_attendance.companies.model import Company, Site
from site_attendance.container import build_container
from site_attendance.core.constants import EARTH_RADIUS_KM
from site_attendance.geo.model import Position
from site_attendance.storage.memory_store import InMemoryStore
from site_attendance.users.model import EmployeeRecord, ManagerRecord

METERS_PER_DEGREE_LAT = EARTH_RADIUS_KM * 1000 * 3.141592653589793 / 180

SITE_LAT = 47.6062
SITE_LNG = -122.3321


def north_of(lat: float, lng: float, meters: float) -> Position:
    """A point `meters` due north; along a meridian the haversine distance is exact."""
    return Position(lat + meters / METERS_PER_DEGREE_LAT, lng)


class _ManualTimer:
    def __init__(self, interval: float, callback: Callable[[], None]):
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Timers that only fire when the test says so."""

    def __init__(self):
        self.timers: list[_ManualTimer] = []

    def every(self, interval_seconds: float, callback):
        timer = _ManualTimer(interval_seconds, callback)
        self.timers.append(timer)
        return timer

    def active(self, interval: Optional[float] = None) -> list[_ManualTimer]:
        return [t for t in self.timers if not t.cancelled and (interval is None or t.interval == interval)]

    def fire(self, interval: float) -> int:
        fired = 0
        for timer in self.active(interval):
            if not timer.cancelled:
                timer.callback()
                fired += 1
        return fired


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def container(store, scheduler):
    c = build_container(store=store, scheduler=scheduler, bypass_code="1234")
    yield c
    c.close()


@pytest.fixture
def seeded(container):
    """Company ACME with one site, manager "boss" and employee "bob" assigned to it."""
    state = container.state
    site = Site(site_id="site_1", name="Warehouse", lat=SITE_LAT, lng=SITE_LNG)
    state.companies["ACME"] = Company(company_id="ACME", name="Acme", sites=[site])
    state.users["boss"] = ManagerRecord(username="boss", company_id="ACME")
    state.users["bob"] = EmployeeRecord(username="bob", company_id="ACME", assigned_site_id="site_1", phone="555")
    state.commit()
    return container


@pytest.fixture
def device(seeded):
    return seeded.device("device-1")


def at_site(meters: float = 0.0) -> Position:
    return north_of(SITE_LAT, SITE_LNG, meters)


def sign_in(dev, username: str, *, meters: float = 0.0) -> None:
    """Deliver a fix `meters` from the site, then log in."""
    dev.geolocation.deliver_position(at_site(meters))
    result = dev.auth_service.login(username=username, company_id="ACME")
    assert result.outcome.value == "success"
