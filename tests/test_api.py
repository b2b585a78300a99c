from __future__ import annotations

import pytest
from conftest import ManualScheduler, north_of

from site_attendance.main import create_app
from site_attendance.storage.memory_store import InMemoryStore
from site_attendance.storage.state import demo_seed

HQ = (31.9686, 99.9018)


@pytest.fixture
def app(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    monkeypatch.delenv("SITE_ATTENDANCE_SETTINGS", raising=False)
    app = create_app({"SEED_DEMO_DATA": True, "VERIFY_BYPASS_CODE": "1234"}, store=InMemoryStore(), scheduler=ManualScheduler())
    yield app
    app.extensions["site_attendance"].close()


@pytest.fixture
def client(app):
    return app.test_client()


def _login_manager(client):
    client.post("/api/location", json={"lat": HQ[0], "lng": HQ[1]})
    res = client.post("/api/auth/login", json={"username": "manager", "company_id": "demo", "passcode": "123"})
    assert res.status_code == 200, res.get_json()
    return res


def test_demo_seed_has_main_hq():
    blob = demo_seed()
    assert blob["companies"]["DEMO"]["sites"][0]["id"] == "site_1"


def test_location_state_tells_browser_how_to_acquire(client):
    res = client.get("/api/location")
    data = res.get_json()

    assert res.status_code == 200
    assert data["requested_options"]["enableHighAccuracy"] is True
    assert data["position"] is None


def test_location_error_demotes_acquisition(client):
    res = client.post("/api/location", json={"error": {"code": 3}})
    data = res.get_json()

    assert data["mode"] == "low"
    assert data["requested_options"]["timeout"] == 60000


def test_bad_coordinates_are_rejected(client):
    res = client.post("/api/location", json={"lat": "north", "lng": 1})
    assert res.status_code == 400
    assert res.get_json()["success"] is False


def test_manager_login_and_dashboard(client):
    res = _login_manager(client)
    assert res.get_json()["role"] == "manager"

    dash = client.get("/api/dashboard").get_json()

    assert dash["user"]["company_id"] == "DEMO"
    assert [s["id"] for s in dash["sites"]] == ["site_1"]
    assert dash["logs"] == []


def test_dashboard_requires_login(client):
    res = client.get("/api/dashboard")
    assert res.status_code == 401


def test_wrong_passcode_is_401(client):
    res = client.post("/api/auth/login", json={"username": "manager", "passcode": "999"})
    assert res.status_code == 401
    assert res.get_json()["message"] == "Invalid passcode"


def test_employee_flow_over_http(app, client):
    _login_manager(client)
    res = client.post("/api/employees", json={"username": "Bob", "contact": "555-1234", "site_id": "site_1"})
    assert res.status_code == 200
    assert any("linked" in t["message"] for t in res.get_json()["toasts"])
    client.post("/api/auth/logout")

    phone = app.test_client()
    res = phone.post("/api/auth/login", json={"username": "bob", "company_id": "DEMO"})
    assert res.status_code == 202
    assert res.get_json()["outcome"] == "awaiting_location"

    near = north_of(HQ[0], HQ[1], 30)
    phone.post("/api/location", json={"lat": near.lat, "lng": near.lng})
    assert phone.post("/api/auth/login", json={"username": "bob", "company_id": "DEMO"}).status_code == 200

    res = phone.post("/api/attendance/check-in")
    assert res.status_code == 200
    assert res.get_json()["site_name"] == "Main HQ"

    dash = phone.get("/api/dashboard").get_json()
    assert dash["attendance"]["checked_in"] is True
    assert dash["attendance"]["clock"] is not None
    assert dash["site"]["name"] == "Main HQ"
    assert dash["site"]["within_fence"] is True

    far = north_of(HQ[0], HQ[1], 400)
    res = phone.post("/api/location", json={"lat": far.lat, "lng": far.lng})
    assert any(t["level"] == "warning" for t in res.get_json()["toasts"])
    assert phone.get("/api/dashboard").get_json()["attendance"]["status"] == "checked-out"


def test_check_in_out_of_range_is_403(app, client):
    _login_manager(client)
    client.post("/api/employees", json={"username": "bob", "contact": "b@x.io", "site_id": "site_1"})

    phone = app.test_client()
    near = north_of(HQ[0], HQ[1], 10)
    phone.post("/api/location", json={"lat": near.lat, "lng": near.lng})
    phone.post("/api/auth/login", json={"username": "bob"})
    far = north_of(HQ[0], HQ[1], 150)
    # Move out without being checked in: no exit, but the gate now refuses.
    phone.post("/api/location", json={"lat": far.lat, "lng": far.lng})

    res = phone.post("/api/attendance/check-in")

    assert res.status_code == 403
    assert res.get_json()["site_name"] == "Main HQ"


def test_session_survives_between_requests(client):
    _login_manager(client)
    data = client.get("/api/session").get_json()
    assert data["user"]["username"] == "manager"

    client.post("/api/auth/logout")
    assert client.get("/api/session").get_json()["user"] is None


def test_self_registration_and_verification_over_http(client):
    res = client.post("/api/auth/register-employee", json={"username": "newbie", "email": "n@x.io"})
    assert res.status_code == 201

    res = client.post("/api/auth/verify", json={"code": "1234"})
    assert res.status_code == 400

    res = client.post("/api/auth/register-company", json={"company_name": "Umbrella", "username": "wesker"})
    company_id = res.get_json()["company_id"]
    res = client.post("/api/auth/login", json={"username": "wesker", "company_id": company_id})
    assert res.get_json()["outcome"] == "verification_required"

    res = client.post("/api/auth/verify", json={"code": "1234"})
    assert res.status_code == 200
    assert res.get_json()["outcome"] == "success"


def test_logout_releases_the_device(app, client):
    _login_manager(client)
    container = app.extensions["site_attendance"]
    assert len(container.devices) == 1

    client.post("/api/auth/logout")

    assert container.devices == {}


def test_cookieless_requests_do_not_accumulate_devices(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    monkeypatch.delenv("SITE_ATTENDANCE_SETTINGS", raising=False)
    app = create_app({"MAX_DEVICES": 5}, store=InMemoryStore(), scheduler=ManualScheduler())
    container = app.extensions["site_attendance"]
    try:
        for _ in range(50):
            assert app.test_client().get("/api/location").status_code == 200

        assert len(container.devices) == 5
    finally:
        container.close()


def test_request_id_is_echoed(client):
    res = client.get("/api/session", headers={"X-Request-ID": "abc"})
    assert res.headers["X-Request-ID"] == "abc"


def test_settings_module_follows_app_env(monkeypatch):
    from site_attendance.config import get_settings_module

    monkeypatch.delenv("SITE_ATTENDANCE_SETTINGS", raising=False)
    monkeypatch.setenv("APP_ENV", "prod")
    assert get_settings_module() == "site_attendance.config.production"
    monkeypatch.setenv("APP_ENV", "anything-else")
    assert get_settings_module() == "site_attendance.config.development"
    monkeypatch.setenv("SITE_ATTENDANCE_SETTINGS", "mysite.settings")
    assert get_settings_module() == "mysite.settings"
