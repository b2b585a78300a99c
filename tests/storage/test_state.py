from __future__ import annotations

import json
import os

from conftest import sign_in
from werkzeug.security import check_password_hash

from site_attendance.core.enums import AttendanceStatus
from site_attendance.storage.json_store import JsonFileStore
from site_attendance.storage.memory_store import InMemoryStore
from site_attendance.storage.migrations import migrate
from site_attendance.storage.state import AppState, demo_seed


LEGACY = {
    "companies": {"ACME": {"sites": [{"id": "s1", "name": "Yard", "lat": 1.0, "lng": 2.0}]}},
    "users": {
        "Bob": {"role": "employee", "companyId": "ACME", "assignedSiteId": "s1", "passcode": "9999"},
    },
}


def test_migration_lowercases_backfills_and_hashes():
    blob, changed = migrate(LEGACY)

    assert changed
    bob = blob["users"]["bob"]
    assert bob["verified"] is True
    assert "passcode" not in bob
    assert check_password_hash(bob["passcodeHash"], "9999")
    acme = blob["companies"]["ACME"]
    assert acme["name"] == "ACME"
    assert acme["employees"] == [] and acme["logs"] == []


def test_migration_of_current_layout_is_a_no_op():
    blob, _ = migrate(LEGACY)
    again, changed = migrate(blob)
    assert not changed
    assert again == blob


def test_migration_converts_legacy_log_times():
    blob = {"companies": {"A": {"name": "A", "sites": [], "employees": [], "logs": [
        {"username": "x", "action": "Check-Out", "time": 1700000000000},
    ]}}, "users": {}}

    migrated, changed = migrate(blob)

    assert changed
    assert migrated["companies"]["A"]["logs"][0]["time"].startswith("2023-11-14T")


def test_fresh_store_is_seeded_and_saved():
    store = InMemoryStore()
    state = AppState(store)

    state.load(seed=demo_seed())

    assert state.companies["DEMO"].sites[0].name == "Main HQ"
    assert state.users["manager"].verified
    assert store.load() is not None


def test_load_persists_only_when_migration_changed_something():
    blob, _ = migrate(LEGACY)
    store = InMemoryStore(blob)

    AppState(store).load()

    assert store.save_count == 0


def test_round_trip_is_behaviourally_identical(device, seeded, store):
    sign_in(device, "bob")
    device.attendance.check_in()

    reloaded = AppState(InMemoryStore(store.load()))
    reloaded.load()

    assert reloaded.to_dict() == seeded.state.to_dict()
    bob = reloaded.users["bob"]
    assert bob.status == AttendanceStatus.CHECKED_IN
    assert bob.check_in_time is not None
    assert len(bob.history) == 1


def test_external_change_replaces_state_and_notifies_devices(device, seeded, store):
    blob = store.load()
    blob["users"]["bob"]["assignedSiteId"] = "elsewhere"
    del blob["users"]["boss"]
    device.presenter.drain()

    store.write_external(blob)

    assert "boss" not in seeded.state.users
    assert seeded.state.users["bob"].assigned_site_id == "elsewhere"
    toasts = device.presenter.drain()
    assert toasts == [{"message": "Database updated from another context", "level": "info"}]


def test_json_store_writes_atomically_and_polls_external_writes(tmp_path):
    path = tmp_path / "db.json"
    store = JsonFileStore(path)
    assert store.path == path
    assert store.load() is None

    store.save({"companies": {}, "users": {}})
    assert json.loads(path.read_text()) == {"companies": {}, "users": {}}
    assert store.poll() is False

    received = []
    store.subscribe(received.append)
    path.write_text(json.dumps({"companies": {"X": {}}, "users": {}}))
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000))

    assert store.poll() is True
    assert received == [{"companies": {"X": {}}, "users": {}}]
    assert store.poll() is False


def test_poll_keeps_state_when_the_file_is_not_json(tmp_path):
    path = tmp_path / "db.json"
    store = JsonFileStore(path)
    store.save({"companies": {}, "users": {}})
    received = []
    store.subscribe(received.append)

    path.write_text('{"companies": {')
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + 1_000_000))

    assert store.poll() is False
    assert store.poll() is False
    assert received == []


def test_checked_in_record_without_check_in_time_uses_last_ping():
    blob, _ = migrate(LEGACY)
    blob["users"]["bob"].update({"status": "checked-in", "lastPing": 1700000000000})
    store = InMemoryStore(blob)

    state = AppState(store)
    state.load()

    bob = state.users["bob"]
    assert bob.status == AttendanceStatus.CHECKED_IN
    assert bob.check_in_time == bob.last_ping
    assert store.load()["users"]["bob"]["checkInTime"] == 1700000000000


def test_checked_in_record_without_any_time_is_checked_out():
    blob, _ = migrate(LEGACY)
    blob["users"]["bob"]["status"] = "checked-in"
    store = InMemoryStore(blob)

    state = AppState(store)
    state.load()

    bob = state.users["bob"]
    assert bob.status == AttendanceStatus.CHECKED_OUT
    assert bob.check_in_time is None
    assert store.save_count == 1


def test_migration_parses_locale_times_and_keeps_the_original_text():
    blob = {"companies": {"A": {"name": "A", "sites": [], "employees": [], "logs": [
        {"username": "x", "action": "Check-In", "time": "11/14/2023, 9:13:20 AM"},
        {"username": "x", "action": "Check-Out", "time": "5:30:00 PM"},
        {"username": "x", "action": "Check-Out", "time": "14. 11. 2023 9:13"},
    ]}}, "users": {}}

    migrated, changed = migrate(blob)

    assert changed
    first, second, third = migrated["companies"]["A"]["logs"]
    assert first["time"] == "2023-11-14T09:13:20+00:00"
    assert first["legacyTime"] == "11/14/2023, 9:13:20 AM"
    assert "T17:30:00" in second["time"]
    assert second["legacyTime"] == "5:30:00 PM"
    assert third["legacyTime"] == "14. 11. 2023 9:13"

    state = AppState(InMemoryStore(migrated))
    state.load()
    entry = state.companies["A"].logs[0]
    assert entry.time.hour == 9
    assert entry.legacy_time == "11/14/2023, 9:13:20 AM"
    assert state.to_dict()["companies"]["A"]["logs"][0]["legacyTime"] == "11/14/2023, 9:13:20 AM"
