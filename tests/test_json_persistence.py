from __future__ import annotations

import json
from datetime import datetime

import pytest

from rp_chat_log.core.errors import MalformedStateError, PersistenceError
from rp_chat_log.core.types import Room
from rp_chat_log.persistence.json_files import JsonPreferenceStore, JsonUploadLedger


def test_preferences_absent_file_loads_empty(tmp_path):
    store = JsonPreferenceStore(tmp_path / "playerRoomPreferences.json")
    assert store.load() == {}
    assert store.get("p1") is None


def test_preference_set_round_trips_through_fresh_instance(tmp_path):
    path = tmp_path / "playerRoomPreferences.json"
    store = JsonPreferenceStore(path)
    store.set("p1", Room.FANTASY)
    store.set("p2", Room.SPACE)
    store.set("p1", Room.SPACE)

    fresh = JsonPreferenceStore(path)
    assert fresh.load() == {"p1": Room.SPACE, "p2": Room.SPACE}
    rows = json.loads(path.read_text(encoding="utf-8"))
    assert rows == [{"playerId": "p1", "room": "space"}, {"playerId": "p2", "room": "space"}]


def test_preferences_accept_legacy_ordinal_rooms(tmp_path):
    path = tmp_path / "playerRoomPreferences.json"
    path.write_text(json.dumps([{"playerId": "p1", "room": 0}, {"playerId": "p2", "room": 1}]), encoding="utf-8")
    assert JsonPreferenceStore(path).load() == {"p1": Room.FANTASY, "p2": Room.SPACE}


def test_malformed_preferences_fail_load(tmp_path):
    path = tmp_path / "playerRoomPreferences.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(MalformedStateError):
        JsonPreferenceStore(path).load()

    path.write_text(json.dumps([{"playerId": "p1", "room": "moon"}]), encoding="utf-8")
    with pytest.raises(MalformedStateError):
        JsonPreferenceStore(path).load()


def test_preference_write_failure_surfaces_and_keeps_memory(tmp_path):
    path = tmp_path / "playerRoomPreferences.json"
    store = JsonPreferenceStore(path)
    store.load()
    # A directory in the file's place makes the final rename fail.
    path.mkdir()

    with pytest.raises(PersistenceError):
        store.set("p1", Room.FANTASY)
    assert store.get("p1") is None


def test_ledger_absent_file_loads_empty(tmp_path):
    assert JsonUploadLedger(tmp_path / "uploadedLogList.json").load() == []


def test_ledger_never_records_name_twice(tmp_path):
    path = tmp_path / "uploadedLogList.json"
    ledger = JsonUploadLedger(path)
    when = datetime(2026, 3, 14, 10, 0, 0)

    assert ledger.record_upload("SPACE-RPChatLog-2026-03-14_09-26-53.md", when) is True
    assert ledger.record_upload("SPACE-RPChatLog-2026-03-14_09-26-53.md", when) is False

    rows = json.loads(path.read_text(encoding="utf-8"))
    assert rows == [
        {
            "uploaded": True,
            "logName": "SPACE-RPChatLog-2026-03-14_09-26-53.md",
            "uploadTime": "2026-03-14T10:00:00",
        }
    ]


def test_ledger_upgrades_failed_entry_in_place(tmp_path):
    ledger = JsonUploadLedger(tmp_path / "uploadedLogList.json")
    ledger.record_upload("a.md", datetime(2026, 3, 14, 10, 0, 0), uploaded=False)
    assert ledger.record_upload("a.md", datetime(2026, 3, 14, 10, 5, 0), uploaded=False) is False
    assert ledger.record_upload("a.md", datetime(2026, 3, 14, 10, 9, 0)) is True

    entries = JsonUploadLedger(tmp_path / "uploadedLogList.json").load()
    assert len(entries) == 1
    assert entries[0].uploaded is True
    assert entries[0].upload_time == datetime(2026, 3, 14, 10, 9, 0)


def test_not_yet_uploaded_excludes_recorded_names(tmp_path):
    ledger = JsonUploadLedger(tmp_path / "uploadedLogList.json")
    ledger.record_upload("a.md", datetime(2026, 3, 14, 10, 0, 0))
    ledger.record_upload("b.md", datetime(2026, 3, 14, 10, 0, 0), uploaded=False)
    assert ledger.not_yet_uploaded(["a.md", "b.md", "c.md", "c.md"]) == ["c.md"]


def test_ledger_reads_javascript_iso_times(tmp_path):
    path = tmp_path / "uploadedLogList.json"
    path.write_text(
        json.dumps([{"uploaded": True, "logName": "a.md", "uploadTime": "2026-03-14T10:00:00.000Z"}]),
        encoding="utf-8",
    )
    entries = JsonUploadLedger(path).load()
    assert entries[0].log_name == "a.md"
    assert entries[0].upload_time.year == 2026


def test_malformed_ledger_fails_load(tmp_path):
    path = tmp_path / "uploadedLogList.json"
    path.write_text(json.dumps({"logName": "a.md"}), encoding="utf-8")
    with pytest.raises(MalformedStateError):
        JsonUploadLedger(path).load()
