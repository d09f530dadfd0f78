"""
Tests for durable configuration storage.

Tests cover:
- Defaults when nothing has been written
- Persistence across store instances
- Per-record fallback on malformed data
- Whole-file fallback on invalid JSON
- Memory left untouched when a write fails
"""

import json

import pytest

from block_guardian.config_store import ConfigStore, default_messages
from block_guardian.models import (
    BedtimeState,
    BlockEntry,
    BlockMessage,
    EmergencyState,
    FocusSessionState,
    MessageTag,
    ScheduleItem,
    SessionPhase,
    StrictModeState,
    StrictModeType,
)


def reopen(store):
    other = ConfigStore(str(store.path))
    other.load()
    return other


class TestDefaults:
    """Values returned by an empty store."""

    def test_empty_records(self, store):
        assert store.get_blocklist() == {}
        assert store.get_strict_mode() == StrictModeState()
        assert store.get_emergency() == EmergencyState()
        assert store.get_focus_session().state is SessionPhase.READY
        assert store.get_app_limits() == {}

    def test_default_message_pool(self, store):
        messages = store.get_block_messages()
        assert messages == default_messages()
        assert len(messages) == 4
        assert {m.text for m in messages if MessageTag.BEDTIME in m.tags} == {
            "Go to sleep, tomorrow is a new day."
        }


class TestPersistence:
    """Writes survive a new store instance."""

    def test_blocklist_round_trip(self, store):
        store.set_blocklist({"a": BlockEntry("a", {"Focus Session", "Bedtime Mode"})})
        assert reopen(store).get_blocklist() == {"a": BlockEntry("a", {"Focus Session", "Bedtime Mode"})}

    def test_empty_entries_are_not_written(self, store):
        store.set_blocklist({"a": BlockEntry("a", set())})
        assert json.loads(store.path.read_text())["blocklist_v2"] == []

    def test_strict_mode_round_trip(self, store):
        state = StrictModeState(is_enabled=True, mode_type=StrictModeType.LOCK,
                                timer_end_time=123.0, anti_uninstall_enabled=True)
        store.set_strict_mode(state)
        assert reopen(store).get_strict_mode() == state

    def test_messages_round_trip(self, store):
        messages = [BlockMessage("x", {MessageTag.FOCUS, MessageTag.LIMIT})]
        store.set_block_messages(messages)
        assert reopen(store).get_block_messages() == messages

    def test_empty_message_list_is_kept(self, store):
        store.set_block_messages([])
        assert reopen(store).get_block_messages() == []

    def test_focus_session_round_trip(self, store):
        state = FocusSessionState(state=SessionPhase.PAUSED, start_time=10.0, pause_start=20.0,
                                  planned_duration=1500.0)
        store.set_focus_session(state)
        assert reopen(store).get_focus_session() == state

    def test_write_is_atomic_file_replace(self, store):
        store.set_app_limits({"a": 30})
        assert not store.path.with_suffix(".tmp").exists()
        assert json.loads(store.path.read_text())["app_limits"] == {"a": 30}

    def test_rule_source_round_trip(self, store):
        store.set_focus_apps(["b", "a", ""])
        store.set_bedtime(BedtimeState(is_enabled=True, start_mins=1380, end_mins=360, apps={"game"}))
        store.set_schedules([ScheduleItem("work", 540, 1020, {"chat"}, {1, 2, 3, 4, 5})])
        other = reopen(store)
        assert other.get_focus_apps() == {"a", "b"}
        assert other.get_bedtime() == BedtimeState(True, 1380, 360, {"game"})
        assert other.get_schedules() == [ScheduleItem("work", 540, 1020, {"chat"}, {1, 2, 3, 4, 5})]


class TestFailedWrites:
    """A write that cannot reach disk leaves the in-memory records alone."""

    def test_failed_write_keeps_previous_value(self, store):
        store.set_blocklist({"a": BlockEntry("a", {"r"})})
        store.path.with_suffix(".tmp").mkdir()
        with pytest.raises(OSError):
            store.set_blocklist({})
        assert store.get_blocklist() == {"a": BlockEntry("a", {"r"})}
        assert reopen(store).get_blocklist() == {"a": BlockEntry("a", {"r"})}

    def test_failed_first_write_leaves_defaults(self, store):
        store.path.with_suffix(".tmp").mkdir()
        with pytest.raises(OSError):
            store.set_emergency(EmergencyState(uses_remaining=1, last_reset_date=5.0))
        assert store.get_emergency() == EmergencyState()
        assert not store.path.exists()


class TestMalformedData:
    """Bad data falls back to defaults without crashing."""

    def write(self, store, payload):
        store.path.write_text(json.dumps(payload), encoding="utf-8")
        store.load()

    def test_invalid_json_resets_everything(self, store):
        store.set_blocklist({"a": BlockEntry("a", {"r"})})
        store.path.write_text("]]garbage", encoding="utf-8")
        store.load()
        assert store.get_blocklist() == {}
        assert store.get_block_messages() == default_messages()

    def test_non_object_root(self, store):
        self.write(store, ["not", "an", "object"])
        assert store.get_strict_mode() == StrictModeState()

    def test_bad_record_does_not_spoil_others(self, store):
        self.write(store, {
            "blocklist_v2": "oops",
            "strict_mode": {"is_enabled": True, "mode_type": "LOCK"},
        })
        assert store.get_blocklist() == {}
        assert store.get_strict_mode().mode_type is StrictModeType.LOCK

    def test_unknown_strict_mode_type(self, store):
        self.write(store, {"strict_mode": {"is_enabled": True, "mode_type": "BOGUS"}})
        assert store.get_strict_mode() == StrictModeState()

    def test_bad_emergency_numbers(self, store):
        self.write(store, {"emergency_access": {"uses_remaining": "three"}})
        assert store.get_emergency() == EmergencyState()

    def test_emergency_uses_never_negative(self, store):
        self.write(store, {"emergency_access": {"uses_remaining": -4}})
        assert store.get_emergency().uses_remaining == 0

    def test_bad_message_tag(self, store):
        self.write(store, {"block_messages": [{"text": "x", "tags": ["NOPE"]}]})
        assert store.get_block_messages() == default_messages()

    def test_message_tags_are_case_insensitive(self, store):
        self.write(store, {"block_messages": [{"text": "x", "tags": ["focus"]}]})
        assert store.get_block_messages() == [BlockMessage("x", {MessageTag.FOCUS})]

    def test_bad_limit_values_skipped(self, store):
        self.write(store, {"app_limits": {"a": "ten", "b": 15, "c": 0}})
        assert store.get_app_limits() == {"b": 15}

    def test_duplicate_entries_merge(self, store):
        self.write(store, {"blocklist_v2": [
            {"app_id": "a", "reasons": ["r1"]},
            {"app_id": "a", "reasons": ["r2"]},
        ]})
        assert store.get_blocklist() == {"a": BlockEntry("a", {"r1", "r2"})}

    def test_bad_bedtime_minutes(self, store):
        self.write(store, {"bedtime": {"is_enabled": True, "start_mins": 5000}})
        assert store.get_bedtime() == BedtimeState()

    def test_bad_schedule_days(self, store):
        self.write(store, {"schedules": [{"title": "x", "start_mins": 0, "end_mins": 60, "repeat_days": [0]}]})
        assert store.get_schedules() == []
