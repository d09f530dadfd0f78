"""
Tests for blocklist mutations.

Tests cover:
- Additions always allowed, even under strict mode
- Removals gated by the strict mode guard
- Propagation to the cache before returning
- Change signal emission
- Listing with unresolvable apps skipped
"""

import pytest

from block_guardian.blocklist import BlocklistEditor
from block_guardian.errors import EntryNotFound
from block_guardian.models import MutationOutcome, StrictModeType

from conftest import local_ts


@pytest.fixture
def editor(store, cache, guard, signal):
    return BlocklistEditor(store, cache, guard, signal)


@pytest.fixture
def events(signal):
    seen = []
    signal.connect(seen.append)
    return seen


class TestAdd:
    """Adding apps and reasons."""

    def test_add_is_visible_immediately(self, editor, cache):
        assert editor.add_app("x", "Focus Session") is MutationOutcome.APPLIED
        assert cache.should_block("x") == (True, ["Focus Session"])

    def test_add_persists(self, editor, store):
        editor.add_app("x", "Focus Session")
        assert store.get_blocklist()["x"].reasons == {"Focus Session"}

    def test_duplicate_reason_unchanged(self, editor, events):
        editor.add_app("x", "Focus Session")
        assert editor.add_app("x", "Focus Session") is MutationOutcome.UNCHANGED
        assert events == ["blocklist"]

    def test_second_reason_accumulates(self, editor, cache):
        editor.add_app("x", "Focus Session")
        editor.add_app("x", "Bedtime Mode")
        assert sorted(cache.should_block("x")[1]) == ["Bedtime Mode", "Focus Session"]

    def test_add_allowed_under_strict_mode(self, editor, guard, cache):
        guard.enable(StrictModeType.LOCK)
        assert editor.add_app("x", "Focus Session") is MutationOutcome.APPLIED
        assert cache.should_block("x")[0] is True

    def test_add_apps(self, editor, cache):
        assert editor.add_apps(["a", "b"], "Focus Session") is MutationOutcome.APPLIED
        assert set(cache.get_all_blocked_apps()) == {"a", "b"}

    def test_blank_input_ignored(self, editor):
        assert editor.add_app("", "r") is MutationOutcome.UNCHANGED
        assert editor.add_app("x", "") is MutationOutcome.UNCHANGED


class TestRemove:
    """Removals and the strict mode gate."""

    def test_remove_when_not_strict(self, editor, cache, store):
        editor.add_app("x", "Focus Session")
        assert editor.remove_app("x") is MutationOutcome.APPLIED
        assert cache.should_block("x") == (False, [])
        assert "x" not in store.get_blocklist()

    def test_remove_denied_under_strict_mode(self, editor, guard, cache, events):
        editor.add_app("x", "Focus Session")
        guard.enable(StrictModeType.LOCK)
        assert editor.remove_app("x") is MutationOutcome.MODIFICATION_DENIED
        assert editor.remove_app("x").denied
        assert cache.should_block("x")[0] is True
        assert events == ["blocklist"]

    def test_remove_inside_unlock_window(self, editor, guard, cache, clock):
        editor.add_app("x", "Focus Session")
        guard.enable(StrictModeType.LOCK)
        clock.set(local_ts(day=11, hour=0, minute=3))
        assert editor.remove_app("x") is MutationOutcome.APPLIED
        assert cache.should_block("x") == (False, [])

    def test_remove_missing_is_unchanged(self, editor):
        assert editor.remove_app("ghost") is MutationOutcome.UNCHANGED

    def test_remove_reason_keeps_other_reasons(self, editor, cache):
        editor.add_app("x", "Focus Session")
        editor.add_app("x", "Bedtime Mode")
        assert editor.remove_reason("x", "Bedtime Mode") is MutationOutcome.APPLIED
        assert cache.should_block("x") == (True, ["Focus Session"])

    def test_removing_last_reason_drops_entry(self, editor, cache):
        editor.add_app("x", "Focus Session")
        editor.remove_reason("x", "Focus Session")
        assert cache.get_all_blocked_apps() == {}

    def test_clear_denied_under_strict_mode(self, editor, guard, cache):
        editor.add_apps(["a", "b"], "Focus Session")
        guard.enable(StrictModeType.PASSWORD)
        assert editor.clear() is MutationOutcome.MODIFICATION_DENIED
        assert len(cache.get_all_blocked_apps()) == 2

    def test_clear(self, editor, cache):
        editor.add_apps(["a", "b"], "Focus Session")
        assert editor.clear() is MutationOutcome.APPLIED
        assert cache.get_all_blocked_apps() == {}

    def test_strip_reasons_ignores_strict_mode(self, editor, guard, cache):
        editor.add_app("a", "Daily Limit Reached (5m)")
        editor.add_app("b", "Daily Limit Reached (5m)")
        editor.add_app("b", "Focus Session")
        guard.enable(StrictModeType.LOCK)
        assert editor.strip_reasons(lambda r: r.startswith("Daily Limit")) == 2
        assert cache.get_all_blocked_apps() == {"b": ["Focus Session"]}

    def test_strip_reasons_for_one_app(self, editor, cache):
        editor.add_app("a", "Daily Limit Reached (5m)")
        editor.add_app("b", "Daily Limit Reached (5m)")
        assert editor.strip_reasons(lambda r: True, app_id="a") == 1
        assert set(cache.get_all_blocked_apps()) == {"b"}


class TestListEntries:
    """Listing entries against an app directory."""

    def test_unknown_apps_are_skipped_not_pruned(self, editor, store):
        editor.add_app("installed", "Focus Session")
        editor.add_app("uninstalled", "Focus Session")
        directory = {"installed": "Installed App"}

        def lookup(app_id):
            if app_id not in directory:
                raise EntryNotFound(app_id)
            return directory[app_id]

        rows = editor.list_entries(lookup)
        assert [(info, entry.app_id) for info, entry in rows] == [("Installed App", "installed")]
        assert "uninstalled" in store.get_blocklist()
