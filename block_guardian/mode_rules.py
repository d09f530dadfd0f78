"""
Time and session driven rule sources: focus mode, bedtime and schedules.

Each source owns one reason string. ``sync`` works out which apps each source
wants in the box right now and adds or strips that reason through the
blocklist editor, so the cache, the disk and listeners stay in step with
every other blocklist change. Nothing here runs on a timer; the host calls
``sync`` (``GuardianApp.refresh_rules``) periodically, and focus session
transitions trigger it through the change signal.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from .blocklist import BlocklistEditor
from .config import BEDTIME_REASON, FOCUS_REASON, SCHEDULE_REASON
from .config_store import ConfigStore
from .logging_setup import get_logger
from .models import BedtimeState, MutationOutcome, ScheduleItem, SessionPhase
from .signals import ChangeSignal
from .strict_mode import StrictModeGuard
from .utils import local_time

MODE_REASONS = (FOCUS_REASON, BEDTIME_REASON, SCHEDULE_REASON)


def in_window(current_mins: int, start_mins: int, end_mins: int) -> bool:
    """Half-open ``[start, end)`` minute-of-day window, wrapping past midnight."""
    if start_mins == end_mins:
        return False
    if start_mins < end_mins:
        return start_mins <= current_mins < end_mins
    return current_mins >= start_mins or current_mins < end_mins


def schedule_active(item: ScheduleItem, current_mins: int, weekday: int) -> bool:
    if item.repeat_days and weekday not in item.repeat_days:
        return False
    return in_window(current_mins, item.start_mins, item.end_mins)


def _bedtime_loosened(old: BedtimeState, new: BedtimeState) -> bool:
    if not old.is_enabled:
        return False
    if not new.is_enabled or not old.apps <= new.apps:
        return True
    return (old.start_mins, old.end_mins) != (new.start_mins, new.end_mins)


class ModeRules:
    def __init__(
        self,
        store: ConfigStore,
        editor: BlocklistEditor,
        guard: StrictModeGuard,
        signal: ChangeSignal,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ):
        self._store = store
        self._editor = editor
        self._guard = guard
        self._signal = signal
        self._clock = clock
        self._logger = get_logger(logger)
        self._lock = threading.Lock()
        self._signal.connect(self._on_state_changed)

    def close(self) -> None:
        self._signal.disconnect(self._on_state_changed)

    def is_bedtime_now(self, now: float | None = None) -> bool:
        if now is None:
            now = self._clock()
        bedtime = self._store.get_bedtime()
        t = local_time(now)
        return bedtime.is_enabled and in_window(t.hour * 60 + t.minute, bedtime.start_mins, bedtime.end_mins)

    def active_reasons(self, now: float | None = None) -> dict[str, set[str]]:
        """Apps each active source wants blocked, keyed by its reason."""
        if now is None:
            now = self._clock()
        t = local_time(now)
        mins = t.hour * 60 + t.minute
        wanted: dict[str, set[str]] = {}

        if self._store.get_focus_session().state is not SessionPhase.READY:
            wanted[FOCUS_REASON] = self._store.get_focus_apps()

        bedtime = self._store.get_bedtime()
        if bedtime.is_enabled and in_window(mins, bedtime.start_mins, bedtime.end_mins):
            wanted[BEDTIME_REASON] = set(bedtime.apps)

        scheduled: set[str] = set()
        for item in self._store.get_schedules():
            if schedule_active(item, mins, t.isoweekday()):
                scheduled |= item.apps
        if scheduled:
            wanted[SCHEDULE_REASON] = scheduled
        return wanted

    def sync(self, now: float | None = None) -> bool:
        """Bring the mode reasons in the blocklist in line with ``active_reasons``.

        Dropping a reason whose source has ended is housekeeping and is not
        gated by strict mode.
        """
        with self._lock:
            wanted = self.active_reasons(now)
            entries = self._editor.entries()
            changed = False
            for reason in MODE_REASONS:
                apps = wanted.get(reason, set())
                have = {app_id for app_id, entry in entries.items() if reason in entry.reasons}
                for app_id in sorted(apps - have):
                    if self._editor.add_app(app_id, reason) is MutationOutcome.APPLIED:
                        changed = True
                for app_id in sorted(have - apps):
                    if self._editor.strip_reasons(lambda r, reason=reason: r == reason, app_id=app_id):
                        changed = True
        if changed:
            self._logger.info(f"MODES synced, active={sorted(wanted)}")
        return changed

    # Rule editing. Adding apps or enabling a source is always allowed;
    # anything that can let an app out needs the strict mode guard.
    def set_focus_apps(self, apps) -> MutationOutcome:
        new = {a for a in apps if a}
        old = self._store.get_focus_apps()
        if new == old:
            return MutationOutcome.UNCHANGED
        if not old <= new and not self._guard.is_modification_allowed():
            self._logger.info("MODES focus app removal denied by strict mode")
            return MutationOutcome.MODIFICATION_DENIED
        self._store.set_focus_apps(new)
        self._logger.info(f"MODES focus apps={sorted(new)}")
        self.sync()
        return MutationOutcome.APPLIED

    def set_bedtime(self, bedtime: BedtimeState) -> MutationOutcome:
        old = self._store.get_bedtime()
        if bedtime == old:
            return MutationOutcome.UNCHANGED
        if _bedtime_loosened(old, bedtime) and not self._guard.is_modification_allowed():
            self._logger.info("MODES bedtime change denied by strict mode")
            return MutationOutcome.MODIFICATION_DENIED
        self._store.set_bedtime(bedtime)
        self._logger.info(
            f"MODES bedtime enabled={bedtime.is_enabled} {bedtime.start_mins}-{bedtime.end_mins} "
            f"apps={len(bedtime.apps)}"
        )
        self.sync()
        return MutationOutcome.APPLIED

    def set_schedules(self, items: list[ScheduleItem]) -> MutationOutcome:
        old = self._store.get_schedules()
        if items == old:
            return MutationOutcome.UNCHANGED
        dropped = [item for item in old if item not in items]
        if dropped and not self._guard.is_modification_allowed():
            self._logger.info(f"MODES dropping {len(dropped)} schedules denied by strict mode")
            return MutationOutcome.MODIFICATION_DENIED
        self._store.set_schedules(list(items))
        self._logger.info(f"MODES {len(items)} schedules")
        self.sync()
        return MutationOutcome.APPLIED

    def _on_state_changed(self, reason: str) -> None:
        if reason.startswith("focus_"):
            self.sync()
