"""
The only sanctioned way to change the blocklist.

Each applied change goes store -> cache -> signal before the call returns,
so the next ``should_block`` from any thread already sees it. Additions are
always allowed; anything that takes an app out of the box asks the strict
mode guard first.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, TypeVar

from .block_cache import BlockCache
from .config_store import ConfigStore
from .errors import EntryNotFound
from .logging_setup import get_logger
from .models import BlockEntry, MutationOutcome
from .signals import ChangeSignal
from .strict_mode import StrictModeGuard

AppInfo = TypeVar("AppInfo")


class BlocklistEditor:
    def __init__(
        self,
        store: ConfigStore,
        cache: BlockCache,
        guard: StrictModeGuard,
        signal: ChangeSignal,
        logger: logging.Logger | None = None,
    ):
        self._store = store
        self._cache = cache
        self._guard = guard
        self._signal = signal
        self._logger = get_logger(logger)
        self._lock = threading.Lock()

    def entries(self) -> dict[str, BlockEntry]:
        return self._store.get_blocklist()

    def add_app(self, app_id: str, reason: str) -> MutationOutcome:
        if not app_id or not reason:
            return MutationOutcome.UNCHANGED
        with self._lock:
            entries = self._store.get_blocklist()
            entry = entries.setdefault(app_id, BlockEntry(app_id))
            if reason in entry.reasons:
                return MutationOutcome.UNCHANGED
            entry.reasons.add(reason)
            self._commit(entries)
        self._logger.info(f"BLOCKLIST add {app_id} reason={reason}")
        self._signal.emit("blocklist")
        return MutationOutcome.APPLIED

    def add_apps(self, app_ids: Iterable[str], reason: str) -> MutationOutcome:
        outcome = MutationOutcome.UNCHANGED
        for app_id in app_ids:
            if self.add_app(app_id, reason) is MutationOutcome.APPLIED:
                outcome = MutationOutcome.APPLIED
        return outcome

    def remove_app(self, app_id: str) -> MutationOutcome:
        return self._remove(lambda entries: entries.pop(app_id, None) is not None, f"remove {app_id}")

    def remove_reason(self, app_id: str, reason: str) -> MutationOutcome:
        def drop(entries: dict[str, BlockEntry]) -> bool:
            entry = entries.get(app_id)
            if entry is None or reason not in entry.reasons:
                return False
            entry.reasons.discard(reason)
            if not entry.reasons:
                del entries[app_id]
            return True

        return self._remove(drop, f"remove {app_id} reason={reason}")

    def clear(self) -> MutationOutcome:
        def drop_all(entries: dict[str, BlockEntry]) -> bool:
            changed = bool(entries)
            entries.clear()
            return changed

        return self._remove(drop_all, "clear")

    def strip_reasons(self, predicate: Callable[[str], bool], app_id: str | None = None) -> int:
        """Drop every reason matching ``predicate``; not gated by strict mode.

        Reserved for system housekeeping such as the daily usage reset, never
        for user-initiated changes.
        """
        with self._lock:
            entries = self._store.get_blocklist()
            removed = 0
            targets = [app_id] if app_id is not None else list(entries)
            for target in targets:
                entry = entries.get(target)
                if entry is None:
                    continue
                stale = {r for r in entry.reasons if predicate(r)}
                if not stale:
                    continue
                removed += len(stale)
                entry.reasons -= stale
                if not entry.reasons:
                    del entries[target]
            if removed:
                self._commit(entries)
        if removed:
            self._logger.info(f"BLOCKLIST housekeeping removed {removed} reasons")
            self._signal.emit("blocklist")
        return removed

    def list_entries(self, lookup: Callable[[str], AppInfo]) -> list[tuple[AppInfo, BlockEntry]]:
        rows: list[tuple[AppInfo, BlockEntry]] = []
        for app_id, entry in sorted(self._store.get_blocklist().items()):
            try:
                rows.append((lookup(app_id), entry))
            except EntryNotFound:
                self._logger.info(f"BLOCKLIST skipping unknown app {app_id}")
        return rows

    def _remove(self, mutate: Callable[[dict[str, BlockEntry]], bool], what: str) -> MutationOutcome:
        if not self._guard.is_modification_allowed():
            self._logger.info(f"BLOCKLIST {what} denied by strict mode")
            return MutationOutcome.MODIFICATION_DENIED
        with self._lock:
            entries = self._store.get_blocklist()
            if not mutate(entries):
                return MutationOutcome.UNCHANGED
            self._commit(entries)
        self._logger.info(f"BLOCKLIST {what}")
        self._signal.emit("blocklist")
        return MutationOutcome.APPLIED

    def _commit(self, entries: dict[str, BlockEntry]) -> None:
        self._store.set_blocklist(entries)
        self._cache.refresh()
