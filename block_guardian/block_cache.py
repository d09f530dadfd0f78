"""
In-memory block decisions.

The cache holds an immutable snapshot of the blocklist that is swapped
wholesale on every refresh. Readers grab the current reference and never
take the lock, so ``should_block`` stays a dict lookup plus one float
comparison no matter what a writer is doing. Writers serialise on a lock
so that two refreshes cannot interleave.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping

from .config_store import ConfigStore
from .logging_setup import get_logger


@dataclass(frozen=True)
class CacheSnapshot:
    entries: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    emergency_window_end: float = 0.0


class BlockCache:
    def __init__(
        self,
        store: ConfigStore,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ):
        self._store = store
        self._clock = clock
        self._logger = get_logger(logger)
        self._write_lock = threading.Lock()
        self._entries: Mapping[str, tuple[str, ...]] = MappingProxyType({})
        self._emergency_window_end = 0.0
        self.last_update_time = 0.0

    # Hot path
    def should_block(self, app_id: str) -> tuple[bool, list[str]]:
        reasons = self._entries.get(app_id)
        if reasons is None:
            return False, []
        if self._clock() < self._emergency_window_end:
            return False, list(reasons)
        return True, list(reasons)

    def get_all_blocked_apps(self) -> dict[str, list[str]]:
        entries = self._entries
        return {app_id: list(reasons) for app_id, reasons in entries.items()}

    @property
    def emergency_window_end(self) -> float:
        return self._emergency_window_end

    def set_emergency_window_end(self, timestamp: float) -> None:
        self._emergency_window_end = float(timestamp)
        self._logger.info(f"CACHE emergency window end set to {timestamp:.0f}")

    def is_emergency_active(self) -> bool:
        return self._clock() < self._emergency_window_end

    def snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(entries=self._entries, emergency_window_end=self._emergency_window_end)

    # Refresh
    def load_from_disk(self) -> None:
        with self._write_lock:
            self._store.load()
            self._rebuild_locked()
            emergency = self._store.get_emergency()
            self._emergency_window_end = emergency.current_session_end_time
        self._logger.info(f"CACHE loaded {len(self._entries)} entries from disk")

    def refresh(self) -> None:
        """Rebuild entries from the store's in-memory records without rereading the file."""
        with self._write_lock:
            self._rebuild_locked()

    def _rebuild_locked(self) -> None:
        entries = self._store.get_blocklist()
        box = {app_id: tuple(sorted(entry.reasons)) for app_id, entry in entries.items() if entry.reasons}
        self._entries = MappingProxyType(box)
        self.last_update_time = self._clock()
