"""
Daily emergency bypass quota.

The quota refills lazily: the first consume attempt on a new calendar day
that finds the quota empty resets it. There is no background job doing
this, and nothing else resets the counter.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from .block_cache import BlockCache
from .config import EMERGENCY_DURATION_SEC, EMERGENCY_MAX_USES
from .config_store import ConfigStore
from .errors import NoQuotaRemaining
from .logging_setup import get_logger
from .signals import ChangeSignal
from .utils import same_local_day


@dataclass(frozen=True)
class EmergencyGrant:
    window_end: float
    uses_remaining: int


class EmergencyAccessManager:
    def __init__(
        self,
        store: ConfigStore,
        cache: BlockCache,
        signal: ChangeSignal | None = None,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
        max_uses: int = EMERGENCY_MAX_USES,
        duration_sec: float = EMERGENCY_DURATION_SEC,
    ):
        self._store = store
        self._cache = cache
        self._signal = signal
        self._clock = clock
        self._logger = get_logger(logger)
        self._lock = threading.Lock()
        self.max_uses = max_uses
        self.duration_sec = duration_sec

    def consume_emergency_access(self) -> EmergencyGrant:
        """Open a bypass window of ``duration_sec`` and spend one use.

        Raises ``NoQuotaRemaining`` when today's uses are gone; in that case
        nothing is written.
        """
        with self._lock:
            now = self._clock()
            state = self._store.get_emergency()
            if state.last_reset_date <= 0:
                # Never persisted: a full quota issued today.
                state.uses_remaining = self.max_uses
                state.last_reset_date = now
            state.uses_remaining = min(state.uses_remaining, self.max_uses)

            if state.uses_remaining <= 0:
                if same_local_day(state.last_reset_date, now):
                    self._logger.info("EMERGENCY denied, no uses left today")
                    raise NoQuotaRemaining(state.last_reset_date)
                state.uses_remaining = self.max_uses
                state.last_reset_date = now
                self._logger.info("EMERGENCY quota reset for new day")

            state.uses_remaining -= 1
            window_end = now + self.duration_sec
            state.current_session_end_time = window_end

            # Disk first: a crash before the cache update is repaired by load_from_disk.
            self._store.set_emergency(state)
            self._cache.set_emergency_window_end(window_end)

        self._logger.info(f"EMERGENCY granted until {window_end:.0f}, {state.uses_remaining} left")
        if self._signal is not None:
            self._signal.emit("emergency")
        return EmergencyGrant(window_end=window_end, uses_remaining=state.uses_remaining)

    def remaining_uses(self, now: float | None = None) -> int:
        if now is None:
            now = self._clock()
        state = self._store.get_emergency()
        if state.last_reset_date <= 0:
            return self.max_uses
        if state.uses_remaining <= 0 and not same_local_day(state.last_reset_date, now):
            return self.max_uses
        return max(0, min(state.uses_remaining, self.max_uses))

    def is_active(self, now: float | None = None) -> bool:
        if now is None:
            now = self._clock()
        return now < self._cache.emergency_window_end
