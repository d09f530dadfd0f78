import logging
import time
from typing import Callable

from .config import UNLOCK_WINDOW_END_MINUTE, UNLOCK_WINDOW_HOUR
from .config_store import ConfigStore
from .logging_setup import get_logger
from .models import MutationOutcome, StrictModeState, StrictModeType
from .utils import local_time


def is_unlock_window(now: float) -> bool:
    # Wall-clock fields, so DST shifts do not move the window.
    t = local_time(now)
    return t.hour == UNLOCK_WINDOW_HOUR and t.minute < UNLOCK_WINDOW_END_MINUTE


def modification_allowed(state: StrictModeState, now: float) -> bool:
    if not state.is_enabled or state.mode_type is StrictModeType.NONE:
        return True
    return is_unlock_window(now)


class StrictModeGuard:
    """Decides whether a relaxing change to the rules may go through right now.

    Additions are never gated; callers only consult the guard for removals and
    other changes that weaken blocking.
    """

    def __init__(
        self,
        store: ConfigStore,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ):
        self._store = store
        self._clock = clock
        self._logger = get_logger(logger)

    def is_modification_allowed(self, now: float | None = None) -> bool:
        if now is None:
            now = self._clock()
        return modification_allowed(self._store.get_strict_mode(), now)

    def is_strict_mode_active(self) -> bool:
        state = self._store.get_strict_mode()
        return state.is_enabled and state.mode_type is not StrictModeType.NONE

    def enable(
        self,
        mode_type: StrictModeType,
        timer_end_time: float = 0.0,
        anti_uninstall: bool = False,
        now: float | None = None,
    ) -> MutationOutcome:
        """Turn strict mode on, or switch its type.

        While strict mode is active, switching to another type (``NONE``
        included) counts as a relaxation and needs the unlock window. Turning
        it on from off, or re-enabling the same type, is always allowed.
        """
        current = self._store.get_strict_mode()
        active = current.is_enabled and current.mode_type is not StrictModeType.NONE
        if active and mode_type is not current.mode_type and not self.is_modification_allowed(now):
            self._logger.info(
                f"STRICT switch {current.mode_type.value} -> {mode_type.value} denied outside unlock window"
            )
            return MutationOutcome.MODIFICATION_DENIED

        state = StrictModeState(
            is_enabled=True,
            mode_type=mode_type,
            timer_end_time=float(timer_end_time),
            anti_uninstall_enabled=current.anti_uninstall_enabled or anti_uninstall,
        )
        if active and mode_type is current.mode_type:
            state.timer_end_time = max(current.timer_end_time, state.timer_end_time)
        if state == current:
            return MutationOutcome.UNCHANGED
        self._store.set_strict_mode(state)
        self._logger.info(f"STRICT enabled mode={mode_type.value}")
        return MutationOutcome.APPLIED

    def disable(self, now: float | None = None) -> MutationOutcome:
        if not self.is_modification_allowed(now):
            self._logger.info("STRICT disable denied outside unlock window")
            return MutationOutcome.MODIFICATION_DENIED
        self._store.set_strict_mode(StrictModeState())
        self._logger.info("STRICT disabled")
        return MutationOutcome.APPLIED
