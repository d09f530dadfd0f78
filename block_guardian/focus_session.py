"""
Deep-work session timer.

Nothing ticks in the background: every figure is derived from the stored
timestamps on demand, so a session survives the process being killed and
any surface can reattach to it.

    READY --start--> RUNNING --pause--> PAUSED --resume--> RUNNING
    RUNNING/PAUSED --stop--> READY
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from .config import DEFAULT_PAUSE_LIMIT_SEC, DEFAULT_SESSION_NAME
from .config_store import ConfigStore
from .logging_setup import get_logger
from .models import FocusSessionState, SessionPhase
from .signals import ChangeSignal
from .utils import seconds_to_mmss


@dataclass(frozen=True)
class FocusSnapshot:
    state: SessionPhase
    session_name: str
    elapsed: float
    paused: float
    planned_duration: float
    progress: float


@dataclass(frozen=True)
class FocusSummary:
    session_name: str
    started_at: float
    ended_at: float
    effective: float
    paused: float
    auto_stopped: bool


class FocusSession:
    def __init__(
        self,
        store: ConfigStore,
        signal: ChangeSignal | None = None,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ):
        self._store = store
        self._signal = signal
        self._clock = clock
        self._logger = get_logger(logger)
        self._lock = threading.RLock()
        self.last_summary: FocusSummary | None = None

    @property
    def state(self) -> SessionPhase:
        return self._store.get_focus_session().state

    def start(
        self,
        duration_sec: float,
        name: str = DEFAULT_SESSION_NAME,
        pause_limit_sec: float = DEFAULT_PAUSE_LIMIT_SEC,
    ) -> bool:
        if duration_sec <= 0:
            return False
        with self._lock:
            current = self._store.get_focus_session()
            if current.state is not SessionPhase.READY:
                return False
            now = self._clock()
            self._store.set_focus_session(
                FocusSessionState(
                    state=SessionPhase.RUNNING,
                    session_name=name,
                    start_time=now,
                    running_start=now,
                    planned_duration=float(duration_sec),
                    pause_limit=float(pause_limit_sec),
                )
            )
        self._logger.info(f"FOCUS start name={name} planned={seconds_to_mmss(duration_sec)}")
        self._emit("focus_start")
        return True

    def pause(self) -> bool:
        with self._lock:
            s = self._store.get_focus_session()
            if s.state is not SessionPhase.RUNNING:
                return False
            now = self._clock()
            s.elapsed_running += max(0.0, now - s.running_start)
            s.pause_start = now
            s.state = SessionPhase.PAUSED
            self._store.set_focus_session(s)
        self._logger.info("FOCUS pause")
        self._emit("focus_pause")
        return True

    def resume(self) -> bool:
        with self._lock:
            s = self._store.get_focus_session()
            if s.state is not SessionPhase.PAUSED:
                return False
            now = self._clock()
            total_pause = s.accumulated_paused + max(0.0, now - s.pause_start)
            if total_pause >= s.pause_limit:
                self._logger.info("FOCUS pause limit exceeded, stopping session")
                self._finish(s, now, auto_stopped=True)
                return False
            s.accumulated_paused = total_pause
            s.running_start = now
            s.state = SessionPhase.RUNNING
            self._store.set_focus_session(s)
        self._logger.info("FOCUS resume")
        self._emit("focus_resume")
        return True

    def stop(self) -> FocusSummary | None:
        with self._lock:
            s = self._store.get_focus_session()
            if s.state is SessionPhase.READY:
                return None
            return self._finish(s, self._clock(), auto_stopped=False)

    def snapshot(self, now: float | None = None) -> FocusSnapshot:
        if now is None:
            now = self._clock()
        s = self._store.get_focus_session()
        elapsed = s.elapsed_running
        paused = s.accumulated_paused
        if s.state is SessionPhase.RUNNING:
            elapsed += max(0.0, now - s.running_start)
        elif s.state is SessionPhase.PAUSED:
            paused += max(0.0, now - s.pause_start)
        progress = 0.0
        if s.state is not SessionPhase.READY and s.planned_duration > 0:
            progress = min(1.0, max(0.0, elapsed / s.planned_duration))
        return FocusSnapshot(
            state=s.state,
            session_name=s.session_name,
            elapsed=elapsed,
            paused=paused,
            planned_duration=s.planned_duration,
            progress=progress,
        )

    def _finish(self, s: FocusSessionState, now: float, auto_stopped: bool) -> FocusSummary:
        elapsed = s.elapsed_running
        paused = s.accumulated_paused
        if s.state is SessionPhase.RUNNING:
            elapsed += max(0.0, now - s.running_start)
            ended = now
        else:
            if auto_stopped:
                # The session really ended when the pause budget ran out.
                ended = s.pause_start + max(0.0, s.pause_limit - s.accumulated_paused)
                paused = s.pause_limit
            else:
                ended = now
                paused += max(0.0, now - s.pause_start)

        summary = FocusSummary(
            session_name=s.session_name,
            started_at=s.start_time,
            ended_at=ended,
            effective=elapsed,
            paused=min(paused, s.pause_limit),
            auto_stopped=auto_stopped,
        )
        self._store.set_focus_session(FocusSessionState())
        self.last_summary = summary
        self._logger.info(
            f"FOCUS stop name={s.session_name} effective={seconds_to_mmss(elapsed)} "
            f"paused={seconds_to_mmss(summary.paused)} auto={auto_stopped}"
        )
        self._emit("focus_stop")
        return summary

    def _emit(self, reason: str) -> None:
        if self._signal is not None:
            self._signal.emit(reason)
