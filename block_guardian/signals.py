import logging
import threading
from typing import Callable

from .logging_setup import get_logger

BLOCKING_STATE_CHANGED = "blocking-state-changed"

Listener = Callable[[str], None]


class ChangeSignal:
    """Process-local "blocking-state-changed" broadcast.

    Listeners are called synchronously on the emitting thread with a short
    reason string. A listener that raises is logged and skipped.
    """

    def __init__(self, name: str = BLOCKING_STATE_CHANGED, logger: logging.Logger | None = None):
        self.name = name
        self._logger = get_logger(logger)
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    def connect(self, listener: Listener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def disconnect(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def emit(self, reason: str) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(reason)
            except Exception:
                self._logger.exception(f"SIGNAL {self.name} listener failed for reason={reason}")
