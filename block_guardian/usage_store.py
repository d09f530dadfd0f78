import os
import json
import logging
import threading
import time
from typing import Callable

from .logging_setup import get_logger
from .utils import ensure_dir, today_str


class UsageStore:
    """Foreground seconds per app for the current local day, kept in ``usage.json``."""

    def __init__(self, path: str, clock: Callable[[], float] = time.time, logger: logging.Logger | None = None):
        self._path = path
        self._clock = clock
        self._logger = get_logger(logger)
        self._lock = threading.Lock()
        self._date = today_str(self._clock())
        self._usage: dict[str, float] = {}

    def load(self) -> bool:
        """Read the usage file; returns True when it belonged to an earlier day."""
        ensure_dir(os.path.dirname(self._path))
        if not os.path.exists(self._path):
            return False
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
            with self._lock:
                self._date = str(data.get("date", today_str(self._clock())))
                usage = data.get("usage", {}) or {}
                cleaned: dict[str, float] = {}
                for k, v in usage.items():
                    try:
                        cleaned[str(k)] = float(v)
                    except (TypeError, ValueError):
                        continue
                self._usage = cleaned
        except (OSError, ValueError, AttributeError):
            self._logger.exception("Usage load failed, starting fresh")
            with self._lock:
                self._date = today_str(self._clock())
                self._usage = {}
        return self.reset_if_new_day()

    def save(self) -> None:
        ensure_dir(os.path.dirname(self._path))
        with self._lock:
            data = {"date": self._date, "usage": dict(self._usage)}
        try:
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError:
            self._logger.exception("Usage save failed")

    def reset_if_new_day(self) -> bool:
        t = today_str(self._clock())
        with self._lock:
            if self._date != t:
                self._date = t
                self._usage = {}
                return True
        return False

    def add_seconds(self, app_id: str, seconds: float) -> float:
        if not app_id or seconds <= 0:
            return self.get_seconds(app_id)
        with self._lock:
            total = float(self._usage.get(app_id, 0.0)) + float(seconds)
            self._usage[app_id] = total
            return total

    def get_seconds(self, app_id: str) -> float:
        if not app_id:
            return 0.0
        with self._lock:
            return float(self._usage.get(app_id, 0.0))

    def snapshot(self) -> tuple[str, dict[str, float]]:
        with self._lock:
            return self._date, dict(self._usage)
