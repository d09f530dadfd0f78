"""
Durable key/value storage for every rule the guardian enforces.

The store is a single JSON document, one top-level key per record:

    {
        "blocklist_v2": [{"app_id": str, "reasons": [str]}],
        "strict_mode": {"is_enabled", "mode_type", "timer_end_time", "anti_uninstall_enabled"},
        "emergency_access": {"uses_remaining", "last_reset_date", "current_session_end_time"},
        "block_messages": [{"text": str, "tags": [str]}],
        "focus_session": {...},
        "app_limits": {app_id: minutes},
        "focus_apps": [app_id],
        "bedtime": {"is_enabled", "start_mins", "end_mins", "apps"},
        "schedules": [{"title", "start_mins", "end_mins", "apps", "repeat_days"}],
    }

Records are independent: a record that fails to parse falls back to its
default without disturbing the others. No policy lives here.
"""

from __future__ import annotations

import copy
import json
import logging
import os
import threading
from pathlib import Path

from .config import (
    DEFAULT_MESSAGE_POOL,
    RECORD_APP_LIMITS,
    RECORD_BLOCK_MESSAGES,
    RECORD_BEDTIME,
    RECORD_BLOCKLIST,
    RECORD_EMERGENCY,
    RECORD_FOCUS_APPS,
    RECORD_FOCUS_SESSION,
    RECORD_SCHEDULES,
    RECORD_STRICT_MODE,
)
from .errors import MalformedPersistedData
from .logging_setup import get_logger
from .models import (
    BedtimeState,
    BlockEntry,
    BlockMessage,
    EmergencyState,
    FocusSessionState,
    MessageTag,
    ScheduleItem,
    StrictModeState,
)
from .utils import ensure_dir


def default_messages() -> list[BlockMessage]:
    return [BlockMessage(text=text, tags={MessageTag(t) for t in tags}) for text, tags in DEFAULT_MESSAGE_POOL]


class ConfigStore:
    def __init__(self, path: str, logger: logging.Logger | None = None):
        self._path = Path(path)
        self._logger = get_logger(logger)
        self._lock = threading.RLock()
        self._data: dict = {}

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> None:
        ensure_dir(os.path.dirname(self._path))
        if not self._path.exists():
            with self._lock:
                self._data = {}
            return
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise MalformedPersistedData("<root>", "top level is not an object")
        except (OSError, ValueError, MalformedPersistedData):
            self._logger.exception("Config load failed, using defaults")
            raw = {}
        with self._lock:
            self._data = raw

    def save(self) -> None:
        with self._lock:
            self._write(self._data)

    def _write(self, data: dict) -> None:
        ensure_dir(os.path.dirname(self._path))
        payload = json.dumps(data, indent=2, sort_keys=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(payload, encoding="utf-8")
        tmp.replace(self._path)

    def _get_raw(self, record: str):
        with self._lock:
            return copy.deepcopy(self._data.get(record))

    def _put_raw(self, record: str, value) -> None:
        # Memory only changes once the new document is on disk.
        with self._lock:
            data = dict(self._data)
            data[record] = value
            self._write(data)
            self._data = data

    # Blocklist
    def get_blocklist(self) -> dict[str, BlockEntry]:
        raw = self._get_raw(RECORD_BLOCKLIST)
        if raw is None:
            return {}
        try:
            if not isinstance(raw, list):
                raise MalformedPersistedData(RECORD_BLOCKLIST, "expected a list")
            entries: dict[str, BlockEntry] = {}
            for item in raw:
                entry = BlockEntry.from_dict(item)
                if entry.reasons:
                    entries.setdefault(entry.app_id, BlockEntry(entry.app_id)).reasons.update(entry.reasons)
            return entries
        except MalformedPersistedData as e:
            self._logger.warning(f"{e}; falling back to empty blocklist")
            return {}

    def set_blocklist(self, entries: dict[str, BlockEntry]) -> None:
        data = [entries[k].to_dict() for k in sorted(entries) if entries[k].reasons]
        self._put_raw(RECORD_BLOCKLIST, data)

    # Strict mode
    def get_strict_mode(self) -> StrictModeState:
        return self._get_record(RECORD_STRICT_MODE, StrictModeState.from_dict, StrictModeState)

    def set_strict_mode(self, state: StrictModeState) -> None:
        self._put_raw(RECORD_STRICT_MODE, state.to_dict())

    # Emergency access
    def get_emergency(self) -> EmergencyState:
        return self._get_record(RECORD_EMERGENCY, EmergencyState.from_dict, EmergencyState)

    def set_emergency(self, state: EmergencyState) -> None:
        self._put_raw(RECORD_EMERGENCY, state.to_dict())

    # Block messages
    def get_block_messages(self) -> list[BlockMessage]:
        raw = self._get_raw(RECORD_BLOCK_MESSAGES)
        if raw is None:
            return default_messages()
        try:
            if not isinstance(raw, list):
                raise MalformedPersistedData(RECORD_BLOCK_MESSAGES, "expected a list")
            return [BlockMessage.from_dict(item) for item in raw]
        except MalformedPersistedData as e:
            self._logger.warning(f"{e}; falling back to default messages")
            return default_messages()

    def set_block_messages(self, messages: list[BlockMessage]) -> None:
        self._put_raw(RECORD_BLOCK_MESSAGES, [m.to_dict() for m in messages])

    # Focus session
    def get_focus_session(self) -> FocusSessionState:
        return self._get_record(RECORD_FOCUS_SESSION, FocusSessionState.from_dict, FocusSessionState)

    def set_focus_session(self, state: FocusSessionState) -> None:
        self._put_raw(RECORD_FOCUS_SESSION, state.to_dict())

    # Usage limits
    def get_app_limits(self) -> dict[str, int]:
        raw = self._get_raw(RECORD_APP_LIMITS)
        if raw is None:
            return {}
        cleaned: dict[str, int] = {}
        if not isinstance(raw, dict):
            self._logger.warning(f"Malformed record {RECORD_APP_LIMITS!r}; ignoring limits")
            return cleaned
        for k, v in raw.items():
            try:
                minutes = int(v)
            except (TypeError, ValueError):
                self._logger.warning(f"Skipping bad limit for {k!r}: {v!r}")
                continue
            if minutes > 0:
                cleaned[str(k)] = minutes
        return cleaned

    def set_app_limits(self, limits: dict[str, int]) -> None:
        self._put_raw(RECORD_APP_LIMITS, {k: int(v) for k, v in sorted(limits.items()) if int(v) > 0})

    # Rule sources
    def get_focus_apps(self) -> set[str]:
        raw = self._get_raw(RECORD_FOCUS_APPS)
        if raw is None:
            return set()
        if not isinstance(raw, list):
            self._logger.warning(f"Malformed record {RECORD_FOCUS_APPS!r}; no focus apps")
            return set()
        return {a for a in raw if isinstance(a, str) and a}

    def set_focus_apps(self, apps) -> None:
        self._put_raw(RECORD_FOCUS_APPS, sorted({a for a in apps if a}))

    def get_bedtime(self) -> BedtimeState:
        return self._get_record(RECORD_BEDTIME, BedtimeState.from_dict, BedtimeState)

    def set_bedtime(self, state: BedtimeState) -> None:
        self._put_raw(RECORD_BEDTIME, state.to_dict())

    def get_schedules(self) -> list[ScheduleItem]:
        raw = self._get_raw(RECORD_SCHEDULES)
        if raw is None:
            return []
        try:
            if not isinstance(raw, list):
                raise MalformedPersistedData(RECORD_SCHEDULES, "expected a list")
            return [ScheduleItem.from_dict(item) for item in raw]
        except MalformedPersistedData as e:
            self._logger.warning(f"{e}; falling back to no schedules")
            return []

    def set_schedules(self, items: list[ScheduleItem]) -> None:
        self._put_raw(RECORD_SCHEDULES, [item.to_dict() for item in items])

    def _get_record(self, record: str, parse, default_factory):
        raw = self._get_raw(record)
        if raw is None:
            return default_factory()
        try:
            return parse(raw)
        except MalformedPersistedData as e:
            self._logger.warning(f"{e}; falling back to defaults")
            return default_factory()
