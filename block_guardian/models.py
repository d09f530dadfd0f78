"""
Plain data records shared by the guardian components.

Each record knows how to turn itself into a JSON-friendly dict and back.
``from_dict`` raises ``MalformedPersistedData`` on anything it cannot make
sense of; the store decides what to fall back to.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from .config import (
    DEFAULT_BEDTIME_END_MINS,
    DEFAULT_BEDTIME_START_MINS,
    DEFAULT_PAUSE_LIMIT_SEC,
    DEFAULT_SESSION_NAME,
    EMERGENCY_MAX_USES,
)
from .errors import MalformedPersistedData


class StrictModeType(Enum):
    NONE = "NONE"
    LOCK = "LOCK"
    TIMER = "TIMER"
    PASSWORD = "PASSWORD"


class MessageTag(Enum):
    ALL = "ALL"
    FOCUS = "FOCUS"
    BEDTIME = "BEDTIME"
    LIMIT = "LIMIT"


class SessionPhase(Enum):
    READY = "READY"
    RUNNING = "RUNNING"
    PAUSED = "PAUSED"


class MutationOutcome(Enum):
    APPLIED = "applied"
    UNCHANGED = "unchanged"
    MODIFICATION_DENIED = "modification_denied"

    @property
    def denied(self) -> bool:
        return self is MutationOutcome.MODIFICATION_DENIED


def _require_dict(record: str, raw) -> dict:
    if not isinstance(raw, dict):
        raise MalformedPersistedData(record, f"expected object, got {type(raw).__name__}")
    return raw


def _number(record: str, raw: dict, key: str, default: float) -> float:
    val = raw.get(key, default)
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        raise MalformedPersistedData(record, f"{key} is not a number")
    return float(val)


@dataclass
class BlockEntry:
    app_id: str
    reasons: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {"app_id": self.app_id, "reasons": sorted(self.reasons)}

    @classmethod
    def from_dict(cls, raw) -> "BlockEntry":
        raw = _require_dict("blocklist_v2", raw)
        app_id = raw.get("app_id")
        reasons = raw.get("reasons", [])
        if not isinstance(app_id, str) or not app_id:
            raise MalformedPersistedData("blocklist_v2", "entry without app_id")
        if not isinstance(reasons, list) or not all(isinstance(r, str) for r in reasons):
            raise MalformedPersistedData("blocklist_v2", f"bad reasons for {app_id}")
        return cls(app_id=app_id, reasons=set(reasons))


@dataclass
class EmergencyState:
    uses_remaining: int = EMERGENCY_MAX_USES
    last_reset_date: float = 0.0
    current_session_end_time: float = 0.0

    def to_dict(self) -> dict:
        return {
            "uses_remaining": self.uses_remaining,
            "last_reset_date": self.last_reset_date,
            "current_session_end_time": self.current_session_end_time,
        }

    @classmethod
    def from_dict(cls, raw) -> "EmergencyState":
        name = "emergency_access"
        raw = _require_dict(name, raw)
        uses = int(_number(name, raw, "uses_remaining", EMERGENCY_MAX_USES))
        # The upper bound belongs to whoever owns the quota.
        return cls(
            uses_remaining=max(0, uses),
            last_reset_date=_number(name, raw, "last_reset_date", 0.0),
            current_session_end_time=_number(name, raw, "current_session_end_time", 0.0),
        )


@dataclass
class StrictModeState:
    is_enabled: bool = False
    mode_type: StrictModeType = StrictModeType.NONE
    # Kept for the settings surface only; the guard ignores it.
    timer_end_time: float = 0.0
    anti_uninstall_enabled: bool = False

    def to_dict(self) -> dict:
        return {
            "is_enabled": self.is_enabled,
            "mode_type": self.mode_type.value,
            "timer_end_time": self.timer_end_time,
            "anti_uninstall_enabled": self.anti_uninstall_enabled,
        }

    @classmethod
    def from_dict(cls, raw) -> "StrictModeState":
        name = "strict_mode"
        raw = _require_dict(name, raw)
        try:
            mode = StrictModeType(raw.get("mode_type", StrictModeType.NONE.value))
        except ValueError as e:
            raise MalformedPersistedData(name, str(e)) from e
        return cls(
            is_enabled=bool(raw.get("is_enabled", False)),
            mode_type=mode,
            timer_end_time=_number(name, raw, "timer_end_time", 0.0),
            anti_uninstall_enabled=bool(raw.get("anti_uninstall_enabled", False)),
        )


@dataclass
class BlockMessage:
    text: str
    tags: set[MessageTag] = field(default_factory=lambda: {MessageTag.ALL})

    def matches(self, category: MessageTag) -> bool:
        return MessageTag.ALL in self.tags or category in self.tags

    def to_dict(self) -> dict:
        return {"text": self.text, "tags": sorted(t.value for t in self.tags)}

    @classmethod
    def from_dict(cls, raw) -> "BlockMessage":
        raw = _require_dict("block_messages", raw)
        text = raw.get("text")
        if not isinstance(text, str):
            raise MalformedPersistedData("block_messages", "message without text")
        try:
            tags = {MessageTag(str(t).upper()) for t in raw.get("tags", ["ALL"])}
        except (TypeError, ValueError) as e:
            raise MalformedPersistedData("block_messages", str(e)) from e
        return cls(text=text, tags=tags or {MessageTag.ALL})


@dataclass
class FocusSessionState:
    state: SessionPhase = SessionPhase.READY
    session_name: str = DEFAULT_SESSION_NAME
    start_time: float = 0.0
    running_start: float = 0.0
    elapsed_running: float = 0.0
    pause_start: float = 0.0
    accumulated_paused: float = 0.0
    planned_duration: float = 0.0
    pause_limit: float = DEFAULT_PAUSE_LIMIT_SEC

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "session_name": self.session_name,
            "start_time": self.start_time,
            "running_start": self.running_start,
            "elapsed_running": self.elapsed_running,
            "pause_start": self.pause_start,
            "accumulated_paused": self.accumulated_paused,
            "planned_duration": self.planned_duration,
            "pause_limit": self.pause_limit,
        }

    @classmethod
    def from_dict(cls, raw) -> "FocusSessionState":
        name = "focus_session"
        raw = _require_dict(name, raw)
        try:
            phase = SessionPhase(raw.get("state", SessionPhase.READY.value))
        except ValueError as e:
            raise MalformedPersistedData(name, str(e)) from e
        return cls(
            state=phase,
            session_name=str(raw.get("session_name", DEFAULT_SESSION_NAME)),
            start_time=_number(name, raw, "start_time", 0.0),
            running_start=_number(name, raw, "running_start", 0.0),
            elapsed_running=_number(name, raw, "elapsed_running", 0.0),
            pause_start=_number(name, raw, "pause_start", 0.0),
            accumulated_paused=_number(name, raw, "accumulated_paused", 0.0),
            planned_duration=_number(name, raw, "planned_duration", 0.0),
            pause_limit=_number(name, raw, "pause_limit", DEFAULT_PAUSE_LIMIT_SEC),
        )


def _minutes(record: str, raw: dict, key: str, default: int) -> int:
    val = int(_number(record, raw, key, default))
    if not 0 <= val < 24 * 60:
        raise MalformedPersistedData(record, f"{key} out of range: {val}")
    return val


def _app_ids(record: str, raw) -> set[str]:
    if not isinstance(raw, list) or not all(isinstance(a, str) for a in raw):
        raise MalformedPersistedData(record, "apps must be a list of strings")
    return {a for a in raw if a}


@dataclass
class BedtimeState:
    is_enabled: bool = False
    start_mins: int = DEFAULT_BEDTIME_START_MINS
    end_mins: int = DEFAULT_BEDTIME_END_MINS
    apps: set[str] = field(default_factory=set)

    def to_dict(self) -> dict:
        return {
            "is_enabled": self.is_enabled,
            "start_mins": self.start_mins,
            "end_mins": self.end_mins,
            "apps": sorted(self.apps),
        }

    @classmethod
    def from_dict(cls, raw) -> "BedtimeState":
        name = "bedtime"
        raw = _require_dict(name, raw)
        return cls(
            is_enabled=bool(raw.get("is_enabled", False)),
            start_mins=_minutes(name, raw, "start_mins", DEFAULT_BEDTIME_START_MINS),
            end_mins=_minutes(name, raw, "end_mins", DEFAULT_BEDTIME_END_MINS),
            apps=_app_ids(name, raw.get("apps", [])),
        )


@dataclass
class ScheduleItem:
    """A recurring block window; ``repeat_days`` are ISO weekdays, Monday is 1."""

    title: str
    start_mins: int
    end_mins: int
    apps: set[str] = field(default_factory=set)
    repeat_days: set[int] = field(default_factory=lambda: set(range(1, 8)))

    def to_dict(self) -> dict:
        return {
            "title": self.title,
            "start_mins": self.start_mins,
            "end_mins": self.end_mins,
            "apps": sorted(self.apps),
            "repeat_days": sorted(self.repeat_days),
        }

    @classmethod
    def from_dict(cls, raw) -> "ScheduleItem":
        name = "schedules"
        raw = _require_dict(name, raw)
        days = raw.get("repeat_days", list(range(1, 8)))
        if not isinstance(days, list) or not all(isinstance(d, int) and 1 <= d <= 7 for d in days):
            raise MalformedPersistedData(name, "repeat_days must be weekdays 1-7")
        return cls(
            title=str(raw.get("title", "")),
            start_mins=_minutes(name, raw, "start_mins", 0),
            end_mins=_minutes(name, raw, "end_mins", 0),
            apps=_app_ids(name, raw.get("apps", [])),
            repeat_days=set(days),
        )
