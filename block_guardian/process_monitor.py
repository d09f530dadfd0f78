import logging
import threading
import time
from typing import Callable, Iterable

import psutil

from .block_cache import BlockCache
from .config_store import default_messages
from .logging_setup import get_logger
from .messages import MessageSelector
from .models import BlockMessage
from .signals import ChangeSignal

BlockHook = Callable[[str, list[str], str], None]


def safe_process_name(pid: int | None) -> str | None:
    if not pid:
        return None
    try:
        return psutil.Process(pid).name()
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return None


def pattern_matches(pattern: str, proc_name: str) -> bool:
    """``*`` is a wildcard, a pattern with a dot must match the whole name,
    anything else is a substring match. Both sides are lower case."""
    if "*" in pattern:
        parts = [p for p in pattern.split("*") if p]
        if not parts:
            return False
        idx = 0
        for part in parts:
            found = proc_name.find(part, idx)
            if found < 0:
                return False
            idx = found + len(part)
        return True
    if "." in pattern:
        return proc_name == pattern
    return pattern in proc_name


class AppMatcher:
    """Maps process names onto the app ids used in the blocklist.

    Each app id carries its own process name patterns; the first app id with
    a matching pattern wins, in the order they were given.
    """

    def __init__(self, aliases: dict[str, Iterable[str]] | None = None):
        self._rules: list[tuple[str, str]] = []
        if aliases:
            self.set_aliases(aliases)

    @classmethod
    def from_app_ids(cls, app_ids: Iterable[str]) -> "AppMatcher":
        return cls({app_id: [app_id] for app_id in app_ids})

    def set_aliases(self, aliases: dict[str, Iterable[str]]) -> None:
        rules = []
        for app_id, patterns in aliases.items():
            for pat in patterns:
                pat = (pat or "").strip().lower()
                if pat:
                    rules.append((pat, app_id))
        self._rules = rules

    def app_ids(self) -> list[str]:
        return list(dict.fromkeys(app_id for _, app_id in self._rules))

    def match_key(self, proc_name: str | None) -> str | None:
        if not proc_name:
            return None
        pn = proc_name.lower()
        for pat, app_id in self._rules:
            if pattern_matches(pat, pn):
                return app_id
        return None


class ForegroundMonitor:
    """Adapter between a host's foreground-change events and the block cache.

    The host calls ``on_foreground_change`` whenever the active app changes;
    the monitor never polls on its own. It also listens on the change signal
    so a rule change is enforced on the app already in front. The block hook
    gets the reasons and a block screen message picked for the first one.
    """

    def __init__(
        self,
        cache: BlockCache,
        signal: ChangeSignal,
        on_block: BlockHook,
        matcher: AppMatcher | None = None,
        selector: MessageSelector | None = None,
        messages: Callable[[], list[BlockMessage]] = default_messages,
        clock: Callable[[], float] = time.time,
        logger: logging.Logger | None = None,
    ):
        self._cache = cache
        self._signal = signal
        self._on_block = on_block
        self._matcher = matcher
        self._selector = selector if selector is not None else MessageSelector()
        self._messages = messages
        self._clock = clock
        self._logger = get_logger(logger)
        self._lock = threading.Lock()
        self._current: str | None = None
        self._current_since = 0.0
        self._signal.connect(self._on_state_changed)

    @property
    def current_app(self) -> str | None:
        return self._current

    def close(self) -> None:
        self._signal.disconnect(self._on_state_changed)

    def resolve(self, proc_name: str | None) -> str | None:
        if not proc_name:
            return None
        if self._matcher is None:
            return proc_name
        return self._matcher.match_key(proc_name) or proc_name

    def on_foreground_pid(self, pid: int | None) -> tuple[str | None, float]:
        return self.on_foreground_change(safe_process_name(pid))

    def on_foreground_change(self, proc_name: str | None) -> tuple[str | None, float]:
        """Record the new foreground app and enforce it.

        Returns the previously active app and how long it was in front, so a
        caller can feed usage accounting.
        """
        app_id = self.resolve(proc_name)
        now = self._clock()
        with self._lock:
            previous, since = self._current, self._current_since
            self._current, self._current_since = app_id, now
        self._evaluate(app_id)
        spent = max(0.0, now - since) if previous else 0.0
        return previous, spent

    def _on_state_changed(self, reason: str) -> None:
        self._evaluate(self._current)

    def _evaluate(self, app_id: str | None) -> bool:
        if not app_id:
            return False
        blocked, reasons = self._cache.should_block(app_id)
        if blocked:
            self._logger.info(f"MONITOR blocking {app_id} reasons={reasons}")
            message = self._selector.message_for_reasons(reasons, self._messages())
            self._on_block(app_id, reasons, message)
        return blocked
