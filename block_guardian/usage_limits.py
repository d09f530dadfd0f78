import logging
import threading

from .blocklist import BlocklistEditor
from .config import LIMIT_REASON_PREFIX
from .config_store import ConfigStore
from .logging_setup import get_logger
from .models import MutationOutcome
from .strict_mode import StrictModeGuard
from .usage_store import UsageStore


def limit_reason(minutes: int) -> str:
    return f"{LIMIT_REASON_PREFIX} ({minutes}m)"


def is_limit_reason(reason: str) -> bool:
    return reason.startswith(LIMIT_REASON_PREFIX)


class UsageLimiter:
    """Per-app daily usage limits feeding the blocklist.

    The monitoring side reports foreground time with ``record_usage``; once an
    app crosses its limit a limit reason is added to its blocklist entry. A new
    day wipes usage and those reasons again, whether it is noticed at load time
    or on the first report.
    """

    def __init__(
        self,
        store: ConfigStore,
        usage: UsageStore,
        editor: BlocklistEditor,
        guard: StrictModeGuard,
        logger: logging.Logger | None = None,
    ):
        self._store = store
        self._usage = usage
        self._editor = editor
        self._guard = guard
        self._logger = get_logger(logger)
        self._lock = threading.Lock()

    def load(self) -> None:
        if self._usage.load():
            self._logger.info("LIMIT usage file is from an earlier day, starting fresh")
        self.reconcile()

    def reconcile(self) -> None:
        """Make every limit reason in the blocklist match today's usage."""
        apps = set(self._store.get_app_limits())
        for app_id, entry in self._editor.entries().items():
            if any(is_limit_reason(r) for r in entry.reasons):
                apps.add(app_id)
        for app_id in sorted(apps):
            self._reapply(app_id)

    def limits(self) -> dict[str, int]:
        return self._store.get_app_limits()

    def set_limit(self, app_id: str, minutes: int | None) -> MutationOutcome:
        minutes = int(minutes or 0)
        with self._lock:
            limits = self._store.get_app_limits()
            current = limits.get(app_id)
            if current == (minutes if minutes > 0 else None):
                return MutationOutcome.UNCHANGED
            loosening = current is not None and (minutes <= 0 or minutes > current)
            if loosening and not self._guard.is_modification_allowed():
                self._logger.info(f"LIMIT change for {app_id} denied by strict mode")
                return MutationOutcome.MODIFICATION_DENIED
            if minutes > 0:
                limits[app_id] = minutes
            else:
                limits.pop(app_id, None)
            self._store.set_app_limits(limits)
        self._logger.info(f"LIMIT {app_id} set to {minutes}m")
        self._reapply(app_id)
        return MutationOutcome.APPLIED

    def record_usage(self, app_id: str, seconds: float) -> bool:
        """Add foreground time; returns True when the app is over its limit."""
        if self._usage.reset_if_new_day():
            removed = self._editor.strip_reasons(is_limit_reason)
            self._logger.info(f"LIMIT new day, cleared usage and {removed} limit reasons")
        total = self._usage.add_seconds(app_id, seconds)
        minutes = self._store.get_app_limits().get(app_id)
        if minutes is None:
            return False
        if total >= minutes * 60:
            self._editor.add_app(app_id, limit_reason(minutes))
            return True
        return False

    def used_seconds(self, app_id: str) -> float:
        return self._usage.get_seconds(app_id)

    def save(self) -> None:
        self._usage.save()

    def _reapply(self, app_id: str) -> None:
        minutes = self._store.get_app_limits().get(app_id)
        keep = None
        if minutes is not None and self._usage.get_seconds(app_id) >= minutes * 60:
            keep = limit_reason(minutes)
        self._editor.strip_reasons(lambda r: is_limit_reason(r) and r != keep, app_id=app_id)
        if keep is not None:
            self._editor.add_app(app_id, keep)
