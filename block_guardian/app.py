import logging
import os
import random
import time
from typing import Callable

from .block_cache import BlockCache
from .blocklist import BlocklistEditor
from .config import APP_TITLE, APPDATA_DIR, CONFIG_FILE, USAGE_FILE
from .config_store import ConfigStore
from .emergency import EmergencyAccessManager, EmergencyGrant
from .focus_session import FocusSession
from .logging_setup import get_logger, setup_logger
from .messages import MessageSelector
from .mode_rules import ModeRules
from .models import BlockMessage
from .process_monitor import AppMatcher, BlockHook, ForegroundMonitor
from .signals import ChangeSignal, Listener
from .strict_mode import StrictModeGuard
from .usage_limits import UsageLimiter
from .usage_store import UsageStore
from .utils import ensure_dir


class GuardianApp:
    """Process-wide owner of every guardian component.

    Build one per process and hand references to whoever needs them; nothing
    in the package reaches for module-level state.
    """

    def __init__(
        self,
        data_dir: str | None = None,
        clock: Callable[[], float] = time.time,
        rng: random.Random | None = None,
        logger: logging.Logger | None = None,
    ):
        if data_dir is None:
            data_dir = APPDATA_DIR
            config_path, usage_path = CONFIG_FILE, USAGE_FILE
        else:
            config_path = os.path.join(data_dir, os.path.basename(CONFIG_FILE))
            usage_path = os.path.join(data_dir, os.path.basename(USAGE_FILE))
        ensure_dir(data_dir)

        self.logger = get_logger(logger)
        self.clock = clock

        self.store = ConfigStore(config_path, logger=self.logger)
        self.cache = BlockCache(self.store, clock=clock, logger=self.logger)
        self.signal = ChangeSignal(logger=self.logger)
        self.guard = StrictModeGuard(self.store, clock=clock, logger=self.logger)
        self.emergency = EmergencyAccessManager(
            self.store, self.cache, signal=self.signal, clock=clock, logger=self.logger
        )
        self.selector = MessageSelector(rng)
        self.blocklist = BlocklistEditor(self.store, self.cache, self.guard, self.signal, logger=self.logger)
        self.focus = FocusSession(self.store, signal=self.signal, clock=clock, logger=self.logger)
        self.modes = ModeRules(
            self.store, self.blocklist, self.guard, self.signal, clock=clock, logger=self.logger
        )
        self.usage = UsageStore(usage_path, clock=clock, logger=self.logger)
        self.limits = UsageLimiter(
            self.store, self.usage, self.blocklist, self.guard, logger=self.logger
        )

        self.cache.load_from_disk()
        self.limits.load()
        self.modes.sync()
        self.logger.info(f"{APP_TITLE} ready, {len(self.cache.get_all_blocked_apps())} apps in the box")

    @classmethod
    def create_default(cls) -> "GuardianApp":
        return cls(logger=setup_logger())

    # Collaborator API
    def should_block(self, app_id: str) -> tuple[bool, list[str]]:
        return self.cache.should_block(app_id)

    def get_all_blocked_apps(self) -> dict[str, list[str]]:
        return self.cache.get_all_blocked_apps()

    def load_from_disk(self) -> None:
        self.cache.load_from_disk()

    def consume_emergency_access(self) -> EmergencyGrant:
        return self.emergency.consume_emergency_access()

    def is_modification_allowed(self, now: float | None = None) -> bool:
        return self.guard.is_modification_allowed(now)

    def select_message(self, category) -> str:
        return self.selector.select_message(category, self.store.get_block_messages())

    def refresh_rules(self) -> bool:
        """Re-evaluate time based rules; the host calls this about once a minute."""
        return self.modes.sync()

    def set_block_messages(self, messages: list[BlockMessage]) -> None:
        self.store.set_block_messages(messages)

    def on_blocking_state_changed(self, listener: Listener) -> None:
        self.signal.connect(listener)

    def create_monitor(self, on_block: BlockHook, matcher: AppMatcher | None = None) -> ForegroundMonitor:
        return ForegroundMonitor(
            self.cache,
            self.signal,
            on_block,
            matcher=matcher,
            selector=self.selector,
            messages=self.store.get_block_messages,
            clock=self.clock,
            logger=self.logger,
        )

    def shutdown(self) -> None:
        self.limits.save()
        self.logger.info("App stop")
