import datetime
import random

import pytest

from block_guardian.app import GuardianApp
from block_guardian.block_cache import BlockCache
from block_guardian.config_store import ConfigStore
from block_guardian.signals import ChangeSignal
from block_guardian.strict_mode import StrictModeGuard


def local_ts(year=2026, month=3, day=10, hour=12, minute=0, second=0) -> float:
    return datetime.datetime(year, month, day, hour, minute, second).timestamp()


class FakeClock:
    def __init__(self, now: float):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def set(self, now: float) -> None:
        self.now = now


@pytest.fixture
def clock():
    return FakeClock(local_ts())


@pytest.fixture
def store(tmp_path):
    s = ConfigStore(str(tmp_path / "config.json"))
    s.load()
    return s


@pytest.fixture
def cache(store, clock):
    c = BlockCache(store, clock=clock)
    c.load_from_disk()
    return c


@pytest.fixture
def signal():
    return ChangeSignal()


@pytest.fixture
def guard(store, clock):
    return StrictModeGuard(store, clock=clock)


@pytest.fixture
def app(tmp_path, clock):
    return GuardianApp(data_dir=str(tmp_path / "data"), clock=clock, rng=random.Random(7))
