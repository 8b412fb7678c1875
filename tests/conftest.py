import itertools

import numpy as np
import pytest

from marksman.config import RangeConfig
from marksman.scoring.events import EventBus
from marksman.scoring.ledger import ShotLedger
from marksman.sim.world import VoxelWorld


class FakeClock:
    """Deterministic wall clock: each call advances one second."""

    def __init__(self, start: float = 1_767_225_600.0) -> None:  # 2026-01-01 00:00:00 UTC
        self._ticks = itertools.count()
        self.start = start

    def __call__(self) -> float:
        return self.start + float(next(self._ticks))


class RecordingWriter:
    """Stand-in SessionWriter capturing submitted sessions synchronously."""

    def __init__(self) -> None:
        self.submitted = []

    def submit(self, session, snapshot=None, attempts=1):
        self.submitted.append((session, snapshot))

    def reserve_name(self, session_name):
        return session_name

    def poll_failures(self):
        return []


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_writer() -> RecordingWriter:
    return RecordingWriter()


@pytest.fixture
def make_ledger(clock, recording_writer):
    def _make(max_ammo: int = 5, **kwargs) -> ShotLedger:
        events = EventBus()
        events.keep_history = True
        kwargs.setdefault("writer", recording_writer)
        return ShotLedger(events=events, max_ammo=max_ammo, clock=clock, **kwargs)

    return _make


@pytest.fixture
def empty_world() -> VoxelWorld:
    """10x10x10 world with no obstacles."""
    return VoxelWorld.empty(10, 10, 10)


@pytest.fixture
def wall_world() -> VoxelWorld:
    """10x10x10 world with a wall filling the x=5 slab."""
    world = VoxelWorld.empty(10, 10, 10)
    world.voxels[:, :, 5] = VoxelWorld.WALL
    return world


@pytest.fixture
def quiet_config() -> RangeConfig:
    """Default lane config: no dispersion, fixed seed."""
    return RangeConfig(seed=0)


@pytest.fixture
def straight_down_range() -> tuple[np.ndarray, np.ndarray]:
    """Shooter at eye height aiming straight at a 1.5 m-high target."""
    return np.array([0.0, 1.5, 0.0]), np.array([0.0, 0.0, 1.0])
