from __future__ import annotations

import pytest

from infiltrator.events import EventBus
from infiltrator.game.engine import Engine
from infiltrator.game.world import WorldState
from infiltrator.util.clock import SimulationClock
from infiltrator.util.rng import RNGProvider
from tests.helpers import make_engine, make_world


@pytest.fixture
def world() -> WorldState:
    return make_world()


@pytest.fixture
def engine(world: WorldState) -> Engine:
    return make_engine(world)


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def clock() -> SimulationClock:
    return SimulationClock()


@pytest.fixture
def rng() -> RNGProvider:
    """A provider pinned to a fixed seed so every test rolls the same dice."""
    return RNGProvider(master_seed=1234)
