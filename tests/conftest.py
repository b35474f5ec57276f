"""
Pytest configuration and shared fixtures for the simulation core tests.
"""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from climb_hill import ClimbHillSystem
from collision import DiskObstacleEnvironment
from sampling import UniformSampler
from system import SimulationConfig


@pytest.fixture
def config() -> SimulationConfig:
    return SimulationConfig(integration_step=0.01, seed=1234)


@pytest.fixture
def hill(config) -> ClimbHillSystem:
    return ClimbHillSystem(number_of_particles=8, config=config)


@pytest.fixture
def hill_no_particles(config) -> ClimbHillSystem:
    return ClimbHillSystem(number_of_particles=0, config=config)


@pytest.fixture
def sampler() -> UniformSampler:
    return UniformSampler(seed=99)


@pytest.fixture
def obstacles():
    """One unit-radius obstacle at the origin inside a 10x10 workspace."""
    def factory():
        return DiskObstacleEnvironment(
            centers=[[0.0, 0.0]],
            radii=[1.0],
            bounds=((-5.0, 5.0), (-5.0, 5.0)),
            resolution=0.001,
        )
    return factory


@pytest.fixture
def make_state():
    """Build a full state (derived dimension included) at (x, y)."""
    def _make(system, x, y):
        state = np.zeros(system.state_dimension)
        state[0], state[1] = x, y
        return system.complete_state(state)
    return _make
