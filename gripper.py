"""
gripper.py

Planar gripper moving through a workspace with obstacles. The state is the
position (x, y); the control is (theta, speed). There is no terrain, so the
point moves at the commanded speed; validity is strict interiority of the
workspace plus a collision-free answer from the collision oracle.

The oracle is acquired when the system is built and released by close(), by
leaving a ``with`` block, or when the system is garbage collected.
"""

import logging
import weakref
from typing import Callable, Optional

import numpy as np

from collision import CollisionOracle, DiskObstacleEnvironment, EnvironmentLoadError
from fields import FlatField
from sampling import UniformSampler
from system import DynamicalSystem, SimulationConfig

logger = logging.getLogger(__name__)

MIN_SPEED, MAX_SPEED = 0.5, 0.5


def _empty_environment() -> DiskObstacleEnvironment:
    return DiskObstacleEnvironment(centers=np.zeros((0, 2)), radii=np.zeros(0))


class Gripper2DSystem(DynamicalSystem):
    """
    Oracle-backed planar system.

    Parameters
    ----------
    number_of_particles : int
        Size of the particle set used by convergent_propagate.
    config : SimulationConfig or None
        Integration settings.
    sampler : UniformSampler or None
        Source of randomness.
    environment_factory : callable or None
        Zero-argument callable returning the collision oracle. Defaults to an
        obstacle-free workspace. Any failure aborts construction with
        EnvironmentLoadError.
    """

    state_dimension = 2
    control_dimension = 2

    def __init__(
            self,
            number_of_particles: int = 0,
            config: Optional[SimulationConfig] = None,
            sampler: Optional[UniformSampler] = None,
            environment_factory: Optional[Callable[[], CollisionOracle]] = None,
    ):
        super().__init__(number_of_particles, config=config, sampler=sampler)
        self.field = FlatField()
        self.control_bounds = np.array([[-np.pi, np.pi], [MIN_SPEED, MAX_SPEED]], dtype=float)

        self.environment = self.load_environment(environment_factory or _empty_environment)
        self._finalizer = weakref.finalize(self, self.environment.close)
        try:
            self.state_bounds = self._workspace_bounds(self.environment)
        except EnvironmentLoadError:
            self._finalizer()
            raise

    @staticmethod
    def _workspace_bounds(environment) -> np.ndarray:
        try:
            bounds = np.array(environment.bounds, dtype=float)
        except (AttributeError, TypeError, ValueError) as e:
            raise EnvironmentLoadError(f"Collision environment has no usable bounds: {e}") from e
        if bounds.shape != (2, 2) or not np.all(bounds[:, 0] < bounds[:, 1]):
            raise EnvironmentLoadError(f"Invalid workspace bounds: {bounds.tolist()}")
        return bounds

    @staticmethod
    def load_environment(factory: Callable[[], CollisionOracle]) -> CollisionOracle:
        try:
            environment = factory()
        except EnvironmentLoadError:
            raise
        except Exception as e:
            raise EnvironmentLoadError(f"Failed to initialise collision environment: {e}") from e
        if environment is None:
            raise EnvironmentLoadError("Environment factory returned None")
        return environment

    @property
    def closed(self) -> bool:
        return not self._finalizer.alive

    def close(self) -> None:
        """Release the collision environment. Safe to call more than once."""
        if self._finalizer.alive:
            logger.debug("Releasing collision environment")
        self._finalizer()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def _check_ready(self) -> None:
        if self.closed:
            raise RuntimeError("Gripper2DSystem used after its environment was released")

    def check_collision(self, state: np.ndarray) -> bool:
        """True when state[:2] lies inside an obstacle."""
        self._check_ready()
        return not self.environment.is_valid(state)

    def portion_in_collision(self, point1: np.ndarray, point2: np.ndarray) -> float:
        self._check_ready()
        return self.environment.segment_collision_fraction(point1, point2)

    def valid_state(self, state: Optional[np.ndarray] = None) -> bool:
        if state is None:
            state = self.scratch().state
        return self.in_interior(state) and not self.check_collision(state)
