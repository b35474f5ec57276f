"""
system.py

Defines the dynamical-system abstraction that a sampling-based kinodynamic
planner samples, perturbs and forward-simulates. Every concrete system is a
planar point whose first two state coordinates are a position, driven by a
control (theta, speed):

    x' = speed * (-2/pi * atan(slope) + 1) * cos(theta)
    y' = speed * (-2/pi * atan(slope) + 1) * sin(theta)

where slope is the gradient of the system's scalar field projected onto the
heading. Integration is explicit Euler with a fixed step taken from
SimulationConfig.

Also provides the simulation configuration and its YAML serialisation.
"""

import logging
import threading
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Literal, Optional

import numpy as np
import yaml

from backend_numpy import step_points_numpy
from ensemble import co_propagate, dispersion
from sampling import UniformSampler, sample_box, sample_disk

logger = logging.getLogger(__name__)

BackendType = Literal["numpy", "torch"]


@dataclass(frozen=True)
class SimulationConfig:
    """
    Immutable configuration shared by every propagation call.
    """
    integration_step: float = 0.01
    backend: BackendType = "numpy"
    torch_device: Literal["cpu", "cuda"] = "cpu"
    seed: Optional[int] = None

    def __post_init__(self):
        if not self.integration_step > 0:
            raise ValueError(f"integration_step must be positive, got {self.integration_step}")
        if self.backend not in ("numpy", "torch"):
            raise ValueError(f"Unknown backend: {self.backend}")


def save_config(cfg: SimulationConfig, path) -> None:
    """Save configuration to a YAML file."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with p.open("w", encoding="utf-8") as f:
        yaml.dump(asdict(cfg), f, default_flow_style=False, sort_keys=False)


def load_config(path) -> SimulationConfig:
    """Load configuration from a YAML file; missing keys take their defaults."""
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        d = yaml.safe_load(f) or {}
    if not isinstance(d, dict):
        raise ValueError(f"Config file {p} must hold a mapping, got {type(d).__name__}")
    unknown = set(d) - {fld.name for fld in fields(SimulationConfig)}
    if unknown:
        raise ValueError(f"Unknown config keys in {p}: {sorted(unknown)}")
    return SimulationConfig(**d)


@dataclass
class PropagationOutcome:
    """Result of single-trajectory propagation."""
    valid: bool
    duration: float


@dataclass
class EnsembleOutcome:
    """
    Result of convergent propagation.

    duration is None when the trajectory was invalid: nothing was committed
    and the caller's result buffers still hold their previous contents.
    cost is always the full accumulated dispersion.
    """
    valid: bool
    duration: Optional[float]
    cost: float


@dataclass
class Scratch:
    """Working memory for one simulation context (one thread or one caller)."""
    state: np.ndarray
    particles: np.ndarray


class DynamicalSystem:
    """
    Base class holding the integration skeleton shared by all systems.

    Subclasses set state_dimension, control_dimension, state_bounds (rows of
    (min, max) for the positional coordinates), control_bounds and field, and
    may extend valid_state() and complete_state().

    Scratch buffers are kept per thread, so one instance may be driven from
    several threads as long as each thread owns its sampler and the
    collision oracle (if any) is reentrant. A Scratch may also be passed
    explicitly to each call.
    """

    state_dimension: int = 2
    control_dimension: int = 2

    def __init__(
            self,
            number_of_particles: int = 0,
            config: Optional[SimulationConfig] = None,
            sampler: Optional[UniformSampler] = None,
    ):
        if number_of_particles < 0:
            raise ValueError(f"number_of_particles must be >= 0, got {number_of_particles}")
        self.number_of_particles = int(number_of_particles)
        self.config = config if config is not None else SimulationConfig()
        self.sampler = sampler if sampler is not None else UniformSampler(self.config.seed)
        self._local = threading.local()

    # ------------------------------------------------------------------
    # Scratch memory
    # ------------------------------------------------------------------

    def new_scratch(self) -> Scratch:
        return Scratch(
            state=np.zeros(self.state_dimension, dtype=float),
            particles=np.zeros((self.number_of_particles, self.state_dimension), dtype=float),
        )

    def scratch(self) -> Scratch:
        """Scratch buffers owned by the calling thread."""
        s = getattr(self._local, "scratch", None)
        if s is None:
            s = self.new_scratch()
            self._local.scratch = s
        return s

    # ------------------------------------------------------------------
    # Metric, sampling, bounds
    # ------------------------------------------------------------------

    def distance(self, point1: np.ndarray, point2: np.ndarray) -> float:
        """Planar Euclidean distance over the first two coordinates."""
        dx = point1[0] - point2[0]
        dy = point1[1] - point2[1]
        return float(np.sqrt(dx * dx + dy * dy))

    def complete_state(self, points: np.ndarray) -> np.ndarray:
        """Recompute derived coordinates in place. Plain planar systems have none."""
        return points

    def complete_state_torch(self, points_t):
        """complete_state for a torch.Tensor point cloud, used by the torch backend."""
        return points_t

    def random_state(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        if out is None:
            out = np.zeros(self.state_dimension, dtype=float)
        sample_box(self.sampler, self.state_bounds, out)
        return self.complete_state(out)

    def random_control(self, out: Optional[np.ndarray] = None) -> np.ndarray:
        if out is None:
            out = np.zeros(self.control_dimension, dtype=float)
        return sample_box(self.sampler, self.control_bounds, out)

    def random_particles(self, out: Optional[np.ndarray], center: np.ndarray, radius: float) -> np.ndarray:
        """Fill out with one state drawn inside the disk of given radius around center."""
        if out is None:
            out = np.zeros(self.state_dimension, dtype=float)
        out[0], out[1] = sample_disk(self.sampler, center, radius)
        return self.complete_state(out)

    def random_particle_set(self, center: np.ndarray, radius: float) -> np.ndarray:
        """A full particle set of shape (number_of_particles, state_dimension)."""
        particles = np.zeros((self.number_of_particles, self.state_dimension), dtype=float)
        for particle in particles:
            self.random_particles(particle, center, radius)
        return particles

    def enforce_bounds(self, state: np.ndarray) -> bool:
        """
        Clamp the positional coordinates into their closed intervals in place.

        Returns
        -------
        bool
            True if any coordinate had to be clamped.
        """
        clamped = False
        for k, (lo, hi) in enumerate(self.state_bounds):
            if state[k] < lo:
                state[k] = lo
                clamped = True
            elif state[k] > hi:
                state[k] = hi
                clamped = True
        return clamped

    def in_interior(self, state: np.ndarray) -> bool:
        """Strictly inside every bounded interval; points on a bound are rejected."""
        return all(lo < state[k] < hi for k, (lo, hi) in enumerate(self.state_bounds))

    def valid_state(self, state: Optional[np.ndarray] = None) -> bool:
        """
        Validity of state, or of the calling thread's scratch state when no
        state is given.
        """
        if state is None:
            state = self.scratch().state
        return self.in_interior(state)

    def cost_function(self, state: np.ndarray, particles: np.ndarray) -> float:
        return dispersion(np.asarray(state, dtype=float), np.asarray(particles, dtype=float))

    # ------------------------------------------------------------------
    # Propagation
    # ------------------------------------------------------------------

    def _check_ready(self) -> None:
        """Hook for systems that hold external resources."""

    def _draw_num_steps(self, random_time: bool, min_step: int, max_step: int) -> int:
        if random_time:
            return self.sampler.uniform_int(min_step, max_step)
        return (min_step + max_step) // 2

    def propagate(
            self,
            start_state: np.ndarray,
            control: np.ndarray,
            min_step: int,
            max_step: int,
            result_state: np.ndarray,
            scratch: Optional[Scratch] = None,
    ) -> PropagationOutcome:
        """
        Integrate a single trajectory for a random number of steps.

        Parameters
        ----------
        start_state : np.ndarray
            Starting state; only its positional coordinates are read.
        control : np.ndarray
            (theta, speed).
        min_step, max_step : int
            Inclusive bounds of the uniformly drawn step count.
        result_state : np.ndarray
            Destination buffer, always written.
        scratch : Scratch or None
            Working memory; defaults to the calling thread's scratch.

        Returns
        -------
        PropagationOutcome
            valid is True iff every step stayed strictly inside the bounds
            (and collision-free). The full step count is always simulated.
        """
        self._check_ready()
        scratch = scratch if scratch is not None else self.scratch()
        state = scratch.state
        dt = self.config.integration_step

        state[:2] = start_state[:2]
        self.complete_state(state)
        num_steps = self._draw_num_steps(True, min_step, max_step)

        valid = True
        for _ in range(num_steps):
            step_points_numpy(self.field, state, control, dt)
            clamped = self.enforce_bounds(state)
            valid = valid and not clamped and self.valid_state(state)

        result_state[:2] = state[:2]
        self.complete_state(result_state)
        return PropagationOutcome(valid=valid, duration=num_steps * dt)

    def convergent_propagate(
            self,
            random_time: bool,
            start_state: np.ndarray,
            start_particles: np.ndarray,
            control: np.ndarray,
            min_step: int,
            max_step: int,
            result_state: np.ndarray,
            result_particles: np.ndarray,
            scratch: Optional[Scratch] = None,
    ) -> EnsembleOutcome:
        """
        Integrate the nominal state together with its particle set.

        The step count is drawn uniformly from [min_step, max_step] when
        random_time is set, otherwise it is the integer midpoint. Cost accrues
        on every step. The results are committed all-or-nothing: when any
        step of the nominal trajectory is invalid, result_state and
        result_particles are not touched and the outcome has no duration.
        """
        self._check_ready()
        start_particles = np.asarray(start_particles, dtype=float)
        expected = (self.number_of_particles, self.state_dimension)
        if start_particles.shape != expected:
            raise ValueError(f"start_particles must have shape {expected}, got {start_particles.shape}")
        if np.shape(result_particles) != expected:
            raise ValueError(f"result_particles must have shape {expected}, got {np.shape(result_particles)}")

        scratch = scratch if scratch is not None else self.scratch()
        state = scratch.state
        particles = scratch.particles

        state[:2] = start_state[:2]
        self.complete_state(state)
        particles[:, :2] = start_particles[:, :2]
        self.complete_state(particles)

        num_steps = self._draw_num_steps(random_time, min_step, max_step)
        valid, cost = co_propagate(self, state, particles, control, num_steps)

        if not valid:
            return EnsembleOutcome(valid=False, duration=None, cost=cost)

        result_state[:2] = state[:2]
        self.complete_state(result_state)
        result_particles[:, :2] = particles[:, :2]
        self.complete_state(result_particles)
        return EnsembleOutcome(valid=True, duration=num_steps * self.config.integration_step, cost=cost)
