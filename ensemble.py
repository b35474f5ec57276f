"""
ensemble.py

Convergent (ensemble) propagation shared by every dynamical system.

A nominal state and a cloud of perturbed particles are advanced together
under one control. Each particle feels the field gradient at its own
position, so the cloud spreads or contracts. The spread (dispersion) is
integrated over time with the trapezoidal rule:

    cost += (previous_dispersion + current_dispersion) / 2 * dt

Cost accrues on every step regardless of validity; only the nominal state is
clamped and checked for validity. Commitment of the results is the caller's
business (see DynamicalSystem.convergent_propagate).

Supports both NumPy and Torch backends for the particle stepping.
"""

import logging

import numpy as np

from backend_numpy import step_points_numpy

try:
    import torch
    from backend_torch import (
        dispersion_torch,
        step_points_torch,
    )

    HAS_TORCH_BACKEND = True
except ImportError:
    HAS_TORCH_BACKEND = False

logger = logging.getLogger(__name__)


def dispersion(state: np.ndarray, particles: np.ndarray) -> float:
    """
    Sum over particles of the Euclidean distance to state, using every
    coordinate including derived ones. Zero for an empty cloud.
    """
    if particles.size == 0:
        return 0.0
    return float(np.sqrt(((particles - state) ** 2).sum(axis=-1)).sum())


def _nominal_step(system, state: np.ndarray, control: np.ndarray, dt: float) -> None:
    step_points_numpy(system.field, state, control, dt)
    system.complete_state(state)


def _check_nominal(system, state: np.ndarray, valid: bool) -> bool:
    clamped = system.enforce_bounds(state)
    return valid and not clamped and system.valid_state(state)


def _co_propagate_numpy(system, state, particles, control, num_steps, dt):
    """
    Internal helper: pure NumPy implementation (baseline).
    """
    previous = dispersion(state, particles)
    cost = 0.0
    valid = True

    for _ in range(num_steps):
        _nominal_step(system, state, control, dt)
        step_points_numpy(system.field, particles, control, dt)
        system.complete_state(particles)

        current = dispersion(state, particles)
        cost += (previous + current) / 2.0 * dt
        previous = current

        valid = _check_nominal(system, state, valid)

    return valid, cost


def _co_propagate_torch(system, state, particles, control, num_steps, dt):
    """
    Internal helper: particle cloud kept as a float64 torch.Tensor on the
    configured device for the whole run; the nominal state stays in NumPy so
    that bounds and validity checks are identical to the baseline.
    """
    if not HAS_TORCH_BACKEND:
        raise RuntimeError("Torch backend requested but backend_torch is not available.")

    device = system.config.torch_device
    particles_t = torch.tensor(particles, dtype=torch.float64, device=device)
    theta = float(control[0])
    speed = float(control[1])

    previous = dispersion(state, particles)
    cost = 0.0
    valid = True

    for _ in range(num_steps):
        _nominal_step(system, state, control, dt)
        step_points_torch(system.field, particles_t, theta, speed, dt)
        system.complete_state_torch(particles_t)

        state_t = torch.tensor(state, dtype=torch.float64, device=device)
        current = dispersion_torch(state_t, particles_t)
        cost += (previous + current) / 2.0 * dt
        previous = current

        valid = _check_nominal(system, state, valid)

    particles[...] = particles_t.detach().cpu().numpy()
    return valid, cost


def co_propagate(
        system,
        state: np.ndarray,
        particles: np.ndarray,
        control: np.ndarray,
        num_steps: int,
) -> tuple[bool, float]:
    """
    Advance a nominal state and its particle cloud num_steps steps in place.

    Parameters
    ----------
    system : DynamicalSystem
        Provides field, complete_state(_torch), enforce_bounds, valid_state, config.
    state : np.ndarray
        Nominal scratch state, shape (D,), derived dimension already set.
    particles : np.ndarray
        Scratch particle cloud, shape (P, D), derived dimension already set.
    control : np.ndarray
        (theta, speed), shared by all points.
    num_steps : int
        Number of integration steps; the run always completes all of them.

    Returns
    -------
    tuple
        (valid, cost): validity of the nominal trajectory over every step and
        the accumulated trapezoidal dispersion cost.
    """
    cfg = system.config
    dt = cfg.integration_step

    if cfg.backend == "numpy":
        valid, cost = _co_propagate_numpy(system, state, particles, control, num_steps, dt)
    elif cfg.backend == "torch":
        valid, cost = _co_propagate_torch(system, state, particles, control, num_steps, dt)
    else:
        raise ValueError(f"Unknown backend: {cfg.backend}")

    logger.debug(
        "co_propagate: %d steps, %d particles, valid=%s, cost=%.6g",
        num_steps, particles.shape[0], valid, cost,
    )
    return valid, cost
