"""
experiment.py

This module contains two demonstration runs of the simulation core:

1) Hill climbing (ClimbHillSystem):
   - random start state and a particle set sampled in a disk around it,
   - a batch of random controls, each applied with convergent propagation,
   - the lowest-cost valid ensemble reported and plotted,
   - timing of the NumPy backend against the Torch backend on a large set.

2) Gripper among obstacles (Gripper2DSystem):
   - a small disk-obstacle workspace,
   - single-trajectory propagation for a batch of random controls,
   - the fraction of each edge lying in collision.

run_experiment() runs both in sequence.
"""

import logging
import time

import numpy as np

from climb_hill import ClimbHillSystem
from collision import DiskObstacleEnvironment
from gripper import Gripper2DSystem
from presentation import export_points, plot_ensemble
from system import SimulationConfig


# ---------------------------------------------------------------------
# 1. Hill climbing
# ---------------------------------------------------------------------


def run_climb_hill_example(num_controls: int = 32, num_particles: int = 20, save_path=None):
    """
    Sample controls from a random start and keep the ensemble that spreads
    the least. Steps are drawn in [min_step, max_step].
    """
    print("=" * 80)
    print("Hill climbing: convergent propagation of a particle set")
    print("=" * 80)

    cfg = SimulationConfig(integration_step=0.01, seed=7)
    system = ClimbHillSystem(number_of_particles=num_particles, config=cfg)

    start = system.random_state()
    start_particles = system.random_particle_set(start, radius=0.05)
    min_step, max_step = 20, 100

    best = None
    num_valid = 0
    for _ in range(num_controls):
        control = system.random_control()
        result_state = np.zeros(system.state_dimension)
        result_particles = np.zeros_like(start_particles)
        outcome = system.convergent_propagate(
            True, start, start_particles, control, min_step, max_step,
            result_state, result_particles,
        )
        if not outcome.valid:
            continue
        num_valid += 1
        if best is None or outcome.cost < best[0].cost:
            best = (outcome, control, result_state, result_particles)

    print(f"[Hill] Start state: {export_points([start]).strip()}")
    print(f"[Hill] Valid ensembles: {num_valid} / {num_controls}")
    if best is None:
        print("[Hill] No valid ensemble found.")
        return None

    outcome, control, result_state, result_particles = best
    print(f"[Hill] Best control: theta = {control[0]:.3f}, speed = {control[1]:.3f}")
    print(f"[Hill] Duration = {outcome.duration:.3f}, cost = {outcome.cost:.5f}")
    print(f"[Hill] Result state: {export_points([result_state]).strip()}")

    plot_ensemble(
        system, start, start_particles, result_state, result_particles,
        title="Hill climbing: lowest-dispersion ensemble",
        save_path=save_path,
    )
    return outcome


def compare_backends(num_particles: int = 2000, num_steps: int = 200):
    """
    Time one convergent propagation with the NumPy backend and with the Torch
    backend on the same start, controls and particle set.
    """
    cfg_numpy = SimulationConfig(integration_step=0.01, backend="numpy", seed=3)
    system = ClimbHillSystem(number_of_particles=num_particles, config=cfg_numpy)
    start = np.array([-1.0, -1.0, 0.0])
    system.complete_state(start)
    particles = system.random_particle_set(start, radius=0.1)
    control = np.array([np.pi / 4, 0.5])

    t0 = time.perf_counter()
    out_numpy = system.convergent_propagate(
        False, start, particles, control, num_steps, num_steps,
        np.zeros(3), np.zeros_like(particles),
    )
    time_numpy = time.perf_counter() - t0
    print(f"[Backends / NumPy] valid = {out_numpy.valid}, cost = {out_numpy.cost:.5f}, "
          f"time = {time_numpy:.3f} s")

    try:
        cfg_torch = SimulationConfig(integration_step=0.01, backend="torch", seed=3)
        system_torch = ClimbHillSystem(number_of_particles=num_particles, config=cfg_torch)
        t0 = time.perf_counter()
        out_torch = system_torch.convergent_propagate(
            False, start, particles, control, num_steps, num_steps,
            np.zeros(3), np.zeros_like(particles),
        )
        time_torch = time.perf_counter() - t0
        print(f"[Backends / Torch] valid = {out_torch.valid}, cost = {out_torch.cost:.5f}, "
              f"time = {time_torch:.3f} s")
        if time_torch > 0:
            print(f"[Backends] Measured speedup (NumPy / Torch) = {time_numpy / time_torch:.2f}x")
    except RuntimeError as e:
        print(f"[Backends] Torch backend not available ({e}); using NumPy result only.")


# ---------------------------------------------------------------------
# 2. Gripper among obstacles
# ---------------------------------------------------------------------


def run_gripper_example(num_controls: int = 16):
    print("=" * 80)
    print("Gripper: single-trajectory propagation among disk obstacles")
    print("=" * 80)

    def make_environment():
        return DiskObstacleEnvironment(
            centers=[[0.0, 0.0], [0.8, -0.6], [-0.7, 0.7]],
            radii=[0.3, 0.2, 0.25],
            bounds=((-1.5, 1.5), (-1.5, 1.5)),
        )

    cfg = SimulationConfig(integration_step=0.01, seed=11)
    with Gripper2DSystem(config=cfg, environment_factory=make_environment) as system:
        start = np.array([-1.0, -1.0])
        result = np.zeros(2)
        for _ in range(num_controls):
            control = system.random_control()
            outcome = system.propagate(start, control, 50, 150, result)
            fraction = system.portion_in_collision(start, result)
            print(f"[Gripper] theta = {control[0]:+.3f}: valid = {outcome.valid}, "
                  f"duration = {outcome.duration:.2f}, end = ({result[0]:+.3f}, {result[1]:+.3f}), "
                  f"in collision = {fraction:.2%}")


def run_experiment():
    run_climb_hill_example()
    compare_backends()
    run_gripper_example()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    run_experiment()
