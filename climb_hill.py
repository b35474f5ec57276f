"""
climb_hill.py

Planar point climbing the analytic hill of fields.HillField. The state is
(x, y, h) with h the hill height at (x, y); the control is (theta, speed).
Moving up the slope slows the point down, moving down speeds it up. No
collision queries: validity is strict interiority of the square workspace.
"""

from typing import Optional

import numpy as np

from fields import HillField
from sampling import UniformSampler
from system import DynamicalSystem, SimulationConfig

MIN_X, MAX_X = -1.5, 1.5
MIN_Y, MAX_Y = -1.5, 1.5

MIN_SPEED, MAX_SPEED = 0.5, 0.5


class ClimbHillSystem(DynamicalSystem):
    """
    Hill-climbing system with one derived dimension (the height).
    """

    state_dimension = 3
    control_dimension = 2

    def __init__(
            self,
            number_of_particles: int = 0,
            config: Optional[SimulationConfig] = None,
            sampler: Optional[UniformSampler] = None,
    ):
        super().__init__(number_of_particles, config=config, sampler=sampler)
        self.field = HillField()
        self.state_bounds = np.array([[MIN_X, MAX_X], [MIN_Y, MAX_Y]], dtype=float)
        self.control_bounds = np.array([[-np.pi, np.pi], [MIN_SPEED, MAX_SPEED]], dtype=float)

    def complete_state(self, points: np.ndarray) -> np.ndarray:
        points[..., 2] = self.field.height(points)
        return points

    def complete_state_torch(self, points_t):
        from backend_torch import field_height_torch

        points_t[..., 2] = field_height_torch(self.field, points_t)
        return points_t

    def hill_height(self, point: np.ndarray) -> float:
        return float(self.field.height(np.asarray(point, dtype=float)))

    def hill_gradient_x(self, point: np.ndarray) -> float:
        return float(self.field.gradient_x(np.asarray(point, dtype=float)))

    def hill_gradient_y(self, point: np.ndarray) -> float:
        return float(self.field.gradient_y(np.asarray(point, dtype=float)))
