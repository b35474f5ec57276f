"""
fields.py

Closed-form scalar fields that drive the heading-dependent drift of the
planar systems. A field supplies a height (the derived state dimension) and
its gradient; the slope of the gradient along the control heading damps the
forward speed:

    slope  = dh/dx * cos(theta) + dh/dy * sin(theta)
    factor = -2/pi * atan(slope) + 1
"""

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class HillField:
    """
    Hill used by the climbing system:

        h(x, y)  = 3y + sin(x + x*y)
        dh/dx    = cos(x + x*y) * (1 + y)
        dh/dy    = 3 + cos(x + x*y) * x

    All methods accept points of shape (..., 2) (extra trailing coordinates
    are ignored) and broadcast over the leading dimensions.
    """

    def height(self, points: np.ndarray) -> np.ndarray:
        x = points[..., 0]
        y = points[..., 1]
        return 3.0 * y + np.sin(x + x * y)

    def gradient_x(self, points: np.ndarray) -> np.ndarray:
        x = points[..., 0]
        y = points[..., 1]
        return np.cos(x + x * y) * (1.0 + y)

    def gradient_y(self, points: np.ndarray) -> np.ndarray:
        x = points[..., 0]
        y = points[..., 1]
        return 3.0 + np.cos(x + x * y) * x

    def gradient(self, points: np.ndarray) -> np.ndarray:
        """Gradient (dh/dx, dh/dy), shape (..., 2)."""
        return np.stack((self.gradient_x(points), self.gradient_y(points)), axis=-1)


@dataclass(frozen=True)
class FlatField:
    """Level ground: zero height and zero gradient, so the damping factor is 1."""

    def height(self, points: np.ndarray) -> np.ndarray:
        return np.zeros_like(points[..., 0], dtype=float)

    def gradient(self, points: np.ndarray) -> np.ndarray:
        return np.zeros(np.shape(points)[:-1] + (2,), dtype=float)


def damping_factor(slope):
    """Saturating speed correction in (0, 2); equals 1 on level ground."""
    return -2.0 / np.pi * np.arctan(slope) + 1.0
