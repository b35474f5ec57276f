"""
backend_numpy.py

NumPy-based backend for advancing a set of points one integration step under
a single shared control. The same kernel moves the nominal state (shape (D,))
and a particle cloud (shape (P, D)); every point evaluates the field gradient
at its own position.
"""

import numpy as np

from fields import damping_factor


def step_points_numpy(field, points: np.ndarray, control: np.ndarray, dt: float) -> np.ndarray:
    """
    Advance points one step in place.

    Parameters
    ----------
    field : HillField or FlatField
        Field providing gradient().
    points : np.ndarray
        State array of shape (D,) or (P, D); only the first two coordinates
        move. Derived coordinates are left for the caller to recompute.
    control : np.ndarray
        (theta, speed).
    dt : float
        Integration step.

    Returns
    -------
    np.ndarray
        The same array, updated.
    """
    if points.size == 0:
        return points

    theta = control[0]
    u = control[1]
    cos_t = np.cos(theta)
    sin_t = np.sin(theta)

    grad = field.gradient(points[..., :2])
    slope = grad[..., 0] * cos_t + grad[..., 1] * sin_t
    advance = dt * u * damping_factor(slope)

    points[..., 0] += advance * cos_t
    points[..., 1] += advance * sin_t
    return points
