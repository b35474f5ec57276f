"""
backend_torch.py

PyTorch-based kernels for ensemble propagation.

Here we provide:
- field_gradient_torch / field_height_torch: torch versions of the fields in
  fields.py, so a particle cloud can stay on the device between steps.
- step_points_torch: the integration step of backend_numpy on torch.Tensor.
- dispersion_torch: summed Euclidean spread of a particle cloud around a state.
"""

import math

try:
    import torch
except ImportError as e:  # pragma: no cover
    raise ImportError(
        "backend_torch requires PyTorch to be installed. "
        "Install it via `pip install torch`."
    ) from e

from fields import FlatField, HillField


def field_gradient_torch(field, points_t: "torch.Tensor") -> "torch.Tensor":
    """
    Gradient of the field at points_t[..., :2], shape (..., 2).
    """
    if isinstance(field, HillField):
        x = points_t[..., 0]
        y = points_t[..., 1]
        c = torch.cos(x + x * y)
        return torch.stack((c * (1.0 + y), 3.0 + c * x), dim=-1)
    if isinstance(field, FlatField):
        return torch.zeros(points_t.shape[:-1] + (2,), dtype=points_t.dtype, device=points_t.device)
    raise ValueError(f"No torch kernel for field: {type(field).__name__}")


def field_height_torch(field, points_t: "torch.Tensor") -> "torch.Tensor":
    if isinstance(field, HillField):
        x = points_t[..., 0]
        y = points_t[..., 1]
        return 3.0 * y + torch.sin(x + x * y)
    if isinstance(field, FlatField):
        return torch.zeros(points_t.shape[:-1], dtype=points_t.dtype, device=points_t.device)
    raise ValueError(f"No torch kernel for field: {type(field).__name__}")


def step_points_torch(
        field,
        points_t: "torch.Tensor",
        theta: float,
        speed: float,
        dt: float,
) -> "torch.Tensor":
    """
    Advance a point cloud one step in place on its device.

    Parameters
    ----------
    field : HillField or FlatField
        Field driving the drift.
    points_t : torch.Tensor
        Points of shape (P, D), float64.
    theta, speed : float
        Shared control for every point.
    dt : float
        Integration step.

    Returns
    -------
    torch.Tensor
        The same tensor, updated.
    """
    if points_t.numel() == 0:
        return points_t

    cos_t = math.cos(theta)
    sin_t = math.sin(theta)

    grad = field_gradient_torch(field, points_t)
    slope = grad[..., 0] * cos_t + grad[..., 1] * sin_t
    advance = dt * speed * (-2.0 / math.pi * torch.atan(slope) + 1.0)

    points_t[..., 0] += advance * cos_t
    points_t[..., 1] += advance * sin_t
    return points_t


def dispersion_torch(state_t: "torch.Tensor", particles_t: "torch.Tensor") -> float:
    """Sum over particles of the full-dimension distance to state_t."""
    if particles_t.numel() == 0:
        return 0.0
    return float(torch.linalg.norm(particles_t - state_t, dim=-1).sum().item())
