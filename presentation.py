"""
presentation.py

Presentation helpers for planar systems: projection of a state onto a
drawing canvas, textual export of states, and a matplotlib figure of an
ensemble before and after propagation. None of this affects planning.
"""

from typing import Iterable, Optional

import numpy as np
import matplotlib.pyplot as plt

from fields import HillField


def to_drawing_point(system, state: np.ndarray, dims: tuple[float, float]) -> tuple[float, float]:
    """
    Map the positional coordinates of state linearly onto a canvas.

    Parameters
    ----------
    system : DynamicalSystem
        Provides state_bounds.
    state : np.ndarray
        State to project.
    dims : tuple
        (width, height) of the canvas in pixels.

    Returns
    -------
    tuple of float
        Canvas coordinates; the lower bound maps to 0 and the upper to the
        full width/height.
    """
    (min_x, max_x), (min_y, max_y) = system.state_bounds
    width, height = dims
    x = (state[0] - min_x) / (max_x - min_x) * width
    y = (state[1] - min_y) / (max_y - min_y) * height
    return float(x), float(y)


def to_text_row(state: Iterable[float]) -> str:
    """Comma-separated coordinates, e.g. '0.25,-1,0.75'."""
    return ",".join(f"{float(v):g}" for v in state)


def export_points(states: Iterable[Iterable[float]]) -> str:
    """One to_text_row line per state, newline-terminated."""
    return "".join(to_text_row(s) + "\n" for s in states)


def plot_ensemble(
    system,
    start_state: np.ndarray,
    start_particles: np.ndarray,
    result_state: np.ndarray,
    result_particles: np.ndarray,
    title: str = "Ensemble propagation",
    save_path: Optional[str] = None,
) -> None:
    """
    Plot the nominal state and its particle set before and after propagation.
    For hill systems the height field is drawn as a contour background.

    Parameters
    ----------
    system : DynamicalSystem
        System that produced the ensemble.
    start_state, result_state : np.ndarray
        Nominal state before and after.
    start_particles, result_particles : np.ndarray
        Particle sets before and after, shape (P, D).
    title : str
        Plot title.
    save_path : str or None
        If given, save the figure to this path. Otherwise, just show it.
    """
    fig, ax = plt.subplots(figsize=(6, 6))
    ax.set_aspect("equal", adjustable="box")

    (min_x, max_x), (min_y, max_y) = system.state_bounds
    if isinstance(system.field, HillField):
        xs = np.linspace(min_x, max_x, 200)
        ys = np.linspace(min_y, max_y, 200)
        X, Y = np.meshgrid(xs, ys, indexing="xy")
        H = system.field.height(np.stack((X, Y), axis=-1))
        cs = ax.contourf(X, Y, H, levels=30, cmap="terrain", alpha=0.6)
        fig.colorbar(cs, ax=ax, label="height")

    environment = getattr(system, "environment", None)
    if environment is not None and hasattr(environment, "centers"):
        for c, r in zip(environment.centers, environment.radii):
            ax.add_patch(plt.Circle((c[0], c[1]), r, color="gray", alpha=0.5))

    if start_particles.size > 0:
        ax.scatter(start_particles[:, 0], start_particles[:, 1], s=10, alpha=0.5, label="Start particles")
    if result_particles.size > 0:
        ax.scatter(result_particles[:, 0], result_particles[:, 1], s=10, alpha=0.5, label="Result particles")

    ax.scatter([start_state[0]], [start_state[1]], color="red", s=60, label="Start state")
    ax.scatter([result_state[0]], [result_state[1]], color="green", s=60, label="Result state")
    ax.plot([start_state[0], result_state[0]], [start_state[1], result_state[1]],
            linestyle="--", color="black")

    ax.set_xlim(min_x, max_x)
    ax.set_ylim(min_y, max_y)
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    ax.set_title(title)
    ax.grid(True)
    ax.legend(loc="best")

    if save_path is not None:
        fig.savefig(save_path, bbox_inches="tight", dpi=150)
        plt.close(fig)
    else:
        plt.show()
