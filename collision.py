"""
collision.py

Collision oracle used by constrained systems. The oracle owns the planar
workspace (its bounds) and answers two queries:

- is_valid(state): the point state[:2] is collision-free;
- segment_collision_fraction(p1, p2): share of the segment p1 -> p2 lying in
  collision, in [0, 1].

DiskObstacleEnvironment is a concrete oracle with circular obstacles indexed
by a k-d tree. Environments are resources: they are opened on construction
and must be closed; queries on a closed environment raise RuntimeError.
"""

import logging
from pathlib import Path
from typing import Protocol

import numpy as np
import yaml
from scipy.spatial import cKDTree

logger = logging.getLogger(__name__)


class EnvironmentLoadError(RuntimeError):
    """The collision environment could not be acquired."""


class CollisionOracle(Protocol):
    bounds: np.ndarray

    def is_valid(self, state: np.ndarray) -> bool:
        ...

    def segment_collision_fraction(self, point1: np.ndarray, point2: np.ndarray) -> float:
        ...

    def close(self) -> None:
        ...


class DiskObstacleEnvironment:
    """
    Planar workspace with circular obstacles.

    Parameters
    ----------
    centers : array-like
        Obstacle centers, shape (K, 2). K may be zero.
    radii : array-like
        Obstacle radii, shape (K,), all positive.
    bounds : array-like
        Workspace bounds, shape (2, 2): ((min_x, max_x), (min_y, max_y)).
    resolution : float
        Spacing of the samples taken along a segment.
    """

    def __init__(self, centers, radii, bounds=((-1.5, 1.5), (-1.5, 1.5)), resolution: float = 0.01):
        self.centers = np.asarray(centers, dtype=float).reshape(-1, 2)
        self.radii = np.asarray(radii, dtype=float).reshape(-1)
        self.bounds = np.asarray(bounds, dtype=float)
        self.resolution = float(resolution)

        if self.centers.shape[0] != self.radii.shape[0]:
            raise ValueError(
                f"Got {self.centers.shape[0]} obstacle centers but {self.radii.shape[0]} radii"
            )
        if np.any(self.radii <= 0):
            raise ValueError("Obstacle radii must be positive")
        if self.bounds.shape != (2, 2) or np.any(self.bounds[:, 0] >= self.bounds[:, 1]):
            raise ValueError(f"Invalid workspace bounds: {self.bounds.tolist()}")
        if not self.resolution > 0:
            raise ValueError(f"resolution must be positive, got {self.resolution}")

        self._tree = cKDTree(self.centers) if self.centers.shape[0] > 0 else None
        self._max_radius = float(self.radii.max()) if self.radii.size > 0 else 0.0
        self.closed = False
        logger.debug("Opened environment with %d obstacles", self.centers.shape[0])

    @classmethod
    def load(cls, path) -> "DiskObstacleEnvironment":
        """
        Build an environment from a YAML scene:

            bounds: [[-1.5, 1.5], [-1.5, 1.5]]
            resolution: 0.01
            obstacles:
              - {center: [0.0, 0.5], radius: 0.2}
        """
        p = Path(path)
        try:
            with p.open("r", encoding="utf-8") as f:
                scene = yaml.safe_load(f) or {}
            obstacles = scene.get("obstacles") or []
            centers = [o["center"] for o in obstacles]
            radii = [o["radius"] for o in obstacles]
            kwargs = {}
            if "bounds" in scene:
                kwargs["bounds"] = scene["bounds"]
            if "resolution" in scene:
                kwargs["resolution"] = scene["resolution"]
            return cls(centers, radii, **kwargs)
        except (OSError, yaml.YAMLError, KeyError, TypeError, ValueError, AttributeError) as e:
            raise EnvironmentLoadError(f"Failed to load scene {p}: {e}") from e

    def _require_open(self) -> None:
        if self.closed:
            raise RuntimeError("Collision environment has been closed")

    def collides(self, points: np.ndarray) -> np.ndarray:
        """
        Boolean mask of points strictly inside some obstacle.

        Parameters
        ----------
        points : np.ndarray
            Points of shape (N, 2) (extra coordinates are ignored).
        """
        self._require_open()
        points = np.atleast_2d(np.asarray(points, dtype=float))[:, :2]
        hits = np.zeros(points.shape[0], dtype=bool)
        if self._tree is None:
            return hits

        candidates = self._tree.query_ball_point(points, r=self._max_radius)
        for i, idx in enumerate(candidates):
            if not idx:
                continue
            d = np.linalg.norm(self.centers[idx] - points[i], axis=-1)
            hits[i] = bool(np.any(d < self.radii[idx]))
        return hits

    def is_valid(self, state: np.ndarray) -> bool:
        return not bool(self.collides(state)[0])

    def segment_collision_fraction(self, point1: np.ndarray, point2: np.ndarray) -> float:
        """
        Fraction of evenly spaced samples along point1 -> point2 (endpoints
        included) that are in collision.
        """
        self._require_open()
        p1 = np.asarray(point1, dtype=float)[:2]
        p2 = np.asarray(point2, dtype=float)[:2]
        length = float(np.linalg.norm(p2 - p1))
        num = max(2, int(np.ceil(length / self.resolution)) + 1)
        samples = np.linspace(p1, p2, num)
        return float(self.collides(samples).mean())

    def close(self) -> None:
        if not self.closed:
            self._tree = None
            self.closed = True
            logger.debug("Closed environment")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
